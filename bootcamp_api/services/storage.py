"""
Google Cloud Storage service.
"""
import logging

from google.api_core import exceptions as gcloud_exceptions
from google.cloud import storage
from google.oauth2 import service_account

from bootcamp_api.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def cover_image_blob(bootcamp_id: str) -> str:
    return f"bootcamps/{bootcamp_id}/cover.png"


def avatar_blob(user_id: str) -> str:
    return f"users/{user_id}/avatar.png"


class StorageService:
    """Service for Google Cloud Storage operations."""

    def __init__(self):
        """Initialize Storage client."""
        if settings.google_application_credentials:
            credentials = service_account.Credentials.from_service_account_file(
                settings.google_application_credentials
            )
            self.client = storage.Client(
                project=settings.gcp_project_id,
                credentials=credentials
            )
        else:
            # Use default credentials
            self.client = storage.Client(project=settings.gcp_project_id)

        self.bucket_name = settings.gcp_storage_bucket
        self.bucket = self.client.bucket(self.bucket_name)

    def _get_gs_path(self, blob_name: str) -> str:
        """Get the gs:// path for a blob."""
        return f"gs://{self.bucket_name}/{blob_name}"

    def _blob_name(self, storage_path: str) -> str:
        """Accepts either gs://bucket/path or just the path."""
        if storage_path.startswith("gs://"):
            return storage_path.replace(f"gs://{self.bucket_name}/", "")
        return storage_path

    async def upload_bytes(
        self,
        data: bytes,
        blob_name: str,
        content_type: str = "image/png"
    ) -> str:
        """
        Upload bytes to storage.
        Returns the storage path.
        """
        blob = self.bucket.blob(blob_name)
        blob.upload_from_string(data, content_type=content_type)

        return self._get_gs_path(blob_name)

    async def download_file(self, storage_path: str) -> bytes:
        """Download a file from storage."""
        blob = self.bucket.blob(self._blob_name(storage_path))
        return blob.download_as_bytes()

    async def delete_file(self, storage_path: str) -> bool:
        """
        Delete a file from storage.
        A blob that is already gone counts as not deleted.
        """
        blob = self.bucket.blob(self._blob_name(storage_path))
        try:
            blob.delete()
        except gcloud_exceptions.NotFound:
            logger.info("Blob %s already deleted", storage_path)
            return False
        return True
