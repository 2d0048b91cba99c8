"""
Application configuration using Pydantic settings.
Loads from environment variables or .env file.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Bootcamp Directory API"
    debug: bool = False
    log_level: str = "INFO"

    # GCP Settings
    gcp_project_id: str = ""
    gcp_storage_bucket: str = ""
    google_application_credentials: str = ""

    # Auth settings
    secret_key: str = "change-this-in-production-use-a-long-random-string"
    algorithm: str = "HS256"
    access_token_expire_days: int = 90
    cookie_expire_days: int = 90
    password_reset_expire_minutes: int = 10
    bcrypt_rounds: int = 12

    # Email settings
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = "Bootcamp Directory <noreply@bootcamps.local>"

    # Geocoder settings
    geocoder_api_key: str = ""
    geocoder_url: str = "https://www.mapquestapi.com/geocoding/v1/address"

    # Upload limits
    cover_image_max_bytes: int = 5_000_000
    avatar_max_bytes: int = 1_000_000

    # CORS settings - stored as a plain string, parsed by get_cors_origins()
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    def get_cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
