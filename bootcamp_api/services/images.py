"""
Image upload processing.
Validates uploaded images and normalizes them to fixed-size PNGs.
"""
import io
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from bootcamp_api.errors import ValidationError

COVER_IMAGE_SIZE = (1084, 610)
AVATAR_SIZE = (500, 500)


def check_upload(content_type: str, data: bytes, max_bytes: int) -> None:
    """Reject non-images, empty uploads and oversized files."""
    if not content_type or not content_type.startswith("image"):
        raise ValidationError("Not an image! Please upload only images.")
    if not data:
        raise ValidationError("Please select an image to upload")
    if len(data) > max_bytes:
        raise ValidationError(f"Image too large. Maximum size is {max_bytes} bytes")


def resize_to_png(data: bytes, size: Tuple[int, int]) -> bytes:
    """
    Resize an image to exactly `size`, cropping to fill, and encode as PNG.

    Args:
        data: Raw uploaded bytes
        size: (width, height)

    Returns:
        PNG bytes
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError):
        raise ValidationError("Not an image! Please upload only images.")

    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")

    fitted = ImageOps.fit(image, size, method=Image.Resampling.LANCZOS)

    output = io.BytesIO()
    fitted.save(output, format="PNG")
    return output.getvalue()
