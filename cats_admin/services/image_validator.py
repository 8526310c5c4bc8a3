"""
Image Validation Service
Checks uploaded category images before they reach storage
"""

from io import BytesIO
from typing import Optional
from PIL import Image, UnidentifiedImageError
from cats_admin.config import settings


class ImageValidator:
    """Type, size and decodability checks for avatar/header uploads"""

    EXTENSIONS = {
        "image/jpeg": "jpg",
        "image/png": "png",
    }

    # Pillow format name for each allowed content type
    FORMATS = {
        "image/jpeg": "JPEG",
        "image/png": "PNG",
    }

    @staticmethod
    def validate(content: bytes, content_type: Optional[str]) -> Optional[str]:
        """
        Validate an uploaded image

        Args:
            content: Raw file bytes
            content_type: Declared MIME type

        Returns:
            Error message, or None if the image is acceptable
        """
        if content_type not in settings.allowed_image_types or content_type not in ImageValidator.FORMATS:
            return f'Invalid file type "{content_type}". Allowed: JPEG, PNG.'

        if not content:
            return "File is required"

        if len(content) > settings.MAX_IMAGE_SIZE:
            size_mb = len(content) / 1024 / 1024
            max_mb = settings.MAX_IMAGE_SIZE / 1024 / 1024
            return f"File too large ({size_mb:.1f} MB). Maximum: {max_mb:g} MB."

        try:
            img = Image.open(BytesIO(content))
            img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            return "File is not a readable image"

        if img.format != ImageValidator.FORMATS[content_type]:
            return f'File content does not match type "{content_type}"'

        return None

    @staticmethod
    def extension_for(content_type: str) -> str:
        return ImageValidator.EXTENSIONS.get(content_type, "bin")


# Singleton
image_validator = ImageValidator()
