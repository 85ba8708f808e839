"""
Input Validation

Validation utilities for pipeline inputs.
"""

from typing import Optional, Tuple
from io import BytesIO

from PIL import Image as PILImage, UnidentifiedImageError

from ..domain.value_objects.image_data import ImageData


# Supported image formats
SUPPORTED_FORMATS = {"jpeg", "jpg", "png", "bmp", "webp", "gif"}

# Maximum image dimensions
MAX_IMAGE_DIMENSION = 8192

# Maximum payload size (10 MB)
MAX_FILE_SIZE = 10 * 1024 * 1024


def validate_image(image: ImageData) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate image data.

    Args:
        image: ImageData to validate

    Returns:
        Tuple of (is_valid, error_message, detected_format)
    """
    try:
        image_bytes = image.bytes
    except ValueError as e:
        return False, f"Failed to read image: {e}", None

    if not image_bytes:
        return False, "Image data is empty", None

    if len(image_bytes) > MAX_FILE_SIZE:
        return False, f"Image size exceeds maximum ({MAX_FILE_SIZE / 1024 / 1024:.1f} MB)", None

    try:
        pil_image = PILImage.open(BytesIO(image_bytes))
        pil_image.verify()

        # Reopen because verify() can only be called once
        pil_image = PILImage.open(BytesIO(image_bytes))
        width, height = pil_image.size
        img_format = pil_image.format.lower() if pil_image.format else "unknown"
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        return False, f"Invalid image data: {e}", None

    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        return False, f"Image dimensions exceed maximum ({MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})", None

    if img_format not in SUPPORTED_FORMATS:
        return False, f"Unsupported image format: {img_format}", None

    return True, None, img_format
