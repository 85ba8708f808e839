"""
Image Data Value Object

Represents the packaging photo passed to the vision model.
"""

from dataclasses import dataclass, field
from typing import Optional
import base64
import binascii


# Formats the vision providers accept as inline image parts
MIME_TYPES = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "bmp": "image/bmp",
}


@dataclass(frozen=True)
class ImageData:
    """
    Immutable value object representing image data.

    Attributes:
        source: Original source identifier
        format: Image format (e.g., "jpeg", "png")
        _bytes: Raw image bytes (internal)
        _base64: Base64 encoded image (internal)
    """

    source: Optional[str] = None
    format: Optional[str] = None
    _bytes: Optional[bytes] = field(default=None, repr=False)
    _base64: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self._bytes is None and self._base64 is None:
            raise ValueError("ImageData must have bytes or a base64 payload")

    @property
    def bytes(self) -> bytes:
        """
        Get raw image bytes.

        Raises:
            ValueError: If the base64 payload cannot be decoded
        """
        if self._bytes is not None:
            return self._bytes

        try:
            return base64.b64decode(self._base64, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Image payload is not valid base64: {e}")

    @property
    def base64_string(self) -> str:
        """Get base64 encoded image string (no data URL prefix)."""
        if self._base64 is not None:
            return self._base64
        return base64.b64encode(self.bytes).decode("utf-8")

    @property
    def mime_type(self) -> str:
        """MIME type sent to the model; JPEG when the format is unknown."""
        return MIME_TYPES.get((self.format or "").lower(), "image/jpeg")

    @property
    def data_url(self) -> str:
        """Image as a data URL, for providers that take image URLs."""
        return f"data:{self.mime_type};base64,{self.base64_string}"

    def with_format(self, format: str) -> "ImageData":
        """Return a copy carrying a detected format."""
        return ImageData(
            source=self.source,
            format=format,
            _bytes=self._bytes,
            _base64=self._base64,
        )

    def __len__(self) -> int:
        """Return size of image data in bytes."""
        return len(self.bytes)

    def __str__(self) -> str:
        return f"ImageData({self.format or 'unknown format'})"

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        format: Optional[str] = None,
        source: Optional[str] = None
    ) -> "ImageData":
        """Create ImageData from raw bytes."""
        return cls(source=source, format=format, _bytes=data)

    @classmethod
    def from_base64(
        cls,
        base64_string: str,
        format: Optional[str] = None,
        source: Optional[str] = None
    ) -> "ImageData":
        """
        Create ImageData from a base64 string or a data URL.

        Args:
            base64_string: Base64 data, optionally prefixed with
                ``data:image/<fmt>;base64,``
            format: Image format hint
            source: Optional source identifier

        Returns:
            ImageData instance
        """
        base64_string = base64_string.strip()

        # Handle data URL format
        if base64_string.startswith("data:"):
            header, _, base64_data = base64_string.partition(",")
            if "image/" in header:
                format = header.split("image/")[1].split(";")[0]
            base64_string = base64_data

        return cls(source=source, format=format, _base64=base64_string)
