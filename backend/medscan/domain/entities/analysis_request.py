"""
Analysis Request Entity

The immutable input of one pipeline run.
"""

from dataclasses import dataclass
from typing import Optional, Union

from ..value_objects.image_data import ImageData
from ..exceptions import InvalidInputError


MIN_USER_ID_LENGTH = 5

# Used in prompts when the user sent only a photo
DEFAULT_QUERY = "Identify this medicine and explain what it is used for."


@dataclass(frozen=True)
class AnalysisRequest:
    """
    Input of a single analysis.

    Attributes:
        user_id: Account charged for the analysis
        image: Packaging photo, if any
        text_query: Free-text question, if any
    """

    user_id: str
    image: Optional[ImageData] = None
    text_query: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.user_id, str) or len(self.user_id.strip()) < MIN_USER_ID_LENGTH:
            raise InvalidInputError("user_id", "a valid user id is required")

        if self.image is None and not (self.text_query and self.text_query.strip()):
            raise InvalidInputError("image_data", "image data or text query is required")

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def query(self) -> str:
        """The user's question, or the default one for image-only requests."""
        if self.text_query and self.text_query.strip():
            return self.text_query.strip()
        return DEFAULT_QUERY

    @classmethod
    def create(
        cls,
        image_data: Union[str, bytes, ImageData, None],
        text_query: Optional[str],
        user_id: str
    ) -> "AnalysisRequest":
        """
        Build a request from wire values.

        Args:
            image_data: Base64 string / data URL, raw bytes, ImageData or None
            text_query: User question or None
            user_id: Account identifier

        Returns:
            Validated AnalysisRequest
        """
        image: Optional[ImageData]
        if image_data is None or image_data == "" or image_data == b"":
            image = None
        elif isinstance(image_data, ImageData):
            image = image_data
        elif isinstance(image_data, bytes):
            image = ImageData.from_bytes(image_data)
        elif isinstance(image_data, str):
            image = ImageData.from_base64(image_data)
        else:
            raise InvalidInputError("image_data", f"unsupported type {type(image_data).__name__}")

        return cls(
            user_id=user_id.strip() if isinstance(user_id, str) else user_id,
            image=image,
            text_query=text_query,
        )
