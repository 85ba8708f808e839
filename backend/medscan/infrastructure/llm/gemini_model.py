"""
Gemini Vision Model

Vision-language calls through Google's Gemini API.
"""

from typing import Optional, Any
import logging
import time

from ...domain.ports.vision_model import VisionModelPort
from ...domain.value_objects.image_data import ImageData
from ...domain.exceptions import (
    ModelConfigurationError,
    ModelRateLimitError,
    ModelTimeoutError,
    ModelTransportError,
)


logger = logging.getLogger(__name__)


class GeminiVisionModel(VisionModelPort):
    """
    Vision model backed by ``google-generativeai``.

    The image travels as an inline part next to the prompt text.

    Attributes:
        model: Gemini model name (e.g., "gemini-2.5-flash")
        temperature: Sampling temperature
        max_tokens: Maximum output tokens
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.1,
        max_tokens: int = 2048,
        timeout: int = 60
    ):
        """
        Initialize the Gemini model.

        Args:
            api_key: Google AI Studio API key
            model: Model name
            temperature: Sampling temperature
            max_tokens: Maximum output tokens
            timeout: Request timeout in seconds

        Raises:
            ModelConfigurationError: If no API key is given
        """
        if not api_key:
            raise ModelConfigurationError("Gemini API key is not configured (set GOOGLE_API_KEY)")

        self._api_key = api_key
        self._model_name = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._client: Any = None

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _init_client(self) -> None:
        """Initialize the Gemini client."""
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        self._client = genai.GenerativeModel(
            self._model_name,
            generation_config=genai.GenerationConfig(
                temperature=self._temperature,
                max_output_tokens=self._max_tokens,
            ),
        )
        self.logger.info(f"Gemini client initialized with model {self._model_name}")

    async def generate(self, prompt: str, image: Optional[ImageData] = None) -> str:
        """
        Send the prompt (and image) to Gemini.

        Raises:
            ModelRateLimitError: On quota exhaustion
            ModelTimeoutError: On a provider deadline
            ModelTransportError: On any other provider failure
        """
        from google.api_core import exceptions as google_exceptions

        if self._client is None:
            self._init_client()

        content: list = [prompt]
        if image is not None:
            content.append({"mime_type": image.mime_type, "data": image.bytes})

        start_time = time.time()
        try:
            response = await self._client.generate_content_async(
                content,
                request_options={"timeout": self._timeout},
            )
            text = response.text
        except google_exceptions.ResourceExhausted as e:
            raise ModelRateLimitError(f"Gemini rate limit: {e}", provider="gemini")
        except google_exceptions.DeadlineExceeded as e:
            raise ModelTimeoutError(self._timeout, message=f"Gemini deadline exceeded: {e}")
        except google_exceptions.GoogleAPIError as e:
            raise ModelTransportError(f"Gemini API error: {e}", provider="gemini")
        except ValueError as e:
            # response.text raises when the candidate was blocked or empty
            raise ModelTransportError(f"Gemini returned no text: {e}", provider="gemini")

        self.logger.info(f"Gemini responded in {(time.time() - start_time) * 1000:.0f}ms")
        return text

    @property
    def model_name(self) -> str:
        return self._model_name
