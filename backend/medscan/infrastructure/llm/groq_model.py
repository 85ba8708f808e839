"""
Groq Vision Model

Vision-language calls through the Groq chat completions API.
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


class GroqVisionModel(VisionModelPort):
    """
    Vision model backed by ``groq.AsyncGroq``.

    The image is sent as an ``image_url`` content part holding a data URL.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "meta-llama/llama-4-scout-17b-16e-instruct",
        temperature: float = 0.1,
        max_tokens: int = 2048,
        timeout: int = 60
    ):
        if not api_key:
            raise ModelConfigurationError("Groq API key is not configured (set GROQ_API_KEY)")

        self._api_key = api_key
        self._model_name = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._client: Any = None

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _init_client(self) -> None:
        """Initialize the Groq client."""
        from groq import AsyncGroq

        self._client = AsyncGroq(api_key=self._api_key, timeout=self._timeout)

    def _build_messages(self, prompt: str, image: Optional[ImageData]) -> list:
        if image is None:
            return [{"role": "user", "content": prompt}]

        return [{
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image.data_url}},
            ],
        }]

    async def generate(self, prompt: str, image: Optional[ImageData] = None) -> str:
        import groq

        if self._client is None:
            self._init_client()

        start_time = time.time()
        try:
            response = await self._client.chat.completions.create(
                model=self._model_name,
                messages=self._build_messages(prompt, image),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except groq.RateLimitError as e:
            raise ModelRateLimitError(f"Groq rate limit: {e}", provider="groq")
        except groq.APITimeoutError as e:
            raise ModelTimeoutError(self._timeout, message=f"Groq request timed out: {e}")
        except groq.APIError as e:
            raise ModelTransportError(f"Groq API error: {e}", provider="groq")

        self.logger.info(f"Groq responded in {(time.time() - start_time) * 1000:.0f}ms")
        return response.choices[0].message.content or ""

    @property
    def model_name(self) -> str:
        return self._model_name
