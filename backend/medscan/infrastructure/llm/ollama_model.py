"""
Ollama Vision Model

Local vision-language inference through an Ollama server, for running
quantized multimodal models (gemma3, llava, qwen2.5vl) on consumer GPUs.
"""

from typing import Optional, Dict, Any
import asyncio
import logging
import time

import requests

from ...domain.ports.vision_model import VisionModelPort
from ...domain.value_objects.image_data import ImageData
from ...domain.exceptions import ModelTimeoutError, ModelTransportError


logger = logging.getLogger(__name__)


class OllamaVisionModel(VisionModelPort):
    """
    Vision model using Ollama's ``/api/generate`` endpoint.

    The blocking HTTP call runs in a worker thread so concurrent pipeline
    runs are not blocked.

    Attributes:
        base_url: Ollama API base URL (default: http://localhost:11434)
        model: Model name (e.g., "gemma3:4b")
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "gemma3:4b",
        temperature: float = 0.1,
        max_tokens: int = 2048,
        timeout: int = 120
    ):
        self._base_url = base_url.rstrip('/')
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._session: Optional[requests.Session] = None

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _init_session(self) -> None:
        """Initialize HTTP session."""
        self._session = requests.Session()
        self._session.headers.update({
            'Content-Type': 'application/json',
        })

    def _build_payload(self, prompt: str, image: Optional[ImageData]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self._temperature,
                "num_predict": self._max_tokens,
            }
        }
        if image is not None:
            payload["images"] = [image.base64_string]
        return payload

    def _call_ollama(self, payload: Dict[str, Any]) -> str:
        """Call Ollama API and get response."""
        if not self._session:
            self._init_session()

        try:
            response = self._session.post(
                f"{self._base_url}/api/generate",
                json=payload,
                timeout=self._timeout
            )
            response.raise_for_status()
        except requests.Timeout as e:
            raise ModelTimeoutError(self._timeout, message=f"Ollama request timed out: {e}")
        except requests.RequestException as e:
            raise ModelTransportError(f"Ollama API error: {e}", provider="ollama")

        try:
            return response.json().get('response', '')
        except ValueError as e:
            raise ModelTransportError(f"Ollama returned invalid JSON: {e}", provider="ollama")

    async def generate(self, prompt: str, image: Optional[ImageData] = None) -> str:
        start_time = time.time()
        self.logger.info(f"Calling Ollama with model {self._model}...")

        text = await asyncio.to_thread(self._call_ollama, self._build_payload(prompt, image))

        self.logger.info(f"Ollama responded in {(time.time() - start_time) * 1000:.0f}ms")
        return text

    @property
    def model_name(self) -> str:
        return self._model
