"""
Vision Model Port

Abstract interface for vision-capable language model clients.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..value_objects.image_data import ImageData


class VisionModelPort(ABC):
    """
    Port (interface) for vision-language model implementations.

    The pipeline only relies on "prompt in, text out". The text may or may
    not contain a fenced JSON block; interpreting it is the parser's job.

    Implementations may use:
    - Google Gemini
    - Groq-hosted vision models
    - Local models served by Ollama
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        image: Optional[ImageData] = None
    ) -> str:
        """
        Run one model call.

        Args:
            prompt: Instruction text
            image: Optional inline image sent alongside the prompt

        Returns:
            Raw model text

        Raises:
            ModelTransportError: If the call fails
            ModelConfigurationError: If the client cannot be built
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the name/identifier of the underlying model."""
        pass
