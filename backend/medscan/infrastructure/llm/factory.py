"""
Vision Model Factory

Factory for creating vision model instances.
Supports cloud (Gemini, Groq) and local (Ollama) models.
"""

from enum import Enum

from ...config.settings import LLMConfig
from ...domain.ports.vision_model import VisionModelPort
from .scripted_model import ScriptedVisionModel


class ModelProvider(Enum):
    """Available vision model implementations."""

    GEMINI = "gemini"
    GROQ = "groq"
    OLLAMA = "ollama"
    DUMMY = "dummy"


class VisionModelFactory:
    """
    Factory for creating vision model instances.

    Usage:
        model = VisionModelFactory.create(
            ModelProvider.GEMINI,
            api_key="your-api-key"
        )

        model = VisionModelFactory.create_from_config(config.llm)
    """

    @staticmethod
    def create(provider: ModelProvider, **kwargs) -> VisionModelPort:
        """
        Create a vision model instance.

        Args:
            provider: Which implementation to create
            **kwargs: Configuration options
                For Gemini / Groq:
                - api_key: Provider API key
                For Ollama:
                - base_url: Ollama API URL (default: http://localhost:11434)
                Common:
                - model, temperature, max_tokens, timeout

        Returns:
            VisionModelPort implementation
        """
        if provider == ModelProvider.GEMINI:
            from .gemini_model import GeminiVisionModel

            return GeminiVisionModel(
                api_key=kwargs.get("api_key"),
                model=kwargs.get("model", "gemini-2.5-flash"),
                temperature=kwargs.get("temperature", 0.1),
                max_tokens=kwargs.get("max_tokens", 2048),
                timeout=kwargs.get("timeout", 60)
            )

        elif provider == ModelProvider.GROQ:
            from .groq_model import GroqVisionModel

            return GroqVisionModel(
                api_key=kwargs.get("api_key"),
                model=kwargs.get("model", "meta-llama/llama-4-scout-17b-16e-instruct"),
                temperature=kwargs.get("temperature", 0.1),
                max_tokens=kwargs.get("max_tokens", 2048),
                timeout=kwargs.get("timeout", 60)
            )

        elif provider == ModelProvider.OLLAMA:
            from .ollama_model import OllamaVisionModel

            return OllamaVisionModel(
                base_url=kwargs.get("base_url", "http://localhost:11434"),
                model=kwargs.get("model", "gemma3:4b"),
                temperature=kwargs.get("temperature", 0.1),
                max_tokens=kwargs.get("max_tokens", 2048),
                timeout=kwargs.get("timeout", 120)
            )

        elif provider == ModelProvider.DUMMY:
            return ScriptedVisionModel(model_name="dummy")

        else:
            raise ValueError(f"Unknown model provider: {provider}")

    @staticmethod
    def create_from_config(config: LLMConfig) -> VisionModelPort:
        """Create a model from the LLM configuration section."""
        try:
            provider = ModelProvider(config.provider.lower())
        except ValueError:
            raise ValueError(
                f"Unknown model provider '{config.provider}'. "
                f"Expected one of: {', '.join(p.value for p in ModelProvider)}"
            )

        return VisionModelFactory.create(
            provider,
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
        )
