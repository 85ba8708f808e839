"""
Vision Model Adapters

Implementations of VisionModelPort.
Supports cloud (Gemini, Groq) and local (Ollama) models.
"""

from .scripted_model import ScriptedVisionModel, ModelCall
from .factory import VisionModelFactory, ModelProvider

__all__ = [
    "ScriptedVisionModel",
    "ModelCall",
    "VisionModelFactory",
    "ModelProvider",
]
