"""
Value Objects

Immutable objects that represent domain concepts with no identity.
"""

from .confidence_score import ConfidenceScore, LOW_CONFIDENCE_THRESHOLD
from .image_data import ImageData

__all__ = [
    "ConfidenceScore",
    "LOW_CONFIDENCE_THRESHOLD",
    "ImageData",
]
