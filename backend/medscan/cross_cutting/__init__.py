"""
Cross-Cutting Concerns

Utilities that span across multiple layers.
"""

from .logging import setup_logging, PipelineLogger
from .validation import validate_image
from .error_handling import ErrorHandler

__all__ = [
    "setup_logging",
    "PipelineLogger",
    "validate_image",
    "ErrorHandler",
]
