"""
Application Layer

Use cases: the analysis pipeline and the services it coordinates.
"""

from .pipeline import PipelineOrchestrator, PipelineBuilder
from .services import TokenLedger, RegistryLookup

__all__ = [
    "PipelineOrchestrator",
    "PipelineBuilder",
    "TokenLedger",
    "RegistryLookup",
]
