"""
Ports (Interfaces)

Abstract interfaces defining the contracts for infrastructure adapters.
Following Hexagonal Architecture / Ports & Adapters pattern.
"""

from .vision_model import VisionModelPort
from .registry_store import RegistryStorePort
from .token_store import TokenStorePort

__all__ = [
    "VisionModelPort",
    "RegistryStorePort",
    "TokenStorePort",
]
