"""
Infrastructure Layer

Adapters for the vision model, the medicine registry and the token store.
"""

from .llm import VisionModelFactory, ScriptedVisionModel
from .registry import RegistryStoreFactory, JsonRegistryStore
from .ledger import TokenStoreFactory, InMemoryTokenStore, SqliteTokenStore

__all__ = [
    "VisionModelFactory",
    "ScriptedVisionModel",
    "RegistryStoreFactory",
    "JsonRegistryStore",
    "TokenStoreFactory",
    "InMemoryTokenStore",
    "SqliteTokenStore",
]
