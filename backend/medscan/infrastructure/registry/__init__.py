"""
Registry Store Adapters

Implementations of RegistryStorePort.
"""

from .json_registry import JsonRegistryStore
from .factory import RegistryStoreFactory, RegistryStoreType

__all__ = [
    "JsonRegistryStore",
    "RegistryStoreFactory",
    "RegistryStoreType",
]
