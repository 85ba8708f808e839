"""
Token Store Adapters

Implementations of TokenStorePort.
"""

from .memory_store import InMemoryTokenStore
from .sqlite_store import SqliteTokenStore
from .factory import TokenStoreFactory, TokenStoreType

__all__ = [
    "InMemoryTokenStore",
    "SqliteTokenStore",
    "TokenStoreFactory",
    "TokenStoreType",
]
