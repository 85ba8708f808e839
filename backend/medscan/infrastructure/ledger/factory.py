"""
Token Store Factory

Factory for creating token store instances.
"""

from enum import Enum

from ...config.settings import LedgerConfig
from ...domain.ports.token_store import TokenStorePort
from .memory_store import InMemoryTokenStore


class TokenStoreType(Enum):
    """Available token store implementations."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class TokenStoreFactory:
    """
    Factory for creating token store instances.

    Usage:
        store = TokenStoreFactory.create(
            TokenStoreType.SQLITE,
            database_path="./data/tokens.db"
        )
    """

    @staticmethod
    def create(store_type: TokenStoreType, **kwargs) -> TokenStorePort:
        """
        Create a token store.

        Args:
            store_type: Type of store to create
            **kwargs: Configuration options
                For SQLITE:
                - database_path: SQLite file path
        """
        if store_type == TokenStoreType.MEMORY:
            return InMemoryTokenStore()

        elif store_type == TokenStoreType.SQLITE:
            from .sqlite_store import SqliteTokenStore

            return SqliteTokenStore(db_path=kwargs.get("database_path", "./data/tokens.db"))

        raise ValueError(f"Unknown token store type: {store_type}")

    @staticmethod
    def create_from_config(config: LedgerConfig) -> TokenStorePort:
        """Create a store from the ledger configuration section."""
        return TokenStoreFactory.create(
            TokenStoreType(config.type.lower()),
            database_path=config.database_path,
        )
