"""
Registry Store Factory

Factory for creating registry store instances.
"""

from enum import Enum

from ...config.settings import RegistryConfig
from ...domain.ports.registry_store import RegistryStorePort
from .json_registry import JsonRegistryStore


class RegistryStoreType(Enum):
    """Available registry store implementations."""

    JSON = "json"


class RegistryStoreFactory:
    """
    Factory for creating registry store instances.

    Usage:
        store = RegistryStoreFactory.create_from_config(config.registry)
    """

    @staticmethod
    def create(store_type: RegistryStoreType, **kwargs) -> RegistryStorePort:
        """
        Create a registry store.

        Args:
            store_type: Type of store to create
            **kwargs: Configuration options
                For JSON:
                - path: Registry JSON file
                - fuzzy_threshold: Minimum similarity for fuzzy matches
        """
        if store_type == RegistryStoreType.JSON:
            return JsonRegistryStore(
                path=kwargs.get("path"),
                fuzzy_threshold=kwargs.get("fuzzy_threshold", 0.85),
            )

        raise ValueError(f"Unknown registry store type: {store_type}")

    @staticmethod
    def create_from_config(config: RegistryConfig) -> RegistryStorePort:
        """Create a store from the registry configuration section."""
        return RegistryStoreFactory.create(
            RegistryStoreType(config.type.lower()),
            path=config.path,
            fuzzy_threshold=config.fuzzy_threshold,
        )
