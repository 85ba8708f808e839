"""
Registry Store Port

Abstract interface over the medicine registry's storage.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities.registry import RegistryRecord


class RegistryStorePort(ABC):
    """
    Port (interface) for read-only registry queries.

    Each query returns the best row for one matching strategy or None.
    Strategy ordering lives in the application layer, not here.

    Raises:
        RegistryStoreError: From any method when the store is unreachable
    """

    @abstractmethod
    async def lookup_by_reg_number(self, registration_number: str) -> Optional[RegistryRecord]:
        """Exact registration-number match."""
        pass

    @abstractmethod
    async def lookup_by_name_and_ingredient(
        self,
        name: str,
        ingredient: str
    ) -> Optional[RegistryRecord]:
        """Product-name match that also lists the ingredient."""
        pass

    @abstractmethod
    async def lookup_by_name(self, name: str) -> Optional[RegistryRecord]:
        """Plain product-name substring match."""
        pass

    @abstractmethod
    async def search(self, partial_name: str, limit: int = 10) -> List[RegistryRecord]:
        """Suggestions for a partial product name."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of records in the registry."""
        pass
