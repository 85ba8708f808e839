"""
Token Store Port

Abstract interface over persistent per-user token balances.
"""

from abc import ABC, abstractmethod
from typing import Optional


class TokenStorePort(ABC):
    """
    Port (interface) for the token ledger's storage.

    Raises:
        LedgerStoreError: From any method when the store fails
    """

    @abstractmethod
    async def get_balance(self, user_id: str) -> Optional[int]:
        """Current balance, or None when the account does not exist."""
        pass

    @abstractmethod
    async def create_account(self, user_id: str, initial_balance: int) -> int:
        """
        Create an account and return its balance.

        Creating an account that already exists is not an error; the
        existing balance is returned unchanged.
        """
        pass

    @abstractmethod
    async def set_balance(
        self,
        user_id: str,
        new_balance: int,
        expected_balance: int
    ) -> bool:
        """
        Compare-and-swap the balance.

        Returns:
            True if the stored balance equaled ``expected_balance`` and was
            replaced, False otherwise (including a missing account)
        """
        pass
