"""
In-Memory Token Store

Process-local balances for development and tests.
"""

from typing import Dict, Optional
import logging

from ...domain.ports.token_store import TokenStorePort


logger = logging.getLogger(__name__)


class InMemoryTokenStore(TokenStorePort):
    """
    Token balances held in a dict.

    Every method completes without awaiting, so each call is atomic with
    respect to other coroutines on the event loop.
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = dict(balances or {})

    async def get_balance(self, user_id: str) -> Optional[int]:
        return self._balances.get(user_id)

    async def create_account(self, user_id: str, initial_balance: int) -> int:
        if user_id not in self._balances:
            self._balances[user_id] = max(0, initial_balance)
        return self._balances[user_id]

    async def set_balance(self, user_id: str, new_balance: int, expected_balance: int) -> bool:
        if new_balance < 0:
            return False
        if self._balances.get(user_id) != expected_balance:
            return False
        self._balances[user_id] = new_balance
        return True

    def __len__(self) -> int:
        return len(self._balances)
