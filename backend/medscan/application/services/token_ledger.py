"""
Token Ledger Service

Per-user token balance checks, reservations and debits.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, Optional, Any
import asyncio
import logging

from ...domain.ports.token_store import TokenStorePort
from ...domain.exceptions import LedgerError


logger = logging.getLogger(__name__)


class TokenCheckReason(Enum):
    """Why an availability check passed or failed."""

    SUFFICIENT = "SUFFICIENT"
    INSUFFICIENT_TOKENS = "INSUFFICIENT_TOKENS"
    DATABASE_ERROR = "DATABASE_ERROR"


@dataclass(frozen=True)
class TokenCheck:
    """
    Result of an availability check.

    Attributes:
        available: Whether the user may start an analysis
        reason: SUFFICIENT, INSUFFICIENT_TOKENS or DATABASE_ERROR
        balance: Spendable balance seen by the check (None on DATABASE_ERROR)
    """

    available: bool
    reason: TokenCheckReason
    balance: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "reason": self.reason.value,
            "balance": self.balance,
        }


class TokenReservation:
    """
    Tokens held for one pipeline run.

    Created by ``TokenLedger.reserve``. ``commit`` debits the held tokens;
    the hold itself is dropped when the reservation context exits.
    """

    def __init__(self, ledger: "TokenLedger", user_id: str, check: TokenCheck, amount: int):
        self._ledger = ledger
        self.user_id = user_id
        self.check = check
        self.amount = amount
        self._held = check.available
        self.committed = False

    @property
    def available(self) -> bool:
        return self.check.available

    async def commit(self) -> bool:
        """
        Debit the reserved tokens.

        Returns:
            True if the store balance was decremented
        """
        if not self._held:
            return False

        async with self._ledger._lock_for(self.user_id):
            try:
                self.committed = await self._ledger.decrement(self.user_id, self.amount)
            finally:
                self._release()
        return self.committed

    def _release(self) -> None:
        if self._held:
            self._ledger._release(self.user_id, self.amount)
            self._held = False


class TokenLedger:
    """
    Token ledger over a ``TokenStorePort``.

    First-seen users are provisioned with the welcome balance during the
    availability check. Decrements re-read the balance and write with
    compare-and-swap, so a stale check can never drive a balance negative.

    Concurrent runs inside one process additionally hold a per-user
    reservation between the check and the debit: a user with one token can
    only have one analysis in flight.

    Usage:
        async with ledger.reserve(user_id) as reservation:
            if not reservation.available:
                ...
            ...
            await reservation.commit()
    """

    def __init__(
        self,
        store: TokenStorePort,
        welcome_tokens: int = 30,
        max_decrement_attempts: int = 3
    ):
        """
        Initialize the ledger.

        Args:
            store: Persistent balance store
            welcome_tokens: Balance granted to first-seen users
            max_decrement_attempts: CAS attempts before a debit gives up
        """
        self.store = store
        self.welcome_tokens = welcome_tokens
        self.max_decrement_attempts = max(1, max_decrement_attempts)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._pending: Dict[str, int] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def _drop_lock_user(self, user_id: str) -> None:
        remaining = self._lock_users.get(user_id, 0) - 1
        if remaining > 0:
            self._lock_users[user_id] = remaining
        else:
            self._lock_users.pop(user_id, None)
            self._locks.pop(user_id, None)

    def _release(self, user_id: str, amount: int) -> None:
        remaining = self._pending.get(user_id, 0) - amount
        if remaining > 0:
            self._pending[user_id] = remaining
        else:
            self._pending.pop(user_id, None)

    def pending(self, user_id: str) -> int:
        """Tokens currently held by in-flight runs of a user."""
        return self._pending.get(user_id, 0)

    async def _ensure_account(self, user_id: str) -> int:
        balance = await self.store.get_balance(user_id)
        if balance is None:
            balance = await self.store.create_account(user_id, self.welcome_tokens)
            self.logger.info(f"Provisioned account {user_id} with {balance} tokens")
        return balance

    async def get_balance(self, user_id: str) -> Optional[int]:
        """
        Read the stored balance without provisioning.

        Returns:
            Balance, or None if the account does not exist

        Raises:
            LedgerError: If the store fails
        """
        return await self.store.get_balance(user_id)

    async def check_availability(self, user_id: str, required_count: int = 1) -> TokenCheck:
        """
        Check whether a user holds at least ``required_count`` tokens.

        Creates the account with the welcome balance when it does not exist.
        Store failures are reported as DATABASE_ERROR, never raised.
        """
        try:
            balance = await self._ensure_account(user_id)
        except LedgerError as e:
            self.logger.error(f"Token availability check failed for {user_id}: {e}")
            return TokenCheck(available=False, reason=TokenCheckReason.DATABASE_ERROR)

        spendable = balance - self.pending(user_id)
        if spendable >= required_count:
            return TokenCheck(available=True, reason=TokenCheckReason.SUFFICIENT, balance=spendable)

        self.logger.info(f"User {user_id} has {spendable} spendable tokens, {required_count} required")
        return TokenCheck(
            available=False,
            reason=TokenCheckReason.INSUFFICIENT_TOKENS,
            balance=max(spendable, 0),
        )

    @asynccontextmanager
    async def reserve(self, user_id: str, required_count: int = 1) -> AsyncIterator[TokenReservation]:
        """
        Check availability and hold the tokens for the duration of the block.

        The hold is released on every exit path; ``commit`` turns it into a
        debit.
        """
        # The lock lives as long as some reserve block for the user is open.
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with self._lock_for(user_id):
                check = await self.check_availability(user_id, required_count)
                if check.available:
                    self._pending[user_id] = self.pending(user_id) + required_count

            reservation = TokenReservation(self, user_id, check, required_count)
            try:
                yield reservation
            finally:
                reservation._release()
        finally:
            self._drop_lock_user(user_id)

    async def decrement(self, user_id: str, count: int = 1) -> bool:
        """
        Debit ``count`` tokens.

        Re-reads the balance before writing. Fails without mutation when the
        account is missing, the balance is already zero or below ``count``,
        or the store keeps rejecting the compare-and-swap.

        Returns:
            True if the balance was decremented
        """
        for attempt in range(1, self.max_decrement_attempts + 1):
            try:
                balance = await self.store.get_balance(user_id)
                if balance is None or balance <= 0 or balance < count:
                    self.logger.warning(f"Cannot debit {user_id}: balance={balance}")
                    return False

                if await self.store.set_balance(user_id, balance - count, expected_balance=balance):
                    self.logger.info(f"Debited {count} token(s) from {user_id}, {balance - count} remaining")
                    return True
            except LedgerError as e:
                self.logger.error(f"Token debit failed for {user_id}: {e}")
                return False

            self.logger.debug(f"Balance of {user_id} changed during debit (attempt {attempt}), retrying")

        self.logger.warning(f"Gave up debiting {user_id} after {self.max_decrement_attempts} attempts")
        return False
