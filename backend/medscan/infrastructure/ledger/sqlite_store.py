"""
SQLite Token Store

Persistent token balances in the ``profiles`` table.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union
import asyncio
import logging
import sqlite3
import threading

from ...domain.ports.token_store import TokenStorePort
from ...domain.exceptions import LedgerStoreError


logger = logging.getLogger(__name__)


SCHEMA = (
    "CREATE TABLE IF NOT EXISTS profiles ("
    "id TEXT PRIMARY KEY, "
    "token_count INTEGER NOT NULL DEFAULT 0 CHECK (token_count >= 0), "
    "referral_code TEXT, "
    "created_at TEXT NOT NULL, "
    "updated_at TEXT NOT NULL)"
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteTokenStore(TokenStorePort):
    """
    Token balances in SQLite.

    The balance write is a conditional ``UPDATE ... WHERE token_count = ?``,
    so a stale read can never overwrite a concurrent change. Queries run in
    a worker thread over one shared connection guarded by a lock.
    """

    def __init__(self, db_path: Union[str, Path] = "./data/tokens.db"):
        """
        Open (and create if needed) the database.

        Args:
            db_path: SQLite file path, or ":memory:"

        Raises:
            LedgerStoreError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        self._lock = threading.Lock()

        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=10)
            self.conn.execute(SCHEMA)
            self.conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise LedgerStoreError(f"Could not open token database {self.db_path}: {e}")

        logger.info(f"Token store ready at {self.db_path}")

    def _get_balance(self, user_id: str) -> Optional[int]:
        with self._lock:
            row = self.conn.execute(
                "SELECT token_count FROM profiles WHERE id = ?", (user_id,)
            ).fetchone()
        return row[0] if row else None

    def _create_account(self, user_id: str, initial_balance: int) -> int:
        now = _now()
        with self._lock:
            self.conn.execute(
                "INSERT OR IGNORE INTO profiles (id, token_count, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (user_id, max(0, initial_balance), now, now)
            )
            self.conn.commit()
            row = self.conn.execute(
                "SELECT token_count FROM profiles WHERE id = ?", (user_id,)
            ).fetchone()
        return row[0]

    def _set_balance(self, user_id: str, new_balance: int, expected_balance: int) -> bool:
        if new_balance < 0:
            return False
        with self._lock:
            updated = self.conn.execute(
                "UPDATE profiles SET token_count = ?, updated_at = ? WHERE id = ? AND token_count = ?",
                (new_balance, _now(), user_id, expected_balance)
            ).rowcount
            self.conn.commit()
        return updated == 1

    async def _run(self, func, user_id: str, *args):
        try:
            return await asyncio.to_thread(func, user_id, *args)
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Token database error: {e}", user_id=user_id)

    async def get_balance(self, user_id: str) -> Optional[int]:
        return await self._run(self._get_balance, user_id)

    async def create_account(self, user_id: str, initial_balance: int) -> int:
        balance = await self._run(self._create_account, user_id, initial_balance)
        logger.debug(f"Account {user_id} has {balance} tokens")
        return balance

    async def set_balance(self, user_id: str, new_balance: int, expected_balance: int) -> bool:
        return await self._run(self._set_balance, user_id, new_balance, expected_balance)

    def close(self) -> None:
        self.conn.close()
