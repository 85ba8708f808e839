"""
JSON Registry Store

Medicine registry loaded from a JSON export of the registration database.
"""

from difflib import SequenceMatcher
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import asyncio
import json
import logging
import re

from ...domain.ports.registry_store import RegistryStorePort
from ...domain.entities.registry import RegistryRecord
from ...domain.exceptions import RegistryStoreError


logger = logging.getLogger(__name__)


def normalize_name(text: str) -> str:
    """Lowercase and collapse whitespace for name comparison."""
    return re.sub(r"\s+", " ", (text or "").strip().lower())


def normalize_reg_number(text: str) -> str:
    """Registration numbers compare without case or spaces (MAL 1999 0007T)."""
    return re.sub(r"[\s-]+", "", (text or "")).upper()


class JsonRegistryStore(RegistryStorePort):
    """
    Registry store over a JSON file.

    The file holds a list of rows (or ``{"medicines": [...]}``) using the
    registry export columns: ``reg_no``, ``product``, ``active_ingredient``,
    ``generic_name``, ``manufacturer``, ``holder``, ``status``.

    Name lookups are case-insensitive substring matches in registry order,
    with an exact match preferred. When nothing contains the name, a
    ``difflib`` similarity match above ``fuzzy_threshold`` is the last
    resort.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        fuzzy_threshold: Optional[float] = 0.85,
        records: Optional[List[Dict[str, Any]]] = None
    ):
        """
        Initialize the store.

        Args:
            path: JSON file to load lazily
            fuzzy_threshold: Minimum similarity for fuzzy name matches (None disables)
            records: Rows to use instead of a file
        """
        if path is None and records is None:
            raise ValueError("JsonRegistryStore needs a path or records")

        self._path = Path(path) if path is not None else None
        self._fuzzy_threshold = fuzzy_threshold
        self._records: Optional[List[RegistryRecord]] = (
            [RegistryRecord.from_row(row) for row in records] if records is not None else None
        )
        self._load_lock = asyncio.Lock()

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _read_file(self) -> List[RegistryRecord]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryStoreError(f"Could not load registry from {self._path}: {e}")

        rows = data.get("medicines", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            raise RegistryStoreError(f"Registry file {self._path} does not hold a list of medicines")

        records = [RegistryRecord.from_row(row) for row in rows if isinstance(row, dict)]
        self.logger.info(f"Loaded {len(records)} registry records from {self._path}")
        return records

    async def _all(self) -> List[RegistryRecord]:
        if self._records is None:
            async with self._load_lock:
                if self._records is None:
                    self._records = await asyncio.to_thread(self._read_file)
        return self._records

    def _match_name(self, records: List[RegistryRecord], name: str) -> Optional[RegistryRecord]:
        needle = normalize_name(name)
        if not needle:
            return None

        candidates = [r for r in records if needle in normalize_name(r.product_name)]
        for record in candidates:
            if normalize_name(record.product_name) == needle:
                return record
        if candidates:
            return candidates[0]

        return self._fuzzy_match(records, needle)

    def _fuzzy_match(self, records: List[RegistryRecord], needle: str) -> Optional[RegistryRecord]:
        if self._fuzzy_threshold is None:
            return None

        best_match = None
        best_ratio = self._fuzzy_threshold

        for record in records:
            ratio = SequenceMatcher(None, needle, normalize_name(record.product_name)).ratio()
            if ratio >= best_ratio:
                best_ratio = ratio
                best_match = record

        if best_match:
            self.logger.debug(f"Fuzzy match '{needle}' -> '{best_match.product_name}' ({best_ratio:.2f})")
        return best_match

    async def lookup_by_reg_number(self, registration_number: str) -> Optional[RegistryRecord]:
        wanted = normalize_reg_number(registration_number)
        if not wanted:
            return None

        for record in await self._all():
            if normalize_reg_number(record.registration_number) == wanted:
                return record
        return None

    async def lookup_by_name_and_ingredient(
        self,
        name: str,
        active_ingredient: str
    ) -> Optional[RegistryRecord]:
        needle = normalize_name(name)
        ingredient = normalize_name(active_ingredient)
        if not needle or not ingredient:
            return None

        for record in await self._all():
            if needle not in normalize_name(record.product_name):
                continue
            ingredients = f"{normalize_name(record.active_ingredient)} {normalize_name(record.generic_name)}"
            if ingredient in ingredients:
                return record
        return None

    async def lookup_by_name(self, name: str) -> Optional[RegistryRecord]:
        return self._match_name(await self._all(), name)

    async def search(self, partial_name: str, limit: int = 10) -> List[RegistryRecord]:
        needle = normalize_name(partial_name)
        if not needle or limit <= 0:
            return []

        matches = []
        for record in await self._all():
            if needle in normalize_name(record.product_name):
                matches.append(record)
                if len(matches) >= limit:
                    break
        return matches

    async def count(self) -> int:
        return len(await self._all())
