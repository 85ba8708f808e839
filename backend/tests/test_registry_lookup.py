import asyncio
from typing import List, Optional

import pytest

from medscan.application.services.registry_lookup import RegistryLookup, split_ingredients
from medscan.domain.entities.registry import RegistryRecord, RegistryStatus, SearchMethod
from medscan.domain.exceptions import RegistryStoreError
from medscan.domain.ports.registry_store import RegistryStorePort
from medscan.infrastructure.registry.json_registry import JsonRegistryStore, normalize_reg_number


class RecordingStore(RegistryStorePort):
    """Answers from a fixed table and records every strategy it is asked."""

    def __init__(self, by_reg=None, by_name_and_ingredient=None, by_name=None, fail=False):
        self.by_reg = by_reg or {}
        self.by_name_and_ingredient = by_name_and_ingredient or {}
        self.by_name = by_name or {}
        self.fail = fail
        self.calls: List[tuple] = []

    def _maybe_fail(self):
        if self.fail:
            raise RegistryStoreError("registry offline")

    async def lookup_by_reg_number(self, registration_number: str) -> Optional[RegistryRecord]:
        self.calls.append(("reg", registration_number))
        self._maybe_fail()
        return self.by_reg.get(registration_number)

    async def lookup_by_name_and_ingredient(self, name: str, active_ingredient: str) -> Optional[RegistryRecord]:
        self.calls.append(("name_and_ingredient", name, active_ingredient))
        self._maybe_fail()
        return self.by_name_and_ingredient.get((name, active_ingredient))

    async def lookup_by_name(self, name: str) -> Optional[RegistryRecord]:
        self.calls.append(("name", name))
        self._maybe_fail()
        return self.by_name.get(name)

    async def search(self, partial_name: str, limit: int = 10) -> List[RegistryRecord]:
        return []

    async def count(self) -> int:
        return 0


PANADOL = RegistryRecord(id="1", registration_number="MAL19913416XZ", product_name="PANADOL 500MG TABLET")
PARACETAMOL = RegistryRecord(id="4", registration_number="MAL19861234A", product_name="PARACETAMOL 500MG TABLET")


def lookup(store, *args, **kwargs):
    return asyncio.run(RegistryLookup(store).lookup(*args, **kwargs))


# ---------------------------------------------------------------------------
# Strategy order
# ---------------------------------------------------------------------------

def test_registration_number_short_circuits():
    store = RecordingStore(by_reg={"MAL19913416XZ": PANADOL}, by_name={"Panadol": PARACETAMOL})
    outcome = lookup(store, "Panadol", reg_number="MAL19913416XZ", active_ingredient="Paracetamol")

    assert outcome.is_hit
    assert outcome.record == PANADOL
    assert outcome.search_method == SearchMethod.REGISTRATION_NUMBER
    assert store.calls == [("reg", "MAL19913416XZ")]


def test_name_and_ingredient_before_name():
    store = RecordingStore(
        by_name_and_ingredient={("Panadol", "Paracetamol"): PANADOL},
        by_name={"Panadol": PARACETAMOL},
    )
    outcome = lookup(store, "Panadol", reg_number="MAL000", active_ingredient="Paracetamol")

    assert outcome.record == PANADOL
    assert outcome.search_method == SearchMethod.NAME_AND_INGREDIENT
    assert [c[0] for c in store.calls] == ["reg", "name_and_ingredient"]


def test_name_only_without_hints():
    store = RecordingStore(by_name={"Panadol": PANADOL})
    outcome = lookup(store, "Panadol")

    assert outcome.search_method == SearchMethod.PRODUCT_NAME
    assert outcome.original_product == "Panadol"
    assert store.calls == [("name", "Panadol")]


def test_per_ingredient_retry_for_combinations():
    store = RecordingStore(by_name={"Caffeine": PARACETAMOL})
    outcome = lookup(store, "Tylenol Cold", active_ingredient="Paracetamol 500mg and Caffeine 65mg")

    assert outcome.is_hit
    assert outcome.search_method == SearchMethod.ACTIVE_INGREDIENT
    assert outcome.searched_ingredient == "Caffeine"
    assert outcome.to_payload()["searched_ingredient"] == "Caffeine"
    assert store.calls == [
        ("name_and_ingredient", "Tylenol Cold", "Paracetamol 500mg and Caffeine 65mg"),
        ("name", "Tylenol Cold"),
        ("name", "Paracetamol"),
        ("name", "Caffeine"),
    ]


def test_chain_exhausted_is_not_found():
    store = RecordingStore()
    outcome = lookup(store, "Unknown Brand", reg_number="MAL123", active_ingredient="Unobtainium")

    assert outcome.status == RegistryStatus.NOT_FOUND
    assert outcome.record is None
    assert outcome.original_product == "Unknown Brand"
    assert outcome.to_payload()["id"] is None
    assert [c[0] for c in store.calls] == ["reg", "name_and_ingredient", "name"]


@pytest.mark.parametrize("name", ["", "   ", None])
def test_empty_name_is_invalid_signal(name):
    store = RecordingStore()
    outcome = lookup(store, name, reg_number="MAL19913416XZ")

    assert outcome.status == RegistryStatus.INVALID_SIGNAL
    assert store.calls == []


def test_store_failure_is_tool_error():
    outcome = lookup(RecordingStore(fail=True), "Panadol")

    assert outcome.status == RegistryStatus.TOOL_ERROR
    assert "registry offline" in outcome.message


# ---------------------------------------------------------------------------
# Ingredient splitting
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text, expected", [
    ("Paracetamol 500mg and Caffeine 65mg", ["Paracetamol", "Caffeine"]),
    ("Amoxicillin 500mg + Clavulanic Acid 125mg", ["Amoxicillin", "Clavulanic Acid"]),
    ("Menthol, Camphor", ["Menthol", "Camphor"]),
    ("Paracetamol/Caffeine", ["Paracetamol", "Caffeine"]),
    ("Paracetamol 500mg", []),
    ("Paracetamol and paracetamol", []),
    (None, []),
    ("", []),
])
def test_split_ingredients(text, expected):
    assert split_ingredients(text) == expected


# ---------------------------------------------------------------------------
# JSON registry
# ---------------------------------------------------------------------------

def test_json_registry_reg_number_ignores_spacing(registry_store):
    record = asyncio.run(registry_store.lookup_by_reg_number("mal 1999-0007t"))
    assert record.product_name == "PANADOL ACTIFAST 500MG TABLET"


def test_normalize_reg_number():
    assert normalize_reg_number(" mal 1991 3416-xz ") == "MAL19913416XZ"


def test_json_registry_prefers_exact_name(registry_store):
    record = asyncio.run(registry_store.lookup_by_name("paracetamol 500mg tablet"))
    assert record.id == "4"


def test_json_registry_substring_in_registry_order(registry_store):
    record = asyncio.run(registry_store.lookup_by_name("Panadol"))
    assert record.id == "1"


def test_json_registry_fuzzy_match(registry_store):
    record = asyncio.run(registry_store.lookup_by_name("GLUCOPHAGE 500MG TABLETS"))
    assert record.id == "9"


def test_json_registry_fuzzy_disabled():
    store = JsonRegistryStore(records=[{"id": "1", "product": "ZYRTEC 10MG TABLET"}], fuzzy_threshold=None)
    assert asyncio.run(store.lookup_by_name("ZYRTEK 10MG TABLET")) is None


def test_json_registry_name_and_ingredient(registry_store):
    record = asyncio.run(registry_store.lookup_by_name_and_ingredient("Panadol", "caffeine"))
    assert record.id == "3"


def test_json_registry_chain_end_to_end(registry_store):
    outcome = asyncio.run(
        RegistryLookup(registry_store).lookup("Tylenol Cold", active_ingredient="Paracetamol 500mg and Caffeine 65mg")
    )

    assert outcome.search_method == SearchMethod.ACTIVE_INGREDIENT
    assert outcome.record.product_name == "PARACETAMOL 500MG TABLET"


def test_json_registry_search_and_count(registry_store):
    results = asyncio.run(registry_store.search("panadol", limit=2))

    assert [r.id for r in results] == ["1", "2"]
    assert asyncio.run(registry_store.count()) == 12


def test_json_registry_accepts_wrapped_rows(tmp_path):
    path = tmp_path / "registry.json"
    path.write_text('{"medicines": [{"id": "a", "reg_no": "MAL1", "product": "TEST TABLET"}]}', encoding="utf-8")

    store = JsonRegistryStore(path=path)
    assert asyncio.run(store.lookup_by_reg_number("MAL1")).product_name == "TEST TABLET"


def test_json_registry_unreadable_file(tmp_path):
    store = JsonRegistryStore(path=tmp_path / "missing.json")
    outcome = asyncio.run(RegistryLookup(store).lookup("Panadol"))

    assert outcome.status == RegistryStatus.TOOL_ERROR
