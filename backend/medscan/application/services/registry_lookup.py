"""
Registry Lookup Service

Ordered search strategies against the medicine registry.
"""

from typing import List, Optional
import logging
import re

from ...domain.ports.registry_store import RegistryStorePort
from ...domain.entities.registry import (
    RegistryOutcome,
    RegistryStatus,
    SearchMethod,
)
from ...domain.exceptions import RegistryError


logger = logging.getLogger(__name__)


# "Paracetamol and Caffeine", "Amoxicillin + Clavulanate", "A/B", "A, B", "A & B"
_INGREDIENT_SEPARATORS = re.compile(r"\s+and\s+|\s*[&+,/]\s*", re.IGNORECASE)

# Strength suffixes do not appear in ingredient-only registry names
_STRENGTH = re.compile(r"\s*\d+(?:\.\d+)?\s*(?:mg|mcg|µg|g|ml|iu|%)\b.*$", re.IGNORECASE)


def split_ingredients(active_ingredient: Optional[str]) -> List[str]:
    """
    Split a combined active-ingredient string into individual names.

    Returns an empty list when the string holds a single ingredient.
    """
    if not active_ingredient:
        return []

    parts = []
    for part in _INGREDIENT_SEPARATORS.split(active_ingredient):
        name = _STRENGTH.sub("", part).strip()
        if name and name.lower() not in (p.lower() for p in parts):
            parts.append(name)

    return parts if len(parts) > 1 else []


class RegistryLookup:
    """
    Registry lookup with a fixed strategy chain.

    Order: registration number, name plus ingredient, name only, then
    each individual ingredient of a combination product. The first hit
    wins and later strategies are not run. Exhausting the chain yields the
    NOT_FOUND sentinel; a failing store yields TOOL_ERROR.
    """

    def __init__(self, store: RegistryStorePort):
        self.store = store
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def lookup(
        self,
        name: Optional[str],
        reg_number: Optional[str] = None,
        active_ingredient: Optional[str] = None
    ) -> RegistryOutcome:
        """
        Find the best matching registry record.

        Args:
            name: Product name read from the packaging
            reg_number: Registration number, if visible
            active_ingredient: Active ingredient hint, if visible

        Returns:
            FOUND outcome with the record, or a sentinel outcome
        """
        name = (name or "").strip()
        reg_number = (reg_number or "").strip() or None
        active_ingredient = (active_ingredient or "").strip() or None

        if not name:
            return RegistryOutcome.sentinel(RegistryStatus.INVALID_SIGNAL)

        self.logger.info(
            f"Registry lookup: name='{name}' reg={reg_number} ingredient={active_ingredient}"
        )

        try:
            if reg_number:
                record = await self.store.lookup_by_reg_number(reg_number)
                if record:
                    self.logger.info(f"Registration number match: {record.product_name}")
                    return RegistryOutcome.found(record, SearchMethod.REGISTRATION_NUMBER, original_product=name)

            if active_ingredient:
                record = await self.store.lookup_by_name_and_ingredient(name, active_ingredient)
                if record:
                    self.logger.info(f"Name and ingredient match: {record.product_name}")
                    return RegistryOutcome.found(record, SearchMethod.NAME_AND_INGREDIENT, original_product=name)

            record = await self.store.lookup_by_name(name)
            if record:
                self.logger.info(f"Product name match: {record.product_name}")
                return RegistryOutcome.found(record, SearchMethod.PRODUCT_NAME, original_product=name)

            for ingredient in split_ingredients(active_ingredient):
                record = await self.store.lookup_by_name(ingredient)
                if record:
                    self.logger.info(f"Equivalent product by ingredient '{ingredient}': {record.product_name}")
                    return RegistryOutcome.found(
                        record,
                        SearchMethod.ACTIVE_INGREDIENT,
                        original_product=name,
                        searched_ingredient=ingredient,
                    )
        except RegistryError as e:
            self.logger.error(f"Registry lookup failed: {e}")
            return RegistryOutcome.sentinel(
                RegistryStatus.TOOL_ERROR,
                message=f"Registry lookup failed: {e.message}",
                original_product=name,
            )

        self.logger.info(f"No registry match for '{name}'")
        return RegistryOutcome.sentinel(RegistryStatus.NOT_FOUND, original_product=name)
