"""
Registry Entities

Verified medicine records and the outcome of a registry lookup.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class RegistryRecord:
    """
    A verified row of the medicine registry.

    Attributes:
        id: Registry row identifier
        registration_number: MAL/NOT registration number
        product_name: Registered product name
        active_ingredient: Active ingredient(s) with strengths
        generic_name: Generic name
        manufacturer: Manufacturer name
        holder: Product registration holder
        status: Registration status
    """

    id: str
    registration_number: str = ""
    product_name: str = ""
    active_ingredient: str = ""
    generic_name: str = ""
    manufacturer: str = ""
    holder: str = ""
    status: str = ""
    description: str = ""

    # Column aliases seen in registry exports
    _ALIASES = {
        "registration_number": ("registration_number", "reg_no"),
        "product_name": ("product_name", "product", "npra_product"),
        "active_ingredient": ("active_ingredient", "text"),
    }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RegistryRecord":
        """Build a record from a raw registry row."""
        def pick(name: str) -> str:
            for key in cls._ALIASES.get(name, (name,)):
                value = row.get(key)
                if value not in (None, ""):
                    return str(value).strip()
            return ""

        return cls(
            id=str(row.get("id") or row.get("ref_no") or pick("registration_number")),
            registration_number=pick("registration_number"),
            product_name=pick("product_name"),
            active_ingredient=pick("active_ingredient"),
            generic_name=pick("generic_name"),
            manufacturer=pick("manufacturer"),
            holder=pick("holder"),
            status=pick("status"),
            description=pick("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "registration_number": self.registration_number,
            "product_name": self.product_name,
            "active_ingredient": self.active_ingredient,
            "generic_name": self.generic_name,
            "manufacturer": self.manufacturer,
            "holder": self.holder,
            "status": self.status,
        }


class RegistryStatus(Enum):
    """Closed set of registry outcomes the orchestrator branches on."""

    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    TOOL_ERROR = "TOOL_ERROR"
    NO_SIGNAL = "NO_SIGNAL"
    INVALID_SIGNAL = "INVALID_SIGNAL"


class SearchMethod(Enum):
    """Which lookup strategy produced a hit."""

    REGISTRATION_NUMBER = "registration_number"
    NAME_AND_INGREDIENT = "name_and_ingredient"
    PRODUCT_NAME = "product_name"
    ACTIVE_INGREDIENT = "active_ingredient"


DEFAULT_MESSAGES = {
    RegistryStatus.FOUND: "Product found and verified in the medicine registry.",
    RegistryStatus.NOT_FOUND: (
        "No medicine found in the registry. "
        "Use packaging analysis and general pharmacological knowledge."
    ),
    RegistryStatus.TOOL_ERROR: "Error executing the registry lookup tool or parsing the model signal.",
    RegistryStatus.NO_SIGNAL: "Model provided a direct answer. Bypassing registry lookup.",
    RegistryStatus.INVALID_SIGNAL: "Lookup request had no usable product name. Registry lookup skipped.",
}


@dataclass(frozen=True)
class RegistryOutcome:
    """
    Result of the registry step: a found record or a sentinel status.

    Attributes:
        status: Outcome tag
        record: Matching record (FOUND only)
        message: Human-readable explanation
        search_method: Strategy that matched (FOUND only)
        searched_ingredient: Ingredient used by the per-ingredient retry
        original_product: Product name the model extracted
    """

    status: RegistryStatus
    record: Optional[RegistryRecord] = None
    message: str = ""
    search_method: Optional[SearchMethod] = None
    searched_ingredient: Optional[str] = None
    original_product: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_hit(self) -> bool:
        return self.status == RegistryStatus.FOUND and self.record is not None

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready view used in prompts and in the result metadata."""
        if self.is_hit:
            payload = self.record.to_dict()
            payload["search_method"] = self.search_method.value if self.search_method else None
            if self.searched_ingredient:
                payload["searched_ingredient"] = self.searched_ingredient
            if self.original_product:
                payload["original_product"] = self.original_product
            return payload

        payload = {
            "id": None,
            "status": self.status.value,
            "message": self.message or DEFAULT_MESSAGES[self.status],
        }
        if self.original_product:
            payload["original_product"] = self.original_product
        if self.details:
            payload["details"] = dict(self.details)
        return payload

    @classmethod
    def found(
        cls,
        record: RegistryRecord,
        search_method: SearchMethod,
        original_product: Optional[str] = None,
        searched_ingredient: Optional[str] = None
    ) -> "RegistryOutcome":
        return cls(
            status=RegistryStatus.FOUND,
            record=record,
            message=DEFAULT_MESSAGES[RegistryStatus.FOUND],
            search_method=search_method,
            searched_ingredient=searched_ingredient,
            original_product=original_product,
        )

    @classmethod
    def sentinel(
        cls,
        status: RegistryStatus,
        message: Optional[str] = None,
        original_product: Optional[str] = None,
        **details
    ) -> "RegistryOutcome":
        if status == RegistryStatus.FOUND:
            raise ValueError("FOUND is not a sentinel status")
        return cls(
            status=status,
            message=message or DEFAULT_MESSAGES[status],
            original_product=original_product,
            details=details,
        )
