"""
Tool Signal Entity

Structured lookup request extracted from the first model response.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

from ..value_objects.confidence_score import ConfidenceScore, LOW_CONFIDENCE_THRESHOLD


@dataclass(frozen=True)
class ToolSignal:
    """
    Parameters of the registry lookup the model asked for.

    Attributes:
        product_name: Most prominent text on the packaging
        active_ingredient: Active ingredient(s) as printed, if visible
        strength: Strength as printed, if visible
        confidence: Model's self-reported confidence
        all_visible_text: Every visible text fragment, most prominent first
        registration_number: MAL/NOT registration number, if visible
        manufacturer: Manufacturer, if visible
    """

    product_name: str
    active_ingredient: Optional[str] = None
    strength: Optional[str] = None
    confidence: ConfidenceScore = field(default_factory=ConfidenceScore.zero)
    all_visible_text: str = ""
    registration_number: Optional[str] = None
    manufacturer: Optional[str] = None

    def is_low_confidence(self, threshold: float = LOW_CONFIDENCE_THRESHOLD) -> bool:
        return self.confidence.is_below(threshold)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_name": self.product_name,
            "active_ingredient": self.active_ingredient,
            "strength": self.strength,
            "confidence": self.confidence.value,
            "all_visible_text": self.all_visible_text,
            "registration_number": self.registration_number,
            "manufacturer": self.manufacturer,
        }


class SignalStatus(Enum):
    """Outcome of parsing the first model response."""

    VALID = "VALID"                    # tool call with a usable product name
    INVALID_SIGNAL = "INVALID_SIGNAL"  # JSON parsed but parameters unusable
    NO_SIGNAL = "NO_SIGNAL"            # no JSON at all, model answered directly
    TOOL_ERROR = "TOOL_ERROR"          # fenced JSON that does not parse


@dataclass(frozen=True)
class SignalParseOutcome:
    """
    Tagged result of ``parse_tool_signal``.

    ``signal`` is set only for VALID; ``error`` carries the reason for
    INVALID_SIGNAL and TOOL_ERROR.
    """

    status: SignalStatus
    raw_text: str
    signal: Optional[ToolSignal] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status == SignalStatus.VALID
