"""
Confidence Score Value Object

Represents the model's self-reported confidence for an extraction.
"""

from dataclasses import dataclass
from typing import Any, Optional


# Below this the signal is flagged as low confidence (never blocks the pipeline)
LOW_CONFIDENCE_THRESHOLD = 0.7


@dataclass(frozen=True)
class ConfidenceScore:
    """
    Immutable value object representing a confidence score.

    Attributes:
        value: Float between 0.0 and 1.0 representing confidence
        source: Optional identifier for what produced this score
    """

    value: float
    source: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate confidence score is within valid range."""
        if not 0.0 <= self.value <= 1.0:
            raise ValueError(f"Confidence score must be between 0.0 and 1.0, got {self.value}")

    def is_below(self, threshold: float = LOW_CONFIDENCE_THRESHOLD) -> bool:
        """Check if the score falls under a threshold."""
        return self.value < threshold

    def __str__(self) -> str:
        return f"{self.value:.2%}"

    def __repr__(self) -> str:
        return f"ConfidenceScore(value={self.value:.4f})"

    @classmethod
    def zero(cls) -> "ConfidenceScore":
        """Create a zero confidence score."""
        return cls(value=0.0, source="default")

    @classmethod
    def from_percentage(cls, percentage: float, source: Optional[str] = None) -> "ConfidenceScore":
        """Create from a percentage value (0-100)."""
        return cls(value=percentage / 100.0, source=source)

    @classmethod
    def from_model_value(cls, raw: Any, source: Optional[str] = "model") -> "ConfidenceScore":
        """
        Coerce whatever the model reported into a score.

        Accepts floats in [0, 1], percentages in (1, 100], numeric strings
        and strings with a trailing '%'. Anything else becomes zero.
        """
        if isinstance(raw, bool) or raw is None:
            return cls(value=0.0, source=source)

        if isinstance(raw, str):
            text = raw.strip().rstrip("%").strip()
            try:
                number = float(text)
            except ValueError:
                return cls(value=0.0, source=source)
            if raw.strip().endswith("%"):
                return cls.from_percentage(min(max(number, 0.0), 100.0), source=source)
        elif isinstance(raw, (int, float)):
            number = float(raw)
        else:
            return cls(value=0.0, source=source)

        if number != number:  # NaN
            return cls(value=0.0, source=source)
        if 1.0 < number <= 100.0:
            return cls.from_percentage(number, source=source)
        return cls(value=min(max(number, 0.0), 1.0), source=source)
