"""
Medicine Report Entity

Final structured output of the pipeline and its raw-text fallback.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional


DISCLAIMER = (
    "Disclaimer: This information is sourced from medical databases and packaging details. "
    "For informational purposes only. Not medical advice. "
    "Consult a doctor or pharmacist before use."
)

# Order matters: clients render the sections in this order
REPORT_FIELDS = (
    "packaging_detected",
    "medicine_name",
    "generic_name",
    "purpose",
    "dosage_instructions",
    "side_effects",
    "allergy_warning",
    "drug_interactions",
    "safety_notes",
    "storage",
)


def _to_text(value: Any) -> str:
    """Flatten a model-provided value into a display string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return "\n".join(_to_text(v) for v in value if _to_text(v))
    if isinstance(value, dict):
        parts = []
        for key, item in value.items():
            text = _to_text(item)
            if text:
                parts.append(f"{str(key).replace('_', ' ').capitalize()}: {text}")
        return "\n".join(parts)
    return str(value)


def empty_report_fields() -> Dict[str, str]:
    """All report keys with empty values plus the disclaimer."""
    data = {name: "" for name in REPORT_FIELDS}
    data["disclaimer"] = DISCLAIMER
    return data


@dataclass(frozen=True)
class MedicineReport:
    """
    The ten-section medicine report.

    Every field is a string; sections the model could not fill are empty.
    The disclaimer is fixed and never taken from model output.
    """

    packaging_detected: str = ""
    medicine_name: str = ""
    generic_name: str = ""
    purpose: str = ""
    dosage_instructions: str = ""
    side_effects: str = ""
    allergy_warning: str = ""
    drug_interactions: str = ""
    safety_notes: str = ""
    storage: str = ""

    @property
    def disclaimer(self) -> str:
        return DISCLAIMER

    def to_dict(self) -> Dict[str, str]:
        data = {name: getattr(self, name) for name in REPORT_FIELDS}
        data["disclaimer"] = DISCLAIMER
        return data

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["MedicineReport"]:
        """
        Build a report from parsed model JSON.

        Accepts the flat schema or the ``{"status": ..., "data": {...}}``
        envelope. Returns None when no report section is present.
        """
        if not isinstance(payload, dict):
            return None

        body = payload
        if isinstance(payload.get("data"), dict) and not any(k in payload for k in REPORT_FIELDS):
            body = payload["data"]

        if not any(k in body for k in REPORT_FIELDS):
            return None

        return cls(**{name: _to_text(body.get(name)) for name in REPORT_FIELDS})


@dataclass(frozen=True)
class RawTextFallback:
    """
    Unstructured answer returned when no report could be extracted.

    Attributes:
        text: Raw model text
        note: Why the structured report is missing
    """

    text: str
    note: str

    def to_dict(self) -> Dict[str, str]:
        data = empty_report_fields()
        data["text"] = self.text
        data["note"] = self.note
        return data
