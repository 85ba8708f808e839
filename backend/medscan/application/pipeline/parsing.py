"""
Response Parser

Best-effort extraction of JSON from free-form model text.

Extraction runs a chain of strategies: a fenced code block first, then a
bare ``{...}`` span. A fenced block that does not parse is reported as an
error; a bare span that does not parse is treated as absent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Union
import json
import logging
import re

from ...domain.entities.tool_signal import ToolSignal, SignalStatus, SignalParseOutcome
from ...domain.entities.medicine_report import MedicineReport, RawTextFallback
from ...domain.value_objects.confidence_score import ConfidenceScore


logger = logging.getLogger(__name__)


NOTE_FINAL_PARSE_FAILED = "JSON parsing failed after second call, returning raw text."
NOTE_NO_FINAL_JSON = "LLM did not return structured JSON for final output."

# Values models use for "not visible"
_NULL_STRINGS = {"", "null", "none", "n/a", "na", "unknown", "not visible"}


@dataclass(frozen=True)
class Extraction:
    """
    A JSON candidate found in model text.

    Attributes:
        strategy: Name of the extractor that found it
        text: Candidate JSON text
        payload: Decoded JSON (None when decoding failed)
        error: Decoder message when decoding failed
    """

    strategy: str
    text: str
    payload: Any = None
    error: Optional[str] = None

    @property
    def is_parsed(self) -> bool:
        return self.error is None


class JsonExtractor(ABC):
    """Locates a JSON candidate in raw text."""

    name: str = "extractor"

    # Whether an undecodable candidate is an error rather than "not found"
    strict: bool = False

    @abstractmethod
    def find(self, text: str) -> Optional[str]:
        """Return the candidate JSON text, or None if there is none."""
        pass


class FencedBlockExtractor(JsonExtractor):
    """Finds the first ```json (or untagged ```) block holding an object."""

    name = "fenced_block"
    strict = True

    _FENCE = re.compile(r"```[ \t]*([A-Za-z0-9_-]*)[ \t]*\r?\n?(.*?)```", re.DOTALL)

    def find(self, text: str) -> Optional[str]:
        for match in self._FENCE.finditer(text):
            language = match.group(1).lower()
            body = match.group(2).strip()
            if language == "json" or (not language and body.startswith("{")):
                return body
        return None


class BareObjectExtractor(JsonExtractor):
    """Takes the span from the first '{' to the last '}'."""

    name = "bare_object"

    def find(self, text: str) -> Optional[str]:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        return text[start:end + 1]


DEFAULT_EXTRACTORS: Sequence[JsonExtractor] = (FencedBlockExtractor(), BareObjectExtractor())


def extract_json(
    text: Optional[str],
    extractors: Sequence[JsonExtractor] = DEFAULT_EXTRACTORS
) -> Optional[Extraction]:
    """
    Run the extractor chain over model text.

    Returns:
        The first decoded candidate, an undecodable candidate from a strict
        extractor, or None when no strategy found JSON
    """
    if not text:
        return None

    for extractor in extractors:
        candidate = extractor.find(text)
        if candidate is None:
            continue

        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            if extractor.strict:
                logger.warning(f"Malformed JSON in {extractor.name}: {e}")
                return Extraction(strategy=extractor.name, text=candidate, error=str(e))
            logger.debug(f"Ignoring undecodable {extractor.name} candidate: {e}")
            continue

        return Extraction(strategy=extractor.name, text=candidate, payload=payload)

    return None


def _clean(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, bool)):
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
    text = str(value).strip()
    if text.lower() in _NULL_STRINGS:
        return None
    return text


def _tool_parameters(payload: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return None

    tool_call = payload.get("tool_call")
    if isinstance(tool_call, dict):
        params = tool_call.get("parameters")
        return params if isinstance(params, dict) else None

    # Some models drop the wrapper and emit the parameters directly
    if "product_name" in payload:
        return payload
    return None


def parse_tool_signal(raw_text: Optional[str]) -> SignalParseOutcome:
    """
    Parse the first model response into a lookup signal.

    Outcomes:
        VALID: tool call with a usable product name
        INVALID_SIGNAL: JSON decoded but the parameters are unusable
        NO_SIGNAL: no JSON at all, the text is a direct answer
        TOOL_ERROR: a fenced JSON block that does not decode
    """
    text = raw_text or ""
    extraction = extract_json(text)

    if extraction is None:
        return SignalParseOutcome(status=SignalStatus.NO_SIGNAL, raw_text=text)

    if not extraction.is_parsed:
        return SignalParseOutcome(
            status=SignalStatus.TOOL_ERROR,
            raw_text=text,
            error=f"Malformed tool-call JSON: {extraction.error}",
        )

    params = _tool_parameters(extraction.payload)
    if params is None:
        return SignalParseOutcome(
            status=SignalStatus.INVALID_SIGNAL,
            raw_text=text,
            error="JSON has no tool_call parameters",
        )

    product_name = _clean(params.get("product_name"))
    if not product_name:
        return SignalParseOutcome(
            status=SignalStatus.INVALID_SIGNAL,
            raw_text=text,
            error="tool_call has no product_name",
        )

    signal = ToolSignal(
        product_name=product_name,
        active_ingredient=_clean(params.get("active_ingredient")),
        strength=_clean(params.get("strength")),
        confidence=ConfidenceScore.from_model_value(params.get("confidence")),
        all_visible_text=_clean(params.get("all_visible_text")) or "",
        registration_number=_clean(params.get("registration_number")),
        manufacturer=_clean(params.get("manufacturer")),
    )
    return SignalParseOutcome(status=SignalStatus.VALID, raw_text=text, signal=signal)


def parse_final_report(raw_text: Optional[str]) -> Union[MedicineReport, RawTextFallback]:
    """
    Parse the second model response into a report.

    Never raises: anything that is not a recognizable report becomes a
    raw-text fallback carrying a note.
    """
    text = raw_text or ""
    extraction = extract_json(text)

    if extraction is None:
        return RawTextFallback(text=text.strip(), note=NOTE_NO_FINAL_JSON)

    if not extraction.is_parsed:
        return RawTextFallback(text=text.strip(), note=NOTE_FINAL_PARSE_FAILED)

    report = MedicineReport.from_payload(extraction.payload)
    if report is None:
        logger.warning("Final JSON holds no report sections")
        return RawTextFallback(text=text.strip(), note=NOTE_NO_FINAL_JSON)

    return report
