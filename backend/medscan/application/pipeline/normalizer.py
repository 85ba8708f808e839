"""
Result Normalizer

Maps the parsed final output into the API-facing PipelineResult.
"""

from typing import Any, Dict, Iterable, Optional
import json
import logging

from ...domain.entities.medicine_report import MedicineReport, RawTextFallback, REPORT_FIELDS, DISCLAIMER
from ...domain.entities.registry import RegistryOutcome, RegistryStatus
from ...domain.entities.tool_signal import ToolSignal
from ...domain.entities.pipeline_result import PipelineResult, PipelineStatus
from ...domain.value_objects.confidence_score import LOW_CONFIDENCE_THRESHOLD
from ...cross_cutting.error_handling import ErrorHandler


logger = logging.getLogger(__name__)


NOTE_UNEXPECTED_SHAPE = "Result had an unexpected shape, returning it as text."
NOTE_NORMALIZATION_FAILED = "Result could not be formatted."


class ResultSource:
    STRUCTURED = "structured"
    RAW_TEXT = "raw_text"
    DIRECT_ANSWER = "direct_answer"


def _coerce(parse_outcome: Any) -> Any:
    """Turn whatever the parser produced into a report or a fallback."""
    if isinstance(parse_outcome, (MedicineReport, RawTextFallback)):
        return parse_outcome

    if isinstance(parse_outcome, dict):
        report = MedicineReport.from_payload(parse_outcome)
        if report is not None:
            return report
        text = parse_outcome.get("text")
        if isinstance(text, str):
            return RawTextFallback(text=text, note=str(parse_outcome.get("note") or NOTE_UNEXPECTED_SHAPE))
        return RawTextFallback(text=json.dumps(parse_outcome, default=str), note=NOTE_UNEXPECTED_SHAPE)

    if parse_outcome is None:
        return RawTextFallback(text="", note=NOTE_UNEXPECTED_SHAPE)

    return RawTextFallback(text=str(parse_outcome), note=NOTE_UNEXPECTED_SHAPE)


def _source_of(outcome: Any, registry_outcome: Optional[RegistryOutcome]) -> str:
    if isinstance(outcome, MedicineReport):
        return ResultSource.STRUCTURED
    if registry_outcome is not None and registry_outcome.status == RegistryStatus.NO_SIGNAL:
        return ResultSource.DIRECT_ANSWER
    return ResultSource.RAW_TEXT


def normalize(
    parse_outcome: Any,
    registry_outcome: Optional[RegistryOutcome],
    tokens_remaining: Optional[int],
    signal: Optional[ToolSignal] = None,
    metadata: Optional[Dict[str, Any]] = None,
    warnings: Optional[Iterable[str]] = None,
    low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD
) -> PipelineResult:
    """
    Build the SUCCESS result of a completed run.

    The data dict always carries the ten report keys and the disclaimer.
    Never raises: unexpected shapes are coerced into the text + note
    fallback.

    Args:
        parse_outcome: MedicineReport, RawTextFallback or anything else
        registry_outcome: Registry step result (NO_SIGNAL on the direct path)
        tokens_remaining: Balance after the debit
        signal: Lookup signal from the first call, if any
        metadata: Extra metadata (request id, model, timings)
        warnings: Degradation notes collected during the run

    Returns:
        SUCCESS PipelineResult
    """
    data: Dict[str, Any] = RawTextFallback(text="", note=NOTE_NORMALIZATION_FAILED).to_dict()
    result_metadata: Dict[str, Any] = dict(metadata or {})
    result_warnings = list(warnings or [])

    with ErrorHandler(logger, context="normalize", suppress=True) as handler:
        outcome = _coerce(parse_outcome)
        data = outcome.to_dict()

        if registry_outcome is not None and registry_outcome.status != RegistryStatus.NO_SIGNAL:
            data["database_result"] = registry_outcome.to_payload()

        result_metadata.update({
            "registry_status": registry_outcome.status.value if registry_outcome else None,
            "database_hit": bool(registry_outcome and registry_outcome.is_hit),
            "search_method": (
                registry_outcome.search_method.value
                if registry_outcome and registry_outcome.search_method else None
            ),
            "source": _source_of(outcome, registry_outcome),
        })

        if signal is not None:
            result_metadata["confidence"] = signal.confidence.value
            result_metadata["low_confidence"] = signal.is_low_confidence(low_confidence_threshold)
        else:
            result_metadata["confidence"] = None
            result_metadata["low_confidence"] = False

    if handler.has_error:
        result_metadata.setdefault("source", ResultSource.RAW_TEXT)
        result_warnings.append(NOTE_NORMALIZATION_FAILED)

    # The key set is part of the client contract
    for name in REPORT_FIELDS:
        data.setdefault(name, "")
    data["disclaimer"] = DISCLAIMER

    return PipelineResult(
        status=PipelineStatus.SUCCESS,
        data=data,
        tokens_remaining=tokens_remaining,
        metadata=result_metadata,
        warnings=result_warnings,
    )
