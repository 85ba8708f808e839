"""
Domain Entities

Core business entities of the medicine identification domain.
"""

from .analysis_request import AnalysisRequest, DEFAULT_QUERY
from .tool_signal import ToolSignal, SignalStatus, SignalParseOutcome
from .registry import (
    RegistryRecord,
    RegistryOutcome,
    RegistryStatus,
    SearchMethod,
)
from .medicine_report import (
    MedicineReport,
    RawTextFallback,
    REPORT_FIELDS,
    DISCLAIMER,
    empty_report_fields,
)
from .pipeline_result import PipelineResult, PipelineStatus, PipelineState

__all__ = [
    "AnalysisRequest",
    "DEFAULT_QUERY",
    "ToolSignal",
    "SignalStatus",
    "SignalParseOutcome",
    "RegistryRecord",
    "RegistryOutcome",
    "RegistryStatus",
    "SearchMethod",
    "MedicineReport",
    "RawTextFallback",
    "REPORT_FIELDS",
    "DISCLAIMER",
    "empty_report_fields",
    "PipelineResult",
    "PipelineStatus",
    "PipelineState",
]
