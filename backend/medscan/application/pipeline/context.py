"""
Pipeline Context

Carries state through one pipeline run.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Union
from datetime import datetime
import uuid

from ...domain.entities.analysis_request import AnalysisRequest
from ...domain.entities.tool_signal import SignalParseOutcome
from ...domain.entities.registry import RegistryOutcome
from ...domain.entities.medicine_report import MedicineReport, RawTextFallback
from ...domain.entities.pipeline_result import PipelineState


@dataclass
class StageMetrics:
    """
    Timing of a single pipeline state.

    Attributes:
        state: The pipeline state
        start_time: When the state was entered
        end_time: When the state was left
        duration_ms: Time spent in the state in milliseconds
    """

    state: PipelineState
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_ms: float = 0.0

    def start(self) -> None:
        """Mark state as entered."""
        self.start_time = datetime.now()

    def finish(self) -> None:
        """Mark state as left and calculate duration."""
        self.end_time = datetime.now()
        if self.start_time:
            delta = self.end_time - self.start_time
            self.duration_ms = delta.total_seconds() * 1000


@dataclass
class PipelineContext:
    """
    Mutable state of one pipeline run.

    Each state reads what it needs and writes its result here.

    Attributes:
        request: Validated input
        request_id: Unique identifier for this run
        state: Current state of the state machine
        first_response: Raw text of the first model call
        signal_outcome: Result of parsing the first response
        registry_outcome: Registry step result, or the sentinel standing in for it
        second_response: Raw text of the second model call
        report: Parsed report or raw-text fallback
        warnings: Degradation notes for the caller
    """

    request: AnalysisRequest
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: PipelineState = PipelineState.START

    first_response: Optional[str] = None
    signal_outcome: Optional[SignalParseOutcome] = None
    registry_outcome: Optional[RegistryOutcome] = None
    second_response: Optional[str] = None
    report: Optional[Union[MedicineReport, RawTextFallback]] = None
    debited: bool = False

    warnings: List[str] = field(default_factory=list)
    stage_metrics: Dict[PipelineState, StageMetrics] = field(default_factory=dict)

    def add_warning(self, warning: str) -> None:
        """Add a warning to include in the final output."""
        if warning not in self.warnings:
            self.warnings.append(warning)

    def enter(self, state: PipelineState) -> None:
        """Transition to a state and start its timer."""
        self.state = state
        self.stage_metrics[state] = StageMetrics(state=state)
        self.stage_metrics[state].start()

    def leave(self, state: PipelineState) -> None:
        """Stop the timer of a state."""
        if state in self.stage_metrics:
            self.stage_metrics[state].finish()

    def state_durations(self) -> Dict[str, float]:
        return {state.value: round(m.duration_ms, 2) for state, m in self.stage_metrics.items()}

    def __str__(self) -> str:
        return f"PipelineContext(id={self.request_id[:8]}..., state={self.state.value})"
