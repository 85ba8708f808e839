"""
Pipeline Result Entity

Sole return value of the pipeline orchestrator.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from enum import Enum


class PipelineStatus(Enum):
    """Top-level statuses visible to callers."""

    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    INSUFFICIENT_TOKENS = "INSUFFICIENT_TOKENS"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class PipelineState(Enum):
    """States of one pipeline run."""

    START = "start"
    TOKEN_CHECK = "token_check"
    FIRST_CALL = "first_call"
    SIGNAL_PARSE = "signal_parse"
    REGISTRY_LOOKUP = "registry_lookup"
    SECOND_CALL = "second_call"
    FINAL_PARSE = "final_parse"
    TOKEN_DEBIT = "token_debit"
    DONE = "done"


@dataclass
class PipelineResult:
    """
    Final result of one analysis.

    Attributes:
        status: One of the four top-level statuses
        data: Report dict (always all ten report keys on SUCCESS)
        message: Human-readable message for non-success statuses
        tokens_remaining: Balance after the run, when known
        metadata: Observability data (registry status, confidence, timings)
        warnings: Degradation notes collected during the run
    """

    status: PipelineStatus
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    tokens_remaining: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API response shape."""
        return {
            "status": self.status.value,
            "data": self.data,
            "message": self.message,
            "tokensRemaining": self.tokens_remaining,
            "metadata": self.metadata,
            "warnings": list(self.warnings),
        }

    def __str__(self) -> str:
        return f"PipelineResult({self.status.value}, tokens_remaining={self.tokens_remaining})"

    @classmethod
    def failure(
        cls,
        status: PipelineStatus,
        message: str,
        tokens_remaining: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> "PipelineResult":
        """
        Create a result for a terminal, non-success outcome.

        Args:
            status: ERROR, INSUFFICIENT_TOKENS or SERVICE_UNAVAILABLE
            message: Human-readable error message
            tokens_remaining: Balance to show the user, if known
            metadata: Optional observability data
        """
        if status == PipelineStatus.SUCCESS:
            raise ValueError("failure() cannot build a SUCCESS result")
        return cls(
            status=status,
            message=message,
            tokens_remaining=tokens_remaining,
            metadata=metadata or {},
        )
