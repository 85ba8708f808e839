"""
Pipeline Module

Contains the orchestrator, its per-run context, and the prompt, parsing
and normalization steps it drives.
"""

from .orchestrator import PipelineOrchestrator, PipelineBuilder
from .context import PipelineContext, StageMetrics
from .prompts import PromptStage, PromptContext, build_prompt, TOOL_CALL_SCHEMA, FINAL_REPORT_SCHEMA
from .parsing import (
    FencedBlockExtractor,
    BareObjectExtractor,
    extract_json,
    parse_tool_signal,
    parse_final_report,
)
from .normalizer import normalize

__all__ = [
    "PipelineOrchestrator",
    "PipelineBuilder",
    "PipelineContext",
    "StageMetrics",
    "PromptStage",
    "PromptContext",
    "build_prompt",
    "TOOL_CALL_SCHEMA",
    "FINAL_REPORT_SCHEMA",
    "FencedBlockExtractor",
    "BareObjectExtractor",
    "extract_json",
    "parse_tool_signal",
    "parse_final_report",
    "normalize",
]
