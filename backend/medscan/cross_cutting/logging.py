"""
Logging Configuration

Structured logging for the medicine pipeline.
"""

import logging
import sys
from typing import Optional, Dict, Union
from datetime import datetime


ROOT_LOGGER_NAME = "medscan"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional file path for log output
        format_string: Custom format string
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if format_string is None:
        format_string = (
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    formatter = logging.Formatter(format_string)

    # Get root logger for our package
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


class PipelineLogger:
    """
    Specialized logger for one pipeline run.

    Records state transitions and their durations under the request id.
    """

    def __init__(self, request_id: str):
        self.request_id = request_id
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.pipeline.{request_id[:8]}")
        self._stage_start_times: Dict[str, datetime] = {}
        self.durations_ms: Dict[str, float] = {}

    def stage_start(self, stage_name: str) -> None:
        """Log stage start."""
        self._stage_start_times[stage_name] = datetime.now()
        self.logger.info(f"State '{stage_name}' entered")

    def stage_end(self, stage_name: str, success: bool = True) -> None:
        """Log stage completion."""
        duration = 0.0
        if stage_name in self._stage_start_times:
            delta = datetime.now() - self._stage_start_times.pop(stage_name)
            duration = delta.total_seconds() * 1000
        self.durations_ms[stage_name] = duration

        status = "completed" if success else "failed"
        self.logger.info(f"State '{stage_name}' {status} in {duration:.2f}ms")

    def stage_error(self, stage_name: str, error: Exception) -> None:
        """Log stage error."""
        self.logger.error(f"State '{stage_name}' error: {error}")

    def metric(self, name: str, value: float, unit: str = "") -> None:
        """Log a metric."""
        self.logger.info(f"Metric [{name}]: {value}{unit}")
