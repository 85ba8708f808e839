"""
Configuration Module

Application settings and configuration management.
"""

from .settings import (
    AppConfig,
    LLMConfig,
    RegistryConfig,
    LedgerConfig,
    PipelineConfig,
    LoggingConfig,
    get_default_config,
)

__all__ = [
    "AppConfig",
    "LLMConfig",
    "RegistryConfig",
    "LedgerConfig",
    "PipelineConfig",
    "LoggingConfig",
    "get_default_config",
]
