"""
Application Configuration

Settings and configuration management for the medicine pipeline.
"""

from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any
from pathlib import Path
import os


DEFAULT_REGISTRY_PATH = str(Path(__file__).resolve().parent.parent / "data" / "medicines.json")


@dataclass
class LLMConfig:
    """Vision model configuration."""

    provider: str = "gemini"  # gemini, groq, ollama, dummy
    model: str = "gemini-2.5-flash"
    api_key: Optional[str] = None
    base_url: str = "http://localhost:11434"  # Ollama only
    temperature: float = 0.1
    max_tokens: int = 2048
    timeout: int = 60  # Client-level request timeout in seconds


@dataclass
class RegistryConfig:
    """Medicine registry configuration."""

    type: str = "json"
    path: str = DEFAULT_REGISTRY_PATH
    fuzzy_threshold: Optional[float] = 0.85  # None disables fuzzy name matching


@dataclass
class LedgerConfig:
    """Token ledger configuration."""

    type: str = "memory"  # memory, sqlite
    database_path: str = "./data/tokens.db"
    welcome_tokens: int = 30
    analysis_cost: int = 1
    max_decrement_attempts: int = 3


@dataclass
class PipelineConfig:
    """Pipeline orchestration configuration."""

    model_timeout_seconds: float = 60.0
    low_confidence_threshold: float = 0.7
    validate_images: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_file: Optional[str] = None
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _apply(section: Any, values: Dict[str, Any]) -> None:
    for key, value in values.items():
        if hasattr(section, key):
            setattr(section, key, value)


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all component configurations.
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            MEDSCAN_LLM_PROVIDER: gemini/groq/ollama/dummy
            MEDSCAN_LLM_MODEL: Model name
            MEDSCAN_LLM_API_KEY: Provider API key (falls back to
                GOOGLE_API_KEY / GEMINI_API_KEY or GROQ_API_KEY)
            MEDSCAN_LLM_BASE_URL: Ollama API URL
            MEDSCAN_MODEL_TIMEOUT: Model-call deadline in seconds
            MEDSCAN_REGISTRY_PATH: Registry JSON file
            MEDSCAN_LEDGER_TYPE: memory/sqlite
            MEDSCAN_LEDGER_DB: SQLite database path
            MEDSCAN_WELCOME_TOKENS: Balance granted to first-seen users
            MEDSCAN_LOG_LEVEL: Logging level
        """
        config = cls()

        # LLM
        if provider := os.getenv("MEDSCAN_LLM_PROVIDER"):
            config.llm.provider = provider.lower()
        if model := os.getenv("MEDSCAN_LLM_MODEL"):
            config.llm.model = model
        elif config.llm.provider == "groq":
            config.llm.model = "meta-llama/llama-4-scout-17b-16e-instruct"
        elif config.llm.provider == "ollama":
            config.llm.model = "gemma3:4b"
        if base_url := os.getenv("MEDSCAN_LLM_BASE_URL"):
            config.llm.base_url = base_url

        if api_key := os.getenv("MEDSCAN_LLM_API_KEY"):
            config.llm.api_key = api_key
        elif config.llm.provider == "groq":
            config.llm.api_key = os.getenv("GROQ_API_KEY")
        elif config.llm.provider == "gemini":
            config.llm.api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")

        # Pipeline
        if timeout := os.getenv("MEDSCAN_MODEL_TIMEOUT"):
            config.pipeline.model_timeout_seconds = float(timeout)

        # Registry
        if registry_path := os.getenv("MEDSCAN_REGISTRY_PATH"):
            config.registry.path = registry_path

        # Ledger
        if ledger_type := os.getenv("MEDSCAN_LEDGER_TYPE"):
            config.ledger.type = ledger_type.lower()
        if db_path := os.getenv("MEDSCAN_LEDGER_DB"):
            config.ledger.database_path = db_path
        if welcome := os.getenv("MEDSCAN_WELCOME_TOKENS"):
            config.ledger.welcome_tokens = int(welcome)

        # Logging
        if log_level := os.getenv("MEDSCAN_LOG_LEVEL"):
            config.logging.level = log_level

        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Create configuration from dictionary."""
        config = cls()

        for section_name in ("llm", "registry", "ledger", "pipeline", "logging"):
            if section_name in data:
                _apply(getattr(config, section_name), data[section_name])

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (secrets omitted)."""
        result = {}
        for section_name in ("llm", "registry", "ledger", "pipeline", "logging"):
            section = getattr(self, section_name)
            result[section_name] = {
                f.name: getattr(section, f.name)
                for f in fields(section)
                if f.name != "api_key"
            }
        return result


def get_default_config() -> AppConfig:
    """Get default application configuration."""
    return AppConfig.from_env()
