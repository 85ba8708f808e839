import pytest

from medscan.config.settings import AppConfig, DEFAULT_REGISTRY_PATH


ENV_VARS = [
    "MEDSCAN_LLM_PROVIDER", "MEDSCAN_LLM_MODEL", "MEDSCAN_LLM_API_KEY", "MEDSCAN_LLM_BASE_URL",
    "MEDSCAN_MODEL_TIMEOUT", "MEDSCAN_REGISTRY_PATH", "MEDSCAN_LEDGER_TYPE", "MEDSCAN_LEDGER_DB",
    "MEDSCAN_WELCOME_TOKENS", "MEDSCAN_LOG_LEVEL", "GROQ_API_KEY", "GOOGLE_API_KEY", "GEMINI_API_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = AppConfig.from_env()

    assert config.llm.provider == "gemini"
    assert config.llm.api_key is None
    assert config.registry.path == DEFAULT_REGISTRY_PATH
    assert config.ledger.type == "memory"
    assert config.ledger.welcome_tokens == 30
    assert config.pipeline.model_timeout_seconds == 60.0


def test_from_env(monkeypatch):
    monkeypatch.setenv("MEDSCAN_LLM_PROVIDER", "Groq")
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.setenv("MEDSCAN_MODEL_TIMEOUT", "12.5")
    monkeypatch.setenv("MEDSCAN_LEDGER_TYPE", "SQLITE")
    monkeypatch.setenv("MEDSCAN_LEDGER_DB", "/tmp/tokens.db")
    monkeypatch.setenv("MEDSCAN_WELCOME_TOKENS", "5")
    monkeypatch.setenv("MEDSCAN_LOG_LEVEL", "DEBUG")

    config = AppConfig.from_env()

    assert config.llm.provider == "groq"
    assert config.llm.model == "meta-llama/llama-4-scout-17b-16e-instruct"
    assert config.llm.api_key == "gsk-test"
    assert config.pipeline.model_timeout_seconds == 12.5
    assert config.ledger.type == "sqlite"
    assert config.ledger.database_path == "/tmp/tokens.db"
    assert config.ledger.welcome_tokens == 5
    assert config.logging.level == "DEBUG"


def test_gemini_key_fallback(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    assert AppConfig.from_env().llm.api_key == "g-key"


def test_explicit_key_wins(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "google")
    monkeypatch.setenv("MEDSCAN_LLM_API_KEY", "explicit")
    assert AppConfig.from_env().llm.api_key == "explicit"


def test_from_dict_ignores_unknown_keys():
    config = AppConfig.from_dict({
        "llm": {"provider": "ollama", "model": "llava:7b", "bogus": 1},
        "pipeline": {"low_confidence_threshold": 0.5},
        "unknown_section": {},
    })

    assert config.llm.provider == "ollama"
    assert config.llm.model == "llava:7b"
    assert not hasattr(config.llm, "bogus")
    assert config.pipeline.low_confidence_threshold == 0.5


def test_to_dict_omits_secrets():
    config = AppConfig.from_dict({"llm": {"api_key": "secret"}})
    data = config.to_dict()

    assert "api_key" not in data["llm"]
    assert data["ledger"]["analysis_cost"] == 1
    assert set(data) == {"llm", "registry", "ledger", "pipeline", "logging"}
