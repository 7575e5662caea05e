# pylint: disable=missing-module-docstring,missing-function-docstring
import pytest

from config import AppConfig
from constants import DEFAULT_GENERATE_FRAMEWORK, DEFAULT_LLM_MODEL, DEFAULT_WAKE_PHRASE


ENV_VARS = (
    "ENV",
    "LOG_LEVEL",
    "LLM_PROVIDER",
    "LLM_MODEL",
    "OPENAI_API_KEY",
    "GROQ_API_KEY",
    "ENABLE_JSON_LOGS",
    "WAKE_PHRASE",
    "DATA_DIR",
    "GENERATE_FRAMEWORK",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = AppConfig.load_from_env()

    assert config.llm_provider == "openai"
    assert config.llm_model == DEFAULT_LLM_MODEL
    assert config.wake_phrase == DEFAULT_WAKE_PHRASE
    assert config.generate_framework == DEFAULT_GENERATE_FRAMEWORK
    assert config.data_dir is None
    assert config.enable_json_logs is True
    assert config.api_key is None


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LLM_PROVIDER", "groq")
    monkeypatch.setenv("GROQ_API_KEY", "gsk-1")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
    monkeypatch.setenv("WAKE_PHRASE", "Friday")
    monkeypatch.setenv("DATA_DIR", "/tmp/assistant")
    monkeypatch.setenv("ENABLE_JSON_LOGS", "0")

    config = AppConfig.load_from_env()

    assert config.api_key == "gsk-1"
    assert config.wake_phrase == "friday"
    assert config.data_dir == "/tmp/assistant"
    assert config.enable_json_logs is False


def test_config_is_immutable():
    config = AppConfig.load_from_env()

    with pytest.raises(AttributeError):
        config.env = "prod"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("DEBUG", "debug"), ("Warn", "warning"), (" error ", "error"), ("verbose", "info")],
)
def test_log_level_maps_to_uvicorn_level(monkeypatch: pytest.MonkeyPatch, raw: str, expected: str):
    monkeypatch.setenv("LOG_LEVEL", raw)

    assert AppConfig.load_from_env().uvicorn_log_level == expected
