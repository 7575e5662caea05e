"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No behavioral constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    DEFAULT_GENERATE_FRAMEWORK,
    DEFAULT_LLM_MODEL,
    DEFAULT_WAKE_PHRASE,
)


UVICORN_LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the app factory and the orchestrator.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # LLM configuration
    # ------------------------------------------------------------------

    llm_provider: str
    llm_model: str
    openai_api_key: str | None

    groq_api_key: str | None

    generate_framework: str = DEFAULT_GENERATE_FRAMEWORK

    # ------------------------------------------------------------------
    # Voice
    # ------------------------------------------------------------------

    wake_phrase: str = DEFAULT_WAKE_PHRASE

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    # None keeps sessions and history in memory only
    data_dir: str | None = None

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @property
    def api_key(self) -> str | None:
        """Return the API key for the selected provider."""
        if self.llm_provider.lower() == "groq":
            return self.groq_api_key
        return self.openai_api_key

    @property
    def uvicorn_log_level(self) -> str:
        """LOG_LEVEL as a uvicorn level name; unknown values fall back to info."""
        level = self.log_level.strip().lower()
        if level == "warn":
            return "warning"
        if level in UVICORN_LOG_LEVELS:
            return level
        return "info"

    @staticmethod
    def load_from_env() -> AppConfig:
        """Load configuration from environment variables."""
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            llm_provider=os.environ.get("LLM_PROVIDER", "openai"),
            llm_model=os.environ.get("LLM_MODEL", DEFAULT_LLM_MODEL),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            groq_api_key=os.environ.get("GROQ_API_KEY"),
            generate_framework=os.environ.get(
                "GENERATE_FRAMEWORK", DEFAULT_GENERATE_FRAMEWORK
            ),

            wake_phrase=os.environ.get("WAKE_PHRASE", DEFAULT_WAKE_PHRASE).lower(),
            data_dir=os.environ.get("DATA_DIR") or None,

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
