"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (completion gateway, session store, history)
- Register routes
"""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.llm.base import CompletionGateway
from adapters.llm.openai_gateway import OpenAICompletionGateway, build_llm_client
from config import AppConfig
from constants import HISTORY_FILENAME, SESSIONS_FILENAME
from observability import logger
from store.history import HistoryRepository
from store.persistence import InMemoryPersistence, JsonFilePersistence, Persistence
from store.session_store import SessionStore

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    *,
    gateway: CompletionGateway | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations (inject config / gateway)
    - Environment-specific setup
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    logger.configure(enabled=config.enable_json_logs)

    app = FastAPI(title="Voice Coding Assistant API")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Create the gateway ONCE per process
    if gateway is None:
        if not config.api_key:
            raise RuntimeError(
                f"API key for LLM_PROVIDER={config.llm_provider} not set"
            )
        gateway = OpenAICompletionGateway(
            client=build_llm_client(config),
            model=config.llm_model,
            provider=config.llm_provider,
        )
    app.state.gateway = gateway

    app.state.store = SessionStore(_persistence(config, SESSIONS_FILENAME))
    app.state.history = HistoryRepository(_persistence(config, HISTORY_FILENAME))

    # HTTP orchestrators, one per username, created on first request
    app.state.orchestrators = {}

    # Routes
    register_routes(app)

    return app


def _persistence(config: AppConfig, filename: str) -> Persistence:
    if config.data_dir is None:
        return InMemoryPersistence()
    return JsonFilePersistence(Path(config.data_dir) / filename)
