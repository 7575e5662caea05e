"""
Route registration for the coding assistant API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Translate domain errors into JSON error bodies
- Wire the voice bridge to the WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from adapters.llm.base import ImagePayload
from constants import DEFAULT_IMAGE_MIME_TYPE
from errors import (
    GatewayError,
    InputValidationError,
    PersistenceError,
    SubmissionInProgressError,
)
from observability.logger import log_event, now_ms
from orchestrator.chat import ChatOrchestrator
from store.history import HistoryRepository
from store.session_store import SessionMode, SessionStore

from server.voice_bridge import VoiceBridge


DEFAULT_USERNAME = "anonymous"


# ------------------------------------------------------------------
# Request bodies
# ------------------------------------------------------------------

class GenerateRequest(BaseModel):
    question: str
    username: str = DEFAULT_USERNAME


class ImageBody(BaseModel):
    base64: str
    mime_type: str = Field(default=DEFAULT_IMAGE_MIME_TYPE, alias="mimeType")


class SessionRequest(BaseModel):
    input_text: str = Field(default="", alias="inputText")
    mode: SessionMode
    image: ImageBody | None = None
    username: str = DEFAULT_USERNAME


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    @app.post("/api/ai/generate")
    async def generate(body: GenerateRequest) -> Any: # pyright: ignore[reportUnusedFunction]
        orchestrator = _orchestrator_for(app, body.username)
        try:
            response = await orchestrator.ask(body.question, body.username)
        except (InputValidationError, SubmissionInProgressError, GatewayError) as exc:
            return _error_response(exc, orchestrator)
        return {"response": response}

    @app.get("/api/history/{username}")
    async def get_history(username: str) -> list[dict[str, Any]]: # pyright: ignore[reportUnusedFunction]
        history: HistoryRepository = app.state.history
        return [
            {
                "question": record.question,
                "response": record.response,
                "createdAt": record.created_at.isoformat(),
            }
            for record in history.list_for(username)
        ]

    @app.delete("/api/history/{username}")
    async def delete_history(username: str) -> Any: # pyright: ignore[reportUnusedFunction]
        history: HistoryRepository = app.state.history
        try:
            deleted = history.delete_for(username)
        except PersistenceError as exc:
            return JSONResponse(status_code=500, content={"error": str(exc)})
        return {"success": True, "deleted": deleted}

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @app.post("/api/sessions")
    async def create_session(body: SessionRequest) -> Any: # pyright: ignore[reportUnusedFunction]
        orchestrator = _orchestrator_for(app, body.username)
        image = (
            ImagePayload(base64_bytes=body.image.base64, mime_type=body.image.mime_type)
            if body.image is not None
            else None
        )
        try:
            session = await orchestrator.handle(body.input_text, body.mode, image)
        except (InputValidationError, SubmissionInProgressError, GatewayError) as exc:
            return _error_response(exc, orchestrator)

        return {
            "session": session.to_document() if session is not None else None,
            "notices": list(orchestrator.drain_notices()),
        }

    @app.get("/api/sessions")
    async def list_sessions() -> list[dict[str, Any]]: # pyright: ignore[reportUnusedFunction]
        store: SessionStore = app.state.store
        return [session.to_document() for session in store.list()]

    @app.delete("/api/sessions/{session_id}")
    async def delete_session(session_id: int) -> Any: # pyright: ignore[reportUnusedFunction]
        store: SessionStore = app.state.store
        if not store.delete(session_id):
            return JSONResponse(status_code=404, content={"error": "session not found"})
        return {"success": True}

    @app.delete("/api/sessions")
    async def clear_sessions() -> dict[str, bool]: # pyright: ignore[reportUnusedFunction]
        store: SessionStore = app.state.store
        store.clear()
        return {"success": True}

    # ------------------------------------------------------------------
    # Voice
    # ------------------------------------------------------------------

    @app.websocket("/ws/voice")
    async def voice_endpoint(ws: WebSocket, username: str = DEFAULT_USERNAME) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        config = app.state.config
        bridge = VoiceBridge(
            gateway=app.state.gateway,
            store=app.state.store,
            history=app.state.history,
            username=username,
            wake_phrase=config.wake_phrase,
            framework=config.generate_framework,
        )
        send_lock = asyncio.Lock()
        pump: asyncio.Task[None] | None = None
        reason = "client_disconnect"

        try:
            await _send_all(ws, send_lock, await bridge.on_connect())
            pump = asyncio.create_task(_pump(ws, send_lock, bridge))

            while True:
                payload = await ws.receive_text()
                await _send_all(ws, send_lock, await bridge.on_json_message(payload))

        except WebSocketDisconnect:
            reason = "client_disconnect"

        except Exception as exc:  # pylint: disable=broad-exception-caught
            reason = "server_error"
            log_event({
                "ts_ms": now_ms(),
                "event_type": "WS_FATAL_ERROR",
                "connection_id": bridge.connection_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        finally:
            if pump is not None:
                pump.cancel()
                await asyncio.gather(pump, return_exceptions=True)
            await bridge.on_disconnect(reason=reason)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _error_response(exc: Exception, orchestrator: ChatOrchestrator) -> JSONResponse:
    if isinstance(exc, InputValidationError):
        status = 400
    elif isinstance(exc, SubmissionInProgressError):
        status = 409
    else:
        status = 502

    return JSONResponse(
        status_code=status,
        content={
            "error": str(exc),
            "notices": list(orchestrator.drain_notices()),
        },
    )


async def _send_all(
    ws: WebSocket,
    lock: asyncio.Lock,
    messages: tuple[dict[str, Any], ...],
) -> None:
    if not messages:
        return
    async with lock:
        for msg in messages:
            await ws.send_text(json.dumps(msg))


async def _pump(ws: WebSocket, lock: asyncio.Lock, bridge: VoiceBridge) -> None:
    """Flush messages produced by timers and background tasks."""
    while True:
        await bridge.outbox.wait_pending()
        await _send_all(ws, lock, bridge.drain())


def _orchestrator_for(app: FastAPI, username: str) -> ChatOrchestrator:
    """One orchestrator per user; the in-flight rule applies per user."""
    orchestrators: dict[str, ChatOrchestrator] = app.state.orchestrators
    orchestrator = orchestrators.get(username)
    if orchestrator is None:
        orchestrator = ChatOrchestrator(
            gateway=app.state.gateway,
            store=app.state.store,
            history=app.state.history,
            framework=app.state.config.generate_framework,
        )
        orchestrators[username] = orchestrator
    return orchestrator
