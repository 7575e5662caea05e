"""
Voice WebSocket bridge.

Responsibilities:
- Owns one VoiceRuntime and one ChatOrchestrator per connection
- Routes inbound JSON client messages -> voice events
- Collects outbound control messages (recognizer / synthesizer commands,
  signals, answers, notices, state)
- Wires the command channel: voice questions -> orchestrator -> spoken answer

NOT responsible for:
- Socket IO (see server.routes)
- Any state machine logic
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from uuid import uuid4

from adapters.llm.base import CompletionGateway
from adapters.speech.client_bridge import (
    ClientRecognizer,
    ClientSynthesizer,
    ControlOutbox,
)
from observability.logger import log_event, now_ms
from orchestrator.chat import ChatOrchestrator
from store.history import HistoryRepository
from store.session_store import SessionStore
from voice.events import (
    ListeningToggled,
    ManualActivate,
    PlatformUnsupported,
    RecognitionEnded,
    RecognitionError,
    RecognitionStarted,
    SpeechEnded,
    SpeechStarted,
    TranscriptReceived,
    VoiceEvent,
    VoiceEventType,
)
from voice.runtime import VoiceRuntime
from voice.state_dataclass import VoiceState


def _new_connection_id() -> str:
    return f"voice_{uuid4().hex[:12]}"


class VoiceBridge:
    """
    One bridge == one voice WebSocket connection.
    """

    def __init__(
        self,
        *,
        gateway: CompletionGateway,
        store: SessionStore,
        history: HistoryRepository,
        username: str,
        wake_phrase: str,
        framework: str,
    ) -> None:
        self.connection_id = _new_connection_id()
        self._username = username
        self._outbox = ControlOutbox()
        self._recognizer = ClientRecognizer(self._outbox)
        self._synthesizer = ClientSynthesizer(self._outbox)

        self.orchestrator = ChatOrchestrator(
            gateway=gateway,
            store=store,
            history=history,
            notify=self._outbox.enqueue,
            framework=framework,
        )
        self.runtime = VoiceRuntime(
            recognizer=self._recognizer,
            synthesizer=self._synthesizer,
            channel=self.orchestrator.channel,
            initial_state=VoiceState(wake_phrase=wake_phrase),
            notify=self._outbox.enqueue,
            instance_id=self.connection_id,
        )
        self.orchestrator.attach_speaker(self.runtime.say)
        self._consumer: asyncio.Task[None] | None = None

    @property
    def outbox(self) -> ControlOutbox:
        return self._outbox

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_connect(self) -> tuple[dict[str, Any], ...]:
        """Start the voice runtime and the signal consumer."""
        self._consumer = asyncio.create_task(
            self.orchestrator.run_channel(self._username, on_answer=self._on_answer)
        )
        await self.runtime.start()

        log_event({
            "ts_ms": now_ms(),
            "event_type": "VOICE_CONNECTED",
            "connection_id": self.connection_id,
            "username": self._username,
        })

        init_msg: dict[str, Any] = {
            "type": "VOICE_INIT",
            "connection_id": self.connection_id,
            "wake_phrase": self.runtime.state.wake_phrase,
            "mode": self.runtime.state.mode.value,
        }
        return (init_msg,) + self.drain()

    async def on_disconnect(self, reason: str | None = None) -> None:
        """Stop the runtime and the consumer. Idempotent."""
        await self.runtime.stop()
        self.orchestrator.close()

        if self._consumer is not None:
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None

        log_event({
            "ts_ms": now_ms(),
            "event_type": "VOICE_DISCONNECTED",
            "connection_id": self.connection_id,
            "reason": reason,
        })

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> tuple[dict[str, Any], ...]:
        """Route one inbound client message. Returns messages to send."""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "connection_id": self.connection_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return self.drain()

        if not isinstance(data, dict):
            log_event({
                "ts_ms": now_ms(),
                "event_type": "INVALID_MESSAGE",
                "connection_id": self.connection_id,
                "payload_preview": payload[:100],
            })
            return self.drain()

        msg_type = data.get("type")

        if msg_type == "VOICES_READY":
            self._synthesizer.mark_voices_ready()
            return self.drain()

        if msg_type == "UNSUPPORTED":
            self._recognizer.mark_unsupported()

        try:
            event = self._to_event(msg_type, data, ts_ms=now_ms())
        except (TypeError, ValueError) as e:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "INVALID_MESSAGE",
                "connection_id": self.connection_id,
                "msg_type": msg_type,
                "error": str(e),
            })
            return self.drain()

        if event is None:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "connection_id": self.connection_id,
                "msg_type": msg_type,
            })
            return self.drain()

        await self.runtime.handle_event(event)
        return self.drain()

    def drain(self) -> tuple[dict[str, Any], ...]:
        """Pending control messages, notices included (FIFO)."""
        return self._outbox.drain()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_event(
        msg_type: Any,
        data: dict[str, Any],
        *,
        ts_ms: int,
    ) -> VoiceEvent | None:
        if msg_type == "RECOGNITION_START":
            return RecognitionStarted(
                event_type=VoiceEventType.RECOGNITION_STARTED, ts_ms=ts_ms
            )
        if msg_type == "RECOGNITION_END":
            return RecognitionEnded(
                event_type=VoiceEventType.RECOGNITION_ENDED, ts_ms=ts_ms
            )
        if msg_type == "RECOGNITION_ERROR":
            return RecognitionError(
                event_type=VoiceEventType.RECOGNITION_ERROR,
                ts_ms=ts_ms,
                error=str(data.get("error", "unknown")),
            )
        if msg_type == "TRANSCRIPT":
            return TranscriptReceived(
                event_type=VoiceEventType.TRANSCRIPT,
                ts_ms=ts_ms,
                text=str(data.get("text", "")),
            )
        if msg_type == "SPEECH_START":
            return SpeechStarted(
                event_type=VoiceEventType.SPEECH_STARTED,
                ts_ms=ts_ms,
                utterance_id=int(data.get("utterance_id", -1)),
            )
        if msg_type == "SPEECH_END":
            return SpeechEnded(
                event_type=VoiceEventType.SPEECH_ENDED,
                ts_ms=ts_ms,
                utterance_id=int(data.get("utterance_id", -1)),
            )
        if msg_type == "TOGGLE":
            return ListeningToggled(
                event_type=VoiceEventType.LISTENING_TOGGLED,
                ts_ms=ts_ms,
                enabled=bool(data.get("enabled", True)),
            )
        if msg_type == "ACTIVATE":
            return ManualActivate(
                event_type=VoiceEventType.MANUAL_ACTIVATE, ts_ms=ts_ms
            )
        if msg_type == "UNSUPPORTED":
            return PlatformUnsupported(
                event_type=VoiceEventType.PLATFORM_UNSUPPORTED,
                ts_ms=ts_ms,
                reason=data.get("reason"),
            )
        return None

    def _on_answer(self, question: str, answer: str) -> None:
        self._outbox.enqueue({
            "type": "ANSWER",
            "question": question,
            "response": answer,
        })
