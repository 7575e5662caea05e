"""
Browser speech bridge.

The browser owns the microphone and the speaker (Web Speech API); the
server owns the voice state machine. These adapters turn runtime
commands into control messages for the client, and the voice route turns
client messages back into voice events.

Control messages (server -> client):
    START_RECOGNITION, STOP_RECOGNITION,
    SPEAK {utterance_id, text, lang, rate, pitch, voice_hints},
    CANCEL_SPEECH
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any

from adapters.speech.base import Recognizer, Synthesizer
from constants import (
    PREFERRED_VOICE_HINTS,
    SPEECH_LANGUAGE,
    SPEECH_PITCH,
    SPEECH_RATE,
    VOICES_POLL_INTERVAL_MS,
    VOICES_WAIT_TIMEOUT_MS,
)
from errors import UnsupportedPlatformError
from observability.logger import log_event, now_ms


class ControlOutbox:
    """
    FIFO of control messages waiting for delivery to the client.

    Messages are buffered in order and retrieved via drain(). Timer and
    speech tasks enqueue outside any inbound message, so the transport
    also waits on wait_pending() to flush them.
    """

    def __init__(self) -> None:
        self._messages: deque[dict[str, Any]] = deque()
        self._pending = asyncio.Event()

    def enqueue(self, msg: dict[str, Any]) -> None:
        self._messages.append(msg)
        self._pending.set()

    def drain(self) -> tuple[dict[str, Any], ...]:
        """Atomically drain all pending messages (FIFO)."""
        self._pending.clear()
        if not self._messages:
            return ()
        out = tuple(self._messages)
        self._messages.clear()
        return out

    async def wait_pending(self) -> None:
        """Block until at least one message is queued."""
        await self._pending.wait()


class ClientRecognizer(Recognizer):
    """Recognition running in the browser."""

    def __init__(self, outbox: ControlOutbox) -> None:
        self._outbox = outbox
        self._supported = True

    @property
    def supported(self) -> bool:
        return self._supported

    def mark_unsupported(self) -> None:
        self._supported = False

    async def start(self) -> None:
        if not self._supported:
            raise UnsupportedPlatformError("client reported no recognition API")
        self._outbox.enqueue({
            "type": "START_RECOGNITION",
            "lang": SPEECH_LANGUAGE,
            "continuous": True,
            "interim_results": False,
        })

    async def stop(self) -> None:
        self._outbox.enqueue({"type": "STOP_RECOGNITION"})


class ClientSynthesizer(Synthesizer):
    """Speech synthesis running in the browser."""

    def __init__(self, outbox: ControlOutbox) -> None:
        self._outbox = outbox
        self._voices_ready = False

    def mark_voices_ready(self) -> None:
        self._voices_ready = True

    async def wait_until_ready(self) -> None:
        """
        Poll until the client reported its voice list.

        Gives up after VOICES_WAIT_TIMEOUT_MS and lets the client fall back
        to its default voice.
        """
        waited_ms = 0
        while not self._voices_ready and waited_ms < VOICES_WAIT_TIMEOUT_MS:
            await asyncio.sleep(VOICES_POLL_INTERVAL_MS / 1000.0)
            waited_ms += VOICES_POLL_INTERVAL_MS

        if not self._voices_ready:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "VOICES_WAIT_TIMED_OUT",
                "waited_ms": waited_ms,
            })
            self._voices_ready = True

    async def speak(self, *, utterance_id: int, text: str) -> None:
        self._outbox.enqueue({
            "type": "SPEAK",
            "utterance_id": utterance_id,
            "text": text,
            "lang": SPEECH_LANGUAGE,
            "rate": SPEECH_RATE,
            "pitch": SPEECH_PITCH,
            "voice_hints": list(PREFERRED_VOICE_HINTS),
        })

    async def cancel(self) -> None:
        self._outbox.enqueue({"type": "CANCEL_SPEECH"})
