"""
Runtime execution shell for the voice command state machine.

Responsibilities:
- Own the voice state
- Own the recognizer and synthesizer handles (start/stop lifecycle)
- Call the pure reducer
- Execute commands with side effects (recognizer, synthesizer, timers,
  signal publishing)
- Convert timer expiry into events
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from adapters.speech.base import Recognizer, Synthesizer
from errors import TransientRecognitionError, UnsupportedPlatformError
from observability.logger import log_event, now_ms
from orchestrator.channel import CommandChannel
from voice.commands import (
    CancelSpeech,
    CancelTimer,
    Command,
    LogEvent,
    PublishSignal,
    ReportUnsupported,
    Speak,
    StartRecognition,
    StartTimer,
    StopRecognition,
)
from voice.events import (
    ArmTimeout,
    PlatformUnsupported,
    RecognitionError,
    RestartTimeout,
    SayRequested,
    SettleTimeout,
    VoiceEvent,
    VoiceEventType,
    VoiceStarted,
    VoiceStopped,
)
from voice.reducer import reduce
from voice.signals import VoiceSignal
from voice.state_dataclass import VoiceState


Notify = Callable[[dict[str, Any]], None]


class VoiceRuntime:
    """
    Runtime boundary for one voice assistant instance.

    Guarantees:
    - Reducer is called exactly once per incoming event
    - State is updated before any side effects execute
    - Commands are executed in reducer-emitted order
    - Timers and adapters emit events back into handle_event
      (single entry point)

    Speech output runs in its own task: waiting for the voice list must
    not block event handling, and a Speak whose utterance was retired
    in the meantime is dropped.
    """

    def __init__(
        self,
        *,
        recognizer: Recognizer | None,
        synthesizer: Synthesizer | None,
        channel: CommandChannel | None = None,
        initial_state: VoiceState | None = None,
        notify: Notify | None = None,
        instance_id: str | None = None,
    ) -> None:
        self._state = initial_state or VoiceState()
        self._recognizer = recognizer
        self._synthesizer = synthesizer
        self._channel = channel
        self._notify = notify
        self._instance_id = instance_id
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._speech_tasks: set[asyncio.Task[None]] = set()
        self._unsupported_reported = False

    @property
    def state(self) -> VoiceState:
        """Current immutable voice state. Read-only for consumers."""
        return self._state

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Start listening.

        Missing speech capability disables the feature permanently;
        it is reported once and never retried.
        """
        if (
            self._recognizer is None
            or self._synthesizer is None
            or not self._recognizer.supported
            or not self._synthesizer.supported
        ):
            await self.handle_event(
                PlatformUnsupported(
                    event_type=VoiceEventType.PLATFORM_UNSUPPORTED,
                    ts_ms=now_ms(),
                    reason="no_speech_capability",
                )
            )
            return

        await self.handle_event(
            VoiceStarted(event_type=VoiceEventType.VOICE_STARTED, ts_ms=now_ms())
        )

    async def stop(self) -> None:
        """
        Stop listening and speaking, cancel all timers and wait for them.
        """
        await self.handle_event(
            VoiceStopped(event_type=VoiceEventType.VOICE_STOPPED, ts_ms=now_ms())
        )

        tasks = list(self._timers.values()) + list(self._speech_tasks)
        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)
        for task in list(self._speech_tasks):
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def say(self, text: str) -> None:
        """Read text aloud (voice feedback for other components)."""
        await self.handle_event(
            SayRequested(
                event_type=VoiceEventType.SAY_REQUESTED,
                ts_ms=now_ms(),
                text=text,
            )
        )

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    async def handle_event(self, event: VoiceEvent) -> None:
        """
        Process a single event through the reducer and execute the
        resulting commands.

        All event sources converge here: recognizer, synthesizer,
        user control and timers.
        """
        prev_mode = self._state.mode
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

        if self._state.mode is not prev_mode and self._notify is not None:
            self._notify({
                "type": "STATE",
                "mode": self._state.mode.value,
                "armed": self._state.armed,
            })

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "component": "voice",
                "instance_id": self._instance_id,
            })

        elif isinstance(cmd, StartRecognition):
            assert self._recognizer is not None, "recognizer missing"
            try:
                await self._recognizer.start()
            except UnsupportedPlatformError as exc:
                await self.handle_event(
                    PlatformUnsupported(
                        event_type=VoiceEventType.PLATFORM_UNSUPPORTED,
                        ts_ms=now_ms(),
                        reason=str(exc) or "recognizer_unsupported",
                    )
                )
            except TransientRecognitionError as exc:
                await self.handle_event(
                    RecognitionError(
                        event_type=VoiceEventType.RECOGNITION_ERROR,
                        ts_ms=now_ms(),
                        error=exc.error,
                    )
                )
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": now_ms(),
                    "event_type": "RECOGNITION_START_FAILED",
                    "instance_id": self._instance_id,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
                await self.handle_event(
                    RecognitionError(
                        event_type=VoiceEventType.RECOGNITION_ERROR,
                        ts_ms=now_ms(),
                        error="start-failed",
                    )
                )

        elif isinstance(cmd, StopRecognition):
            assert self._recognizer is not None, "recognizer missing"
            await self._recognizer.stop()

        elif isinstance(cmd, Speak):
            task = asyncio.create_task(self._speak(cmd))
            self._speech_tasks.add(task)
            task.add_done_callback(self._speech_tasks.discard)

        elif isinstance(cmd, CancelSpeech):
            if self._synthesizer is not None:
                await self._synthesizer.cancel()
            log_event({
                "ts_ms": now_ms(),
                "event_type": "SPEECH_CANCEL_EXECUTED",
                "instance_id": self._instance_id,
                "utterance_id": cmd.utterance_id,
            })

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                timeout_event_type=cmd.timeout_event_type,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        elif isinstance(cmd, PublishSignal):
            signal = VoiceSignal(signal=cmd.signal, text=cmd.text, ts_ms=now_ms())
            published = self._channel.publish(signal) if self._channel else False
            if self._notify is not None:
                self._notify({
                    "type": "SIGNAL",
                    "signal": cmd.signal.value,
                    "text": cmd.text,
                })
            log_event({
                "ts_ms": now_ms(),
                "event_type": "VOICE_SIGNAL_PUBLISHED",
                "instance_id": self._instance_id,
                "signal": cmd.signal.value,
                "delivered": published,
            })

        elif isinstance(cmd, ReportUnsupported):
            if self._unsupported_reported:
                return
            self._unsupported_reported = True
            log_event({
                "ts_ms": now_ms(),
                "event_type": "VOICE_UNSUPPORTED",
                "instance_id": self._instance_id,
                "message": cmd.message,
            })
            if self._notify is not None:
                self._notify({"type": "NOTICE", "level": "error", "message": cmd.message})

        else:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "COMMAND_NOT_IMPLEMENTED",
                "instance_id": self._instance_id,
                "command_type": type(cmd).__name__,
            })

    async def _speak(self, cmd: Speak) -> None:
        synthesizer = self._synthesizer
        if synthesizer is None:
            return
        try:
            await synthesizer.wait_until_ready()

            # Retired while waiting for voices (stop keyword, newer utterance)
            if cmd.utterance_id != self._state.utterance_id:
                log_event({
                    "ts_ms": now_ms(),
                    "event_type": "SPEAK_DROPPED_STALE",
                    "instance_id": self._instance_id,
                    "utterance_id": cmd.utterance_id,
                })
                return

            await synthesizer.cancel()
            await synthesizer.speak(utterance_id=cmd.utterance_id, text=cmd.text)
            log_event({
                "ts_ms": now_ms(),
                "event_type": "SPEAK_EXECUTED",
                "instance_id": self._instance_id,
                "utterance_id": cmd.utterance_id,
                "chars": len(cmd.text),
            })
        except asyncio.CancelledError:
            return

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        timeout_event_type: VoiceEventType,
    ) -> None:
        """
        Start or replace a timer that emits a timeout event.

        Timer tasks re-enter handle_event() when they expire.
        """
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
                # Expired: forget the handle before re-entering, so a timer
                # started by the resulting commands is not cancelled by us.
                if self._timers.get(timer_id) is asyncio.current_task():
                    del self._timers[timer_id]
                await self.handle_event(self._construct_timeout_event(timeout_event_type))
            except asyncio.CancelledError:
                return

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """Cancel an in-flight timer if it exists. Idempotent."""
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done():
            task.cancel()

    @staticmethod
    def _construct_timeout_event(timeout_event_type: VoiceEventType) -> VoiceEvent:
        ts = now_ms()

        if timeout_event_type is VoiceEventType.RESTART_TIMEOUT:
            return RestartTimeout(event_type=timeout_event_type, ts_ms=ts)

        if timeout_event_type is VoiceEventType.SETTLE_TIMEOUT:
            return SettleTimeout(event_type=timeout_event_type, ts_ms=ts)

        if timeout_event_type is VoiceEventType.ARM_TIMEOUT:
            return ArmTimeout(event_type=timeout_event_type, ts_ms=ts)

        raise ValueError(f"Unknown timeout event type: {timeout_event_type}")
