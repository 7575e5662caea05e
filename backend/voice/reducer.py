"""
Pure voice-command reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Any

from constants import (
    ARM_GRACE_DELAY_MS,
    DEACTIVATED_TEXT_TEMPLATE,
    QUESTION_ACK_TEXT,
    REACTIVATED_TEXT_TEMPLATE,
    RECOGNITION_REENABLE_DELAY_MS,
    SPEECH_SETTLE_DELAY_MS,
    STOP_KEYWORD,
    UNSUPPORTED_TEXT,
    WAKE_ACK_TEXT,
)
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
from voice.enums.mode import VoiceMode
from voice.events import (
    ArmTimeout,
    ListeningToggled,
    ManualActivate,
    PlatformUnsupported,
    RecognitionEnded,
    RecognitionError,
    RecognitionStarted,
    RestartTimeout,
    SayRequested,
    SettleTimeout,
    SpeechEnded,
    SpeechStarted,
    TranscriptReceived,
    VoiceEvent,
    VoiceEventType,
    VoiceStarted,
    VoiceStopped,
)
from voice.retry import (
    is_transient,
    next_attempt,
    reset_attempt,
    restart_delay_ms,
    should_retry,
)
from voice.signals import VoiceSignalType
from voice.state_dataclass import VoiceState


# =============================================================================
# Timer IDs
# =============================================================================

TIMER_RESTART = "recognition_restart"
TIMER_SETTLE = "speech_settle"
TIMER_ARM = "arm_grace"

ALL_TIMERS = (TIMER_RESTART, TIMER_SETTLE, TIMER_ARM)


# =============================================================================
# Small helpers
# =============================================================================

def normalize_transcript(text: str) -> str:
    return " ".join(text.lower().split())


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word match of phrase inside an already normalized transcript."""
    phrase = normalize_transcript(phrase)
    if not phrase:
        return False
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def derive_mode(state: VoiceState) -> VoiceMode:
    if not state.enabled or not state.supported:
        return VoiceMode.DISABLED
    if state.speaking:
        return VoiceMode.SPEAKING
    if state.armed:
        return VoiceMode.ACTIVE
    if state.recognizing:
        return VoiceMode.LISTENING
    return VoiceMode.IDLE


def _log(
    state: VoiceState,
    event: VoiceEvent,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "mode": state.mode.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "armed": state.armed,
            "recognizing": state.recognizing,
            "speaking": state.speaking,
            "utterance_id": state.utterance_id,
            "details": details or {},
        }
    )


def _ignore(
    state: VoiceState, event: VoiceEvent, reason: str
) -> tuple[VoiceState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _finish(
    prev: VoiceState,
    new_state: VoiceState,
    event: VoiceEvent,
    commands: list[Command],
) -> tuple[VoiceState, tuple[Command, ...]]:
    """
    Recompute the observable mode and append a state_changed log when it
    moved. Logs always come after side-effect commands.
    """
    new_state = replace(new_state, mode=derive_mode(new_state))

    non_logs = [c for c in commands if not isinstance(c, LogEvent)]
    logs = [c for c in commands if isinstance(c, LogEvent)]
    if new_state.mode is not prev.mode:
        logs.append(
            _log(
                new_state,
                event,
                "state_changed",
                {"from_mode": prev.mode.value, "to_mode": new_state.mode.value},
            )
        )
    return new_state, tuple(non_logs + logs)


def _start_recognition(state: VoiceState) -> tuple[VoiceState, list[Command]]:
    """
    Start the recognizer if nothing forbids it.

    The recognizer is not re-entrant: never start it twice, never while
    speech output is playing.
    """
    if (
        not state.started
        or not state.enabled
        or not state.supported
        or state.halted
        or state.speaking
        or state.recognizing
    ):
        return state, []
    return replace(state, recognizing=True), [StartRecognition()]


def _stop_recognition(state: VoiceState) -> tuple[VoiceState, list[Command]]:
    if not state.recognizing:
        return state, []
    return replace(state, recognizing=False), [StopRecognition()]


def _speak(state: VoiceState, text: str) -> tuple[VoiceState, list[Command]]:
    utterance_id = state.utterance_id + 1
    return (
        replace(state, utterance_id=utterance_id),
        [Speak(utterance_id=utterance_id, text=text)],
    )


def _cancel_speech(state: VoiceState) -> tuple[VoiceState, list[Command]]:
    """
    Cancel output and retire the current utterance id, so late
    SpeechStarted/SpeechEnded events for it are stale.
    """
    return (
        replace(state, speaking=False, utterance_id=state.utterance_id + 1),
        [CancelSpeech(utterance_id=state.utterance_id)],
    )


def _cancel_timers(*timer_ids: str) -> list[Command]:
    return [CancelTimer(timer_id=t) for t in timer_ids]


def _halt(
    state: VoiceState, event: VoiceEvent, reason: str
) -> tuple[VoiceState, tuple[Command, ...]]:
    """Non-recoverable recognizer failure: fall back to IDLE, no restart."""
    new_state = replace(
        state,
        armed=False,
        recognizing=False,
        halted=True,
        last_error=reason,
        restart_attempt=reset_attempt(),
    )
    cmds: list[Command] = _cancel_timers(TIMER_RESTART, TIMER_ARM)
    cmds.append(_log(new_state, event, "recognition_halted", {"reason": reason}))
    return _finish(state, new_state, event, cmds)


# =============================================================================
# Transcript handling
# =============================================================================

def _on_transcript(
    state: VoiceState, event: TranscriptReceived
) -> tuple[VoiceState, tuple[Command, ...]]:
    if not state.enabled:
        return _ignore(state, event, "disabled")

    text = normalize_transcript(event.text)
    if not text:
        return _ignore(state, event, "empty_transcript")

    new_state = replace(state, last_transcript=text, restart_attempt=reset_attempt())
    cmds: list[Command] = []

    # --- stop keyword: cancel output, resume listening ---
    if contains_phrase(text, STOP_KEYWORD):
        if not state.speaking and not state.armed:
            cmds.append(_log(new_state, event, "stop_without_output"))
            return _finish(state, new_state, event, cmds)

        # Also retires an acknowledgement still waiting for voices
        new_state, more = _cancel_speech(new_state)
        cmds.extend(more)

        new_state = replace(new_state, armed=False)
        cmds.extend(_cancel_timers(TIMER_ARM, TIMER_SETTLE))

        new_state, more = _start_recognition(new_state)
        cmds.extend(more)
        cmds.append(_log(new_state, event, "stop_speaking"))
        return _finish(state, new_state, event, cmds)

    has_wake = contains_phrase(text, state.wake_phrase)

    # --- wake phrase while not armed ---
    if not state.armed and has_wake:
        new_state = replace(new_state, armed=True)
        cmds.append(PublishSignal(signal=VoiceSignalType.WAKE, text=text))
        new_state, more = _speak(new_state, WAKE_ACK_TEXT)
        cmds.extend(more)
        cmds.append(_log(new_state, event, "wake"))
        return _finish(state, new_state, event, cmds)

    # --- question while armed ---
    if state.armed and not has_wake:
        cmds.append(PublishSignal(signal=VoiceSignalType.QUESTION, text=text))
        new_state, more = _speak(new_state, QUESTION_ACK_TEXT)
        cmds.extend(more)
        cmds.append(
            StartTimer(
                timer_id=TIMER_ARM,
                duration_ms=ARM_GRACE_DELAY_MS,
                timeout_event_type=VoiceEventType.ARM_TIMEOUT,
            )
        )
        cmds.append(_log(new_state, event, "question", {"chars": len(text)}))
        return _finish(state, new_state, event, cmds)

    reason = "wake_while_armed" if state.armed else "not_armed"
    cmds.append(_log(new_state, event, "ignore", {"reason": reason}))
    return _finish(state, new_state, event, cmds)


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: VoiceState, event: VoiceEvent
) -> tuple[VoiceState, tuple[Command, ...]]:
    """
    Pure reducer for the voice command state machine.

    Given the current state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Version-safe: ignores speech events for retired utterance ids
    """
    # ------------------------------------------------------------------
    # Unsupported platform gating (fatal, reported once)
    # ------------------------------------------------------------------
    if isinstance(event, PlatformUnsupported):
        if not state.supported:
            return _ignore(state, event, "already_unsupported")

        new_state = replace(
            state,
            supported=False,
            armed=False,
            recognizing=False,
            speaking=False,
            last_error=event.reason or "unsupported",
        )
        cmds: list[Command] = _cancel_timers(*ALL_TIMERS)
        cmds.append(ReportUnsupported(message=UNSUPPORTED_TEXT))
        cmds.append(_log(new_state, event, "platform_unsupported", {"reason": event.reason}))
        return _finish(state, new_state, event, cmds)

    if not state.supported:
        return _ignore(state, event, "platform_unsupported")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    if isinstance(event, VoiceStarted):
        if state.started:
            return _ignore(state, event, "already_started")
        new_state = replace(state, started=True, halted=False)
        new_state, cmds = _start_recognition(new_state)
        cmds.append(_log(new_state, event, "voice_started"))
        return _finish(state, new_state, event, cmds)

    if isinstance(event, VoiceStopped):
        cmds = _cancel_timers(*ALL_TIMERS)
        new_state = replace(state, started=False, armed=False)
        new_state, more = _stop_recognition(new_state)
        cmds.extend(more)
        if new_state.speaking:
            new_state, more = _cancel_speech(new_state)
            cmds.extend(more)
        cmds.append(_log(new_state, event, "voice_stopped"))
        return _finish(state, new_state, event, cmds)

    # ------------------------------------------------------------------
    # Recognizer stream
    # ------------------------------------------------------------------
    if isinstance(event, RecognitionStarted):
        new_state = replace(state, recognizing=True, restart_attempt=reset_attempt())
        return _finish(state, new_state, event, [_log(new_state, event, "recognition_started")])

    if isinstance(event, RecognitionEnded):
        new_state = replace(state, recognizing=False)
        if (
            not new_state.started
            or not new_state.enabled
            or new_state.speaking
            or new_state.halted
        ):
            return _finish(
                state, new_state, event,
                [_log(new_state, event, "recognition_ended_no_restart")],
            )
        return _finish(state, new_state, event, [
            StartTimer(
                timer_id=TIMER_RESTART,
                duration_ms=restart_delay_ms(after_error=False),
                timeout_event_type=VoiceEventType.RESTART_TIMEOUT,
            ),
            _log(new_state, event, "schedule_restart", {"after_error": False}),
        ])

    if isinstance(event, RecognitionError):
        new_state = replace(state, recognizing=False)

        if not is_transient(event.error):
            return _halt(new_state, event, event.error)

        if not new_state.started or not new_state.enabled or new_state.speaking:
            return _finish(
                state, new_state, event,
                [_log(new_state, event, "transient_error_no_restart", {"error": event.error})],
            )

        if not should_retry(error=event.error, attempt=new_state.restart_attempt):
            return _halt(new_state, event, f"retries_exhausted:{event.error}")

        new_state = replace(new_state, restart_attempt=next_attempt(new_state.restart_attempt))
        return _finish(state, new_state, event, [
            StartTimer(
                timer_id=TIMER_RESTART,
                duration_ms=restart_delay_ms(after_error=True),
                timeout_event_type=VoiceEventType.RESTART_TIMEOUT,
            ),
            _log(
                new_state,
                event,
                "schedule_restart",
                {
                    "after_error": True,
                    "error": event.error,
                    "attempt": new_state.restart_attempt.attempt,
                },
            ),
        ])

    if isinstance(event, TranscriptReceived):
        return _on_transcript(state, event)

    # ------------------------------------------------------------------
    # Synthesizer stream
    # ------------------------------------------------------------------
    if isinstance(event, SpeechStarted):
        if event.utterance_id != state.utterance_id:
            # A retired utterance began playing anyway: silence it
            return state, (
                CancelSpeech(utterance_id=event.utterance_id),
                _log(state, event, "ignore", {"reason": "stale_utterance"}),
            )

        new_state = replace(state, speaking=True)
        cmds = _cancel_timers(TIMER_RESTART, TIMER_SETTLE)
        new_state, more = _stop_recognition(new_state)
        cmds.extend(more)
        cmds.append(_log(new_state, event, "speech_started"))
        return _finish(state, new_state, event, cmds)

    if isinstance(event, SpeechEnded):
        if event.utterance_id != state.utterance_id or not state.speaking:
            return _ignore(state, event, "stale_utterance")

        new_state = replace(state, speaking=False)
        return _finish(state, new_state, event, [
            StartTimer(
                timer_id=TIMER_SETTLE,
                duration_ms=SPEECH_SETTLE_DELAY_MS,
                timeout_event_type=VoiceEventType.SETTLE_TIMEOUT,
            ),
            _log(new_state, event, "speech_ended"),
        ])

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    if isinstance(event, ListeningToggled):
        if event.enabled == state.enabled:
            return _ignore(state, event, "toggle_no_change")

        wake = state.wake_phrase.capitalize()

        if not event.enabled:
            cmds = _cancel_timers(*ALL_TIMERS)
            new_state = replace(state, enabled=False, armed=False, halted=False)
            new_state, more = _stop_recognition(new_state)
            cmds.extend(more)
            new_state, more = _speak(new_state, DEACTIVATED_TEXT_TEMPLATE.format(wake=wake))
            cmds.extend(more)
            cmds.append(_log(new_state, event, "listening_disabled"))
            return _finish(state, new_state, event, cmds)

        new_state = replace(
            state, enabled=True, halted=False, restart_attempt=reset_attempt()
        )
        new_state, cmds = _speak(new_state, REACTIVATED_TEXT_TEMPLATE.format(wake=wake))
        cmds.append(
            StartTimer(
                timer_id=TIMER_RESTART,
                duration_ms=RECOGNITION_REENABLE_DELAY_MS,
                timeout_event_type=VoiceEventType.RESTART_TIMEOUT,
            )
        )
        cmds.append(_log(new_state, event, "listening_enabled"))
        return _finish(state, new_state, event, cmds)

    if isinstance(event, ManualActivate):
        if not state.enabled:
            return _ignore(state, event, "disabled")
        if state.armed:
            return _ignore(state, event, "already_armed")
        new_state = replace(state, armed=True, halted=False)
        new_state, cmds = _speak(new_state, WAKE_ACK_TEXT)
        cmds.append(_log(new_state, event, "manual_activate"))
        return _finish(state, new_state, event, cmds)

    if isinstance(event, SayRequested):
        if not event.text.strip():
            return _ignore(state, event, "empty_text")
        new_state, cmds = _speak(state, event.text.strip())
        cmds.append(_log(new_state, event, "say", {"chars": len(event.text)}))
        return _finish(state, new_state, event, cmds)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    if isinstance(event, (RestartTimeout, SettleTimeout)):
        new_state, cmds = _start_recognition(state)
        if not cmds:
            return _ignore(state, event, "restart_not_allowed")
        cmds.append(_log(new_state, event, "restart_recognition"))
        return _finish(state, new_state, event, cmds)

    if isinstance(event, ArmTimeout):
        if not state.armed:
            return _ignore(state, event, "not_armed")
        new_state = replace(state, armed=False)
        return _finish(state, new_state, event, [_log(new_state, event, "disarm")])

    return _ignore(state, event, "unhandled_event")
