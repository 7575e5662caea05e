"""
Side-effect command definitions for the voice machine.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from voice.events import VoiceEventType
from voice.signals import VoiceSignalType


class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    Stable discriminants used for logging and runtime dispatch.
    """

    START_RECOGNITION = "START_RECOGNITION"
    STOP_RECOGNITION = "STOP_RECOGNITION"

    SPEAK = "SPEAK"
    CANCEL_SPEECH = "CANCEL_SPEECH"

    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    PUBLISH_SIGNAL = "PUBLISH_SIGNAL"
    REPORT_UNSUPPORTED = "REPORT_UNSUPPORTED"

    LOG_EVENT = "LOG_EVENT"


class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Recognizer
# =============================================================================

@dataclass(frozen=True)
class StartRecognition(Command):
    """Start the recognizer. Never emitted while it is already running."""
    command_type: CommandType = CommandType.START_RECOGNITION


@dataclass(frozen=True)
class StopRecognition(Command):
    """Stop the recognizer."""
    command_type: CommandType = CommandType.STOP_RECOGNITION


# =============================================================================
# Synthesizer
# =============================================================================

@dataclass(frozen=True)
class Speak(Command):
    """
    Speak text.

    The synthesizer must report SpeechStarted / SpeechEnded carrying
    utterance_id. Any utterance in progress is cancelled first.
    """
    utterance_id: int
    text: str
    command_type: CommandType = CommandType.SPEAK


@dataclass(frozen=True)
class CancelSpeech(Command):
    """Cancel speech output immediately."""
    utterance_id: int
    command_type: CommandType = CommandType.CANCEL_SPEECH


# =============================================================================
# Timers
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Start (or replace) a named timer.

    On expiration, the runtime must inject the specified timeout event.
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: VoiceEventType
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Cancel a previously scheduled timer. Idempotent."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Outbound signals
# =============================================================================

@dataclass(frozen=True)
class PublishSignal(Command):
    """Publish a wake/question signal to the command channel."""
    signal: VoiceSignalType
    text: str
    command_type: CommandType = CommandType.PUBLISH_SIGNAL


@dataclass(frozen=True)
class ReportUnsupported(Command):
    """Report, once, that speech is unavailable."""
    message: str
    command_type: CommandType = CommandType.REPORT_UNSUPPORTED


# =============================================================================
# Observability
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
