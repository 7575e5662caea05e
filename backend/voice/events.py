"""
Event definitions for the voice reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Two external streams feed the machine: recognizer events
(RECOGNITION_*, TRANSCRIPT) and synthesizer events (SPEECH_*).
Timer events are constructed by the runtime when a timer expires.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Event Type Enumeration
# =============================================================================

class VoiceEventType(str, Enum):
    """
    Canonical event types understood by the voice reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    VOICE_STARTED = "VOICE_STARTED"
    VOICE_STOPPED = "VOICE_STOPPED"
    PLATFORM_UNSUPPORTED = "PLATFORM_UNSUPPORTED"

    # ------------------------------------------------------------------
    # Recognizer
    # ------------------------------------------------------------------
    RECOGNITION_STARTED = "RECOGNITION_STARTED"
    RECOGNITION_ENDED = "RECOGNITION_ENDED"
    RECOGNITION_ERROR = "RECOGNITION_ERROR"
    TRANSCRIPT = "TRANSCRIPT"

    # ------------------------------------------------------------------
    # Synthesizer
    # ------------------------------------------------------------------
    SPEECH_STARTED = "SPEECH_STARTED"
    SPEECH_ENDED = "SPEECH_ENDED"

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    LISTENING_TOGGLED = "LISTENING_TOGGLED"
    MANUAL_ACTIVATE = "MANUAL_ACTIVATE"
    SAY_REQUESTED = "SAY_REQUESTED"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    RESTART_TIMEOUT = "RESTART_TIMEOUT"
    SETTLE_TIMEOUT = "SETTLE_TIMEOUT"
    ARM_TIMEOUT = "ARM_TIMEOUT"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class VoiceEvent:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: VoiceEventType
    ts_ms: int


# =============================================================================
# Lifecycle
# =============================================================================

@dataclass(frozen=True)
class VoiceStarted(VoiceEvent):
    """Runtime started; recognizer and synthesizer are available."""


@dataclass(frozen=True)
class VoiceStopped(VoiceEvent):
    """Runtime is shutting down."""


@dataclass(frozen=True)
class PlatformUnsupported(VoiceEvent):
    """No speech capability on this platform. Fatal for the feature."""
    reason: str | None = None


# =============================================================================
# Recognizer
# =============================================================================

@dataclass(frozen=True)
class RecognitionStarted(VoiceEvent):
    """Recognizer reported that capture started."""


@dataclass(frozen=True)
class RecognitionEnded(VoiceEvent):
    """Recognizer stopped (normally or after an error)."""


@dataclass(frozen=True)
class RecognitionError(VoiceEvent):
    """Recognizer failure. error is the platform error code."""
    error: str


@dataclass(frozen=True)
class TranscriptReceived(VoiceEvent):
    """Final transcript for the current recognition result."""
    text: str


# =============================================================================
# Synthesizer
# =============================================================================

@dataclass(frozen=True)
class SpeechStarted(VoiceEvent):
    """Playback of an utterance started."""
    utterance_id: int


@dataclass(frozen=True)
class SpeechEnded(VoiceEvent):
    """Playback of an utterance finished, failed, or was cancelled."""
    utterance_id: int


# =============================================================================
# User control
# =============================================================================

@dataclass(frozen=True)
class ListeningToggled(VoiceEvent):
    """User switched the assistant on or off."""
    enabled: bool


@dataclass(frozen=True)
class ManualActivate(VoiceEvent):
    """User clicked the assistant to arm it without the wake phrase."""


@dataclass(frozen=True)
class SayRequested(VoiceEvent):
    """Another component asked for text to be read aloud."""
    text: str


# =============================================================================
# Timers
# =============================================================================

@dataclass(frozen=True)
class RestartTimeout(VoiceEvent):
    """Recognition restart backoff elapsed."""


@dataclass(frozen=True)
class SettleTimeout(VoiceEvent):
    """Post-speech settle delay elapsed."""


@dataclass(frozen=True)
class ArmTimeout(VoiceEvent):
    """Grace period after a question elapsed."""
