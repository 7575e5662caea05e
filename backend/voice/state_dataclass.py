"""
Authoritative voice machine state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from constants import DEFAULT_WAKE_PHRASE
from voice.enums.mode import VoiceMode
from voice.retry import RetryAttempt


@dataclass(frozen=True)
class VoiceState:
    """Immutable snapshot of all voice-machine state."""

    # ------------------------------------------------------------------
    # Observable
    # ------------------------------------------------------------------
    mode: VoiceMode = VoiceMode.IDLE
    last_transcript: str = ""

    wake_phrase: str = DEFAULT_WAKE_PHRASE

    # ------------------------------------------------------------------
    # Lifecycle / capability
    # ------------------------------------------------------------------
    started: bool = False
    supported: bool = True
    enabled: bool = True

    # Set after a non-transient recognizer failure; cleared by an
    # explicit user action (toggle, manual activation, restart).
    halted: bool = False

    # ------------------------------------------------------------------
    # Orthogonal activity flags
    # ------------------------------------------------------------------
    # Wake phrase (or manual activation) seen; next transcript is a question
    armed: bool = False

    # Recognizer start requested / running
    recognizing: bool = False

    # Synthesizer currently playing utterance_id
    speaking: bool = False

    # ------------------------------------------------------------------
    # Versioning
    # ------------------------------------------------------------------
    # Monotonic; speech events for other ids are stale
    utterance_id: int = 0

    # ------------------------------------------------------------------
    # Retry bookkeeping
    # ------------------------------------------------------------------
    restart_attempt: RetryAttempt = field(default_factory=lambda: RetryAttempt(attempt=0))

    last_error: str | None = None
