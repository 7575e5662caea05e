"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral constants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Markdown parsing
# =============================================================================

FENCE: Final[str] = "```"
DEFAULT_CODE_LANGUAGE: Final[str] = "text"

# =============================================================================
# Voice: wake / stop vocabulary
# =============================================================================

DEFAULT_WAKE_PHRASE: Final[str] = "jarvis"
STOP_KEYWORD: Final[str] = "stop"

WAKE_ACK_TEXT: Final[str] = "Yes, I'm listening."
QUESTION_ACK_TEXT: Final[str] = "Got it."
DEACTIVATED_TEXT_TEMPLATE: Final[str] = "{wake} deactivated."
REACTIVATED_TEXT_TEMPLATE: Final[str] = "{wake} is back online."
UNSUPPORTED_TEXT: Final[str] = "Speech recognition not supported!"

# =============================================================================
# Voice: timing
# =============================================================================

# Grace period the assistant stays armed after accepting a question
ARM_GRACE_DELAY_MS: Final[int] = 1_500

# Recognizer is not re-entrant while stopping; never restart immediately
RECOGNITION_RESTART_DELAY_MS: Final[int] = 700
RECOGNITION_ERROR_RESTART_DELAY_MS: Final[int] = 800
RECOGNITION_REENABLE_DELAY_MS: Final[int] = 800

# Playback must fully stop before the microphone is re-armed
SPEECH_SETTLE_DELAY_MS: Final[int] = 400

VOICES_POLL_INTERVAL_MS: Final[int] = 100
VOICES_WAIT_TIMEOUT_MS: Final[int] = 5_000

# =============================================================================
# Voice: retry policy
# =============================================================================

TRANSIENT_RECOGNITION_ERRORS: Final[Tuple[str, ...]] = (
    "network",
    "no-speech",
    "aborted",
)
MAX_RECOGNITION_RETRIES: Final[int] = 5

# =============================================================================
# Speech synthesis voice preferences
# =============================================================================

SPEECH_LANGUAGE: Final[str] = "en-US"
SPEECH_RATE: Final[float] = 0.95
SPEECH_PITCH: Final[float] = 1.05
PREFERRED_VOICE_HINTS: Final[Tuple[str, ...]] = ("david", "mark", "male")

# =============================================================================
# Completion gateway
# =============================================================================

DEFAULT_LLM_MODEL: Final[str] = "gpt-4o-mini"
DEFAULT_IMAGE_MIME_TYPE: Final[str] = "image/png"
DEFAULT_GENERATE_FRAMEWORK: Final[str] = "HTML + CSS"

# =============================================================================
# User-visible notices
# =============================================================================

FAILURE_NOTICE: Final[str] = "Failed to process request!"
AUTH_FAILURE_NOTICE: Final[str] = "API key invalid. Check the configured API key."
EMPTY_INPUT_NOTICE: Final[str] = "Please provide code or prompt!"
BUSY_NOTICE: Final[str] = "A request is already in progress."

# =============================================================================
# Persistence
# =============================================================================

SESSIONS_FILENAME: Final[str] = "sessions.json"
HISTORY_FILENAME: Final[str] = "history.json"
