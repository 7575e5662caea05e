"""
Voice assistant mode enumeration.

Rules:
- This enum defines ONLY the observable modes.
- Modes are derived by the reducer from the state flags.
- No behavior, no helper methods, no side effects.
"""

from __future__ import annotations

from enum import Enum


class VoiceMode(str, Enum):
    """
    Observable mode of the voice assistant.

    Precedence when several flags hold at once:
    DISABLED > SPEAKING > ACTIVE > LISTENING > IDLE
    """

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    ACTIVE = "ACTIVE"
    SPEAKING = "SPEAKING"
    DISABLED = "DISABLED"
