"""
Signals published by the voice machine to its consumers.

Signals cross the boundary from the voice runtime to the orchestrator's
command channel; they carry data only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VoiceSignalType(str, Enum):
    """Kinds of signal the voice machine publishes."""

    WAKE = "wake"
    QUESTION = "question"


@dataclass(frozen=True)
class VoiceSignal:
    """A wake or question signal. text is the normalized transcript."""
    signal: VoiceSignalType
    text: str
    ts_ms: int
