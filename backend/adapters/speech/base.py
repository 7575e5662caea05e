"""
Speech adapter contracts.

This module defines the *interface only*: no restart policy, no timers,
no wake-phrase handling.

Key invariants:
- Adapters emit voice events through an async emit_event callback; they
  never call the reducer or make state transitions.
- Utterance ids are owned by the voice reducer. Synthesizers echo them
  back in SpeechStarted / SpeechEnded and never generate their own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Recognizer(ABC):
    """
    Continuous speech-to-text source.

    Implementations must emit:
    - RecognitionStarted when capture begins
    - TranscriptReceived for each final result
    - RecognitionError(error) on failure, using platform error codes
      ("network", "no-speech", "aborted", "not-allowed", ...)
    - RecognitionEnded whenever capture stops, including after errors
    """

    @property
    def supported(self) -> bool:
        """False when the platform has no recognition capability."""
        return True

    @abstractmethod
    async def start(self) -> None:
        """
        Start capturing. The runtime never calls start() twice without a
        RecognitionEnded in between.

        Raises UnsupportedPlatformError when capture is impossible, or
        TransientRecognitionError for a failure worth retrying.
        """
        raise NotImplementedError

    @abstractmethod
    async def stop(self) -> None:
        """Stop capturing. Idempotent."""
        raise NotImplementedError


class Synthesizer(ABC):
    """
    Text-to-speech sink.

    Implementations must emit SpeechStarted(utterance_id) when playback
    begins and exactly one SpeechEnded(utterance_id) when it finishes,
    fails, or is cancelled.
    """

    @property
    def supported(self) -> bool:
        return True

    @abstractmethod
    async def wait_until_ready(self) -> None:
        """Suspend until the platform voice list is available."""
        raise NotImplementedError

    @abstractmethod
    async def speak(self, *, utterance_id: int, text: str) -> None:
        """Start speaking text. Must not block until playback ends."""
        raise NotImplementedError

    @abstractmethod
    async def cancel(self) -> None:
        """Cancel any output immediately. Idempotent."""
        raise NotImplementedError
