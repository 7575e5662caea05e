"""
Error taxonomy.

Rules:
- Every error surfaced by the assistant core derives from AssistantError.
- Vendor exceptions never cross an adapter boundary; adapters re-raise
  as one of these types.
"""

from __future__ import annotations


class AssistantError(Exception):
    """Base class for all assistant core errors."""


class InputValidationError(AssistantError):
    """Rejected locally before any network call (e.g. empty prompt)."""


class SubmissionInProgressError(AssistantError):
    """A completion call is already in flight for this orchestrator."""


class GatewayError(AssistantError):
    """
    Remote completion call failed.

    auth_failure is True when the provider rejected the credentials;
    the orchestrator uses it to pick a more specific notice.
    """

    def __init__(self, reason: str, *, auth_failure: bool = False) -> None:
        super().__init__(reason)
        self.reason = reason
        self.auth_failure = auth_failure


class UnsupportedPlatformError(AssistantError):
    """No speech capability; the voice feature is disabled for the session."""


class TransientRecognitionError(AssistantError):
    """Recoverable recognizer failure (network, no-speech, aborted)."""

    def __init__(self, error: str) -> None:
        super().__init__(error)
        self.error = error


class PersistenceError(AssistantError):
    """Underlying store could not be read or written."""
