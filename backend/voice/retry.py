"""
Recognition restart policy.

Purpose:
- Centralize which recognizer failures are retried and how long to wait
- Keep the reducer pure

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from dataclasses import dataclass

from constants import (
    MAX_RECOGNITION_RETRIES,
    RECOGNITION_ERROR_RESTART_DELAY_MS,
    RECOGNITION_RESTART_DELAY_MS,
    TRANSIENT_RECOGNITION_ERRORS,
)


@dataclass(frozen=True)
class RetryAttempt:
    """
    Immutable retry attempt counter.

    attempt == 0 means no consecutive transient failure has happened.
    """
    attempt: int


def next_attempt(current: RetryAttempt) -> RetryAttempt:
    """Return a new RetryAttempt with attempt incremented by 1."""
    return RetryAttempt(attempt=current.attempt + 1)


def reset_attempt() -> RetryAttempt:
    """Returns a fresh retry attempt counter."""
    return RetryAttempt(attempt=0)


def is_transient(error: str) -> bool:
    """
    True for recognizer errors that are expected in normal use
    (network blips, silence, aborts caused by our own stop()).
    """
    return error in TRANSIENT_RECOGNITION_ERRORS


def should_retry(*, error: str, attempt: RetryAttempt) -> bool:
    """
    Returns True if a restart is allowed after this error.

    attempt = number of consecutive restarts already scheduled
    """
    return is_transient(error) and attempt.attempt < MAX_RECOGNITION_RETRIES


def restart_delay_ms(*, after_error: bool) -> int:
    """Fixed backoff: errors wait slightly longer than a plain end."""
    if after_error:
        return RECOGNITION_ERROR_RESTART_DELAY_MS
    return RECOGNITION_RESTART_DELAY_MS
