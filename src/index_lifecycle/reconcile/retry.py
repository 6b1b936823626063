"""Bounded retry for optimistic-concurrency conflicts.

``retry_on_conflict`` re-runs a fetch-compare-write function while it
fails with a retryable error (by default only ConflictError), up to a
fixed number of attempts. Back-off sleeps are interruptible through the
caller's Deadline; any other error, and the last conflict once the
attempts are used up, propagates unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
    wait_random,
)

from index_lifecycle.errors import ConflictError
from index_lifecycle.store.base import Deadline

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Attempt limit and back-off for conflict retries.

    The defaults mirror the Kubernetes client-go ``DefaultRetry``:
    five attempts, 10ms apart, with 10% jitter.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(5, ge=1)
    delay: float = Field(0.01, ge=0)
    """Seconds to wait between attempts."""

    jitter: float = Field(0.1, ge=0)
    """Extra random wait, as a fraction of ``delay``."""


DEFAULT_RETRY = RetryPolicy()


def is_conflict(exc: BaseException) -> bool:
    return isinstance(exc, ConflictError)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.debug(
        "Conflict on attempt %d, retrying: %s", retry_state.attempt_number, exc,
    )


def retry_on_conflict(
    fn: Callable[[], T],
    policy: RetryPolicy = DEFAULT_RETRY,
    deadline: Deadline | None = None,
    is_retryable: Callable[[BaseException], bool] = is_conflict,
) -> T:
    """Call *fn*, re-running it while it fails with a retryable error."""
    deadline = deadline or Deadline()

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_fixed(policy.delay) + wait_random(0, policy.delay * policy.jitter),
        retry=retry_if_exception(is_retryable),
        sleep=deadline.sleep,
        before_sleep=_log_retry,
        reraise=True,
    )

    def attempt() -> T:
        deadline.check()
        return fn()

    return retrying(attempt)
