"""
Backoff retry for Gemini calls.

Only rate-limit-class failures (HTTP 429, quota / resource-exhausted /
too-many-requests wording) are retried. Each wait is the current delay plus
up to ``jitter`` seconds of random jitter, and the delay doubles after every
attempt. Any other failure, or a spent budget, is re-raised unchanged.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 5
DEFAULT_DELAY_SECONDS = 3.0
DEFAULT_JITTER_SECONDS = 1.0

RATE_LIMIT_MARKERS = (
    "429",
    "quota",
    "resource exhausted",
    "resource_exhausted",
    "rate limit",
    "rate-limit",
    "too many requests",
)


def _status_of(obj: Any) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(obj, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Classify an exception as transient throttling.

    Looks for a 429 status on the error itself, on ``error.response`` and on
    a nested ``error.error``; then falls back to the message text.
    """
    for candidate in (error, getattr(error, "response", None), getattr(error, "error", None)):
        if candidate is not None and _status_of(candidate) == 429:
            return True

    message = str(error).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def _log_backoff(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Rate limit hit (attempt %d): %s. Retrying in %.1fs",
        retry_state.attempt_number,
        str(error)[:200],
        wait,
    )


def with_retry(
    operation: Callable[[], T],
    retries: int = DEFAULT_RETRIES,
    delay: float = DEFAULT_DELAY_SECONDS,
    jitter: float = DEFAULT_JITTER_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``operation`` with exponential backoff on rate limits.

    Args:
        operation: Zero-argument callable performing one upstream call
        retries: Retries allowed after the first attempt
        delay: Wait before the first retry, in seconds (doubles each time)
        jitter: Upper bound of the random extra wait, in seconds
        sleep: Sleep function (injectable for tests)

    Returns:
        Whatever ``operation`` returns

    Raises:
        The last exception raised by ``operation`` when it is not a rate
        limit or when the retry budget is exhausted.
    """
    wait = wait_exponential(multiplier=delay, exp_base=2, min=0)
    if jitter > 0:
        wait = wait + wait_random(0, jitter)

    retrying = Retrying(
        stop=stop_after_attempt(max(0, retries) + 1),
        wait=wait,
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=_log_backoff,
        sleep=sleep,
        reraise=True,
    )
    return retrying(operation)
