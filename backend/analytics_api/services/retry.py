"""
Retry helper for calls to external services.

Errors are classified as retryable (connectivity, timeouts, HTTP 5xx and 429,
or anything flagged ``retryable``) or fatal. Retryable failures are retried
a bounded number of times with a fixed delay; fatal ones raise at once.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

logger = structlog.get_logger("analytics.services.retry")

T = TypeVar("T")

RETRYABLE_STATUS = {429}


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded attempts with a fixed delay (seconds) between them."""
    attempts: int = 3
    delay: float = 1.0

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("RetryPolicy.attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("RetryPolicy.delay must not be negative")


def is_retryable_error(exc: BaseException) -> bool:
    """True for failures worth another attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status in RETRYABLE_STATUS
    if isinstance(exc, (httpx.TransportError, TimeoutError, ConnectionError)):
        return True
    return bool(getattr(exc, "retryable", False))


def _log_retry(operation: str, policy: RetryPolicy):
    def before_sleep(retry_state: RetryCallState) -> None:
        logger.warning(
            "retrying_call",
            operation=operation,
            attempt=retry_state.attempt_number,
            max_attempts=policy.attempts,
            delay_s=retry_state.next_action.sleep,
            error=str(retry_state.outcome.exception()),
        )
    return before_sleep


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy = RetryPolicy(),
    *,
    is_retryable: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Callable[[float], None] = time.sleep,
    operation: str = "call",
) -> T:
    """Call ``func`` until it succeeds, a fatal error occurs, or attempts run out.

    The last error is re-raised unchanged.
    """
    retrying = Retrying(
        stop=stop_after_attempt(policy.attempts),
        wait=wait_fixed(policy.delay),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry(operation, policy),
        sleep=sleep,
        reraise=True,
    )
    return retrying(func)
