"""Bounded exponential backoff for single async operations.

Each call builds its own ``AsyncRetrying`` controller, so the attempt counter
and current delay belong to that call alone. Concurrent calls against the same
adapter never see each other's retry state.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from ..config import RetryProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_STATUSES = {429}


def is_retryable(exc: BaseException) -> bool:
    """Transient errors only: transport failures, HTTP 5xx and 429."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status in RETRY_STATUSES or status >= 500
    return isinstance(exc, httpx.TransportError)


def _backoff(profile: RetryProfile) -> Callable[[RetryCallState], float]:
    def wait(retry_state: RetryCallState) -> float:
        # attempt_number is 1 after the first failure -> first retry index 0
        return profile.delay_for(retry_state.attempt_number - 1)
    return wait


def _log_retry(label: str, profile: RetryProfile) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.debug(
            f"Retry {retry_state.attempt_number}/{profile.max_retries} for {label} "
            f"in {delay:.2f}s: {exc}"
        )
    return before_sleep


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    profile: RetryProfile,
    *,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` with up to ``profile.max_retries`` retries.

    Delay before retry ``n`` (0-based) is ``initial_delay * backoff_factor ** n``
    capped at ``max_delay``, without jitter. Permanent failures (4xx other than
    429, non-HTTP errors) are raised immediately.

    Args:
        operation: Zero-argument coroutine factory, invoked once per attempt
        profile: Backoff parameters
        label: Name used in log lines
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The operation's result

    Raises:
        The last error once retries are exhausted, or the first permanent error
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(profile.max_retries + 1),
        wait=_backoff(profile),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry(label, profile),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)
