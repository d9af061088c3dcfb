# printer_worker/retry.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryError, RetryCallState, stop_after_attempt

from .errors import RetryExhausted

log = logging.getLogger("printer-worker.retry")

T = TypeVar("T")

Backoff = Callable[[int], float]


def linear_backoff(step: float) -> Backoff:
    """Wait step * n seconds after the n-th failed attempt (2s, 4s, 6s, ...)."""
    return lambda attempt: step * attempt


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    backoff: Backoff,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
) -> T:
    """Call ``fn`` up to ``attempts`` times, sleeping ``backoff(n)`` between failures.

    No sleep follows the last attempt. Raises RetryExhausted with the last
    error once every attempt has failed.
    """
    attempts = max(1, int(attempts))

    def _wait(state: RetryCallState) -> float:
        return backoff(state.attempt_number)

    def _before_sleep(state: RetryCallState) -> None:
        if state.outcome is None:
            return
        wait = state.next_action.sleep if state.next_action else 0.0
        if on_retry is None:
            log.debug("attempt %d failed: %r, retrying in %ss", state.attempt_number, state.outcome.exception(), wait)
            return
        on_retry(state.attempt_number, state.outcome.exception(), wait)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=_wait,
        sleep=sleep,
        before_sleep=_before_sleep,
        reraise=False,
    )
    try:
        async for attempt in retrying:
            with attempt:
                return await fn()
    except RetryError as e:
        last = e.last_attempt
        raise RetryExhausted(last.attempt_number, last.exception()) from last.exception()
    raise AssertionError("unreachable")  # pragma: no cover
