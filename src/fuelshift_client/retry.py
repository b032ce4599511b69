from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from .exceptions import ApiError

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


def retry_delay(attempt: int, base_delay_seconds: float) -> float:
    """Delay before the next try after ``attempt`` (1-based) failed."""
    if attempt < 1:
        raise ValueError("attempt is 1-based")
    return max(0.0, base_delay_seconds) * attempt


def should_retry(error: Exception, attempt: int, max_attempts: int) -> bool:
    if attempt >= max_attempts:
        return False
    return isinstance(error, ApiError) and error.is_transient


async def retry_async(
    call: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay_seconds: float,
    sleep: SleepFn = asyncio.sleep,
    on_retry: Callable[[int, Exception], None] | None = None,
) -> T:
    """Await ``call`` until it succeeds or a non-retryable error occurs.

    The last error is re-raised unchanged once attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return await call()
        except ApiError as exc:
            if not should_retry(exc, attempt, max_attempts):
                raise
            if on_retry:
                on_retry(attempt, exc)
            await sleep(retry_delay(attempt, base_delay_seconds))
            attempt += 1
