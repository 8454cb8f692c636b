"""Retry with linear backoff for transient transport failures."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from blockwire.core.errors import TransportFailure
from blockwire.observability.logging import get_logger

T = TypeVar("T")
log = get_logger("retry")


def backoff_delay(retry_number: int, backoff_s: float = 5.0) -> float:
    """Delay before retry `retry_number` (1-based): backoff_s * (1 + n)."""
    return backoff_s * (1 + retry_number)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = 3,
    backoff_s: float = 5.0,
    retryable_exceptions: tuple[Type[Exception], ...] = (TransportFailure,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, float, BaseException], None]] = None,
    **kwargs: Any,
) -> T:
    """
    Retry an async function with linear backoff.

    The first call is not a retry; after it, up to `max_retries` retries are
    made, waiting `backoff_delay(n)` before retry n (10 s, 15 s, 20 s with the
    default backoff). Exceptions outside `retryable_exceptions` propagate
    immediately. State lives in this call only, so concurrent callers never
    share a counter.

    Args:
        func: Async function to retry
        *args: Positional arguments for func
        max_retries: Retries after the first attempt
        backoff_s: Backoff unit in seconds
        retryable_exceptions: Exceptions that should trigger retry
        sleep: Awaitable sleep, injectable for tests
        on_retry: Called with (retry number, delay, error) before each backoff
        **kwargs: Keyword arguments for func

    Returns:
        Function result

    Raises:
        The last retryable exception once retries are exhausted.
    """

    def _before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        log.debug(
            "retry_scheduled",
            func=getattr(func, "__name__", repr(func)),
            retry=state.attempt_number,
            max_retries=max_retries,
            delay_s=delay,
        )
        if on_retry is not None and error is not None:
            on_retry(state.attempt_number, delay, error)

    retry_config = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_incrementing(start=backoff_delay(1, backoff_s), increment=backoff_s),
        retry=retry_if_exception_type(retryable_exceptions),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )

    attempt = 0
    async for attempt_state in retry_config:
        with attempt_state:
            attempt += 1
            try:
                result = await func(*args, **kwargs)
                if attempt > 1:
                    log.info(
                        "retry_succeeded",
                        func=getattr(func, "__name__", repr(func)),
                        attempts=attempt,
                    )
                return result
            except retryable_exceptions as e:
                log.warning(
                    "retry_failed_attempt",
                    func=getattr(func, "__name__", repr(func)),
                    attempt=attempt,
                    max_attempts=max_retries + 1,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

    # This should never be reached due to reraise=True
    raise RuntimeError("Retry logic failed unexpectedly")
