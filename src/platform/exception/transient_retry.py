"""
Bounded retry for transient store failures at the API boundary.

Only `TransientError` is retried. Every other error surfaces on the first attempt.
"""

import functools
import random
from typing import Any, Awaitable, Callable, TypeVar

import anyio

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import TransientError
from src.platform.logging.loguru_io import Logger


T = TypeVar('T')


def backoff_delay(*, attempt: int, base_delay: float, max_delay: float = 2.0) -> float:
    """Exponential backoff with half-delay jitter, attempt is 1-based"""
    delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
    return delay + random.uniform(0, delay / 2)


def retry_transient(
    func: Callable[..., Awaitable[T]] | None = None,
    *,
    attempts: int | None = None,
    base_delay: float | None = None,
) -> Any:
    """
    Usage:
        @retry_transient
        async def create_lease(...): ...

        @retry_transient(attempts=5)
        async def post_message(...): ...
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            max_attempts = attempts or settings.TRANSIENT_RETRY_ATTEMPTS
            delay_base = (
                base_delay if base_delay is not None else settings.TRANSIENT_RETRY_BASE_DELAY_SECONDS
            )

            attempt = 0
            while True:
                attempt += 1
                try:
                    return await fn(*args, **kwargs)
                except TransientError as e:
                    if attempt >= max_attempts:
                        Logger.base.error(
                            f'🔁 [RETRY] {fn.__name__} gave up after {attempt} attempts: {e.message}'
                        )
                        raise
                    delay = backoff_delay(attempt=attempt, base_delay=delay_base)
                    Logger.base.warning(
                        f'🔁 [RETRY] {fn.__name__} attempt {attempt} failed '
                        f'({e.message}), retrying in {delay:.3f}s'
                    )
                    await anyio.sleep(delay)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
