# catalog/utils/retry.py
"""Caller-side retry for store failures.

Only StoreError is retried: validation errors repeat identically for the
same input, so they are raised on the first attempt.
"""
import asyncio
import functools
import logging
from typing import Awaitable, Callable, Optional, TypeVar
from ..config import Config
from ..exceptions import StoreError

T = TypeVar('T')

logger = logging.getLogger(__name__)


def calculate_delay(attempt: int, initial_delay: float, backoff_factor: float) -> float:
    """Exponential backoff: initial_delay * backoff_factor ** attempt"""
    return initial_delay * (backoff_factor ** attempt)


def retry_on_store_error(attempts: Optional[int] = None, delay: Optional[float] = None,
                         backoff: float = 2.0):
    """Decorator for coroutines that should be retried on StoreError"""
    max_attempts = attempts or Config.STORE_RETRY_ATTEMPTS
    initial_delay = Config.STORE_RETRY_DELAY if delay is None else delay

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except StoreError as e:
                    if attempt == max_attempts - 1:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts: {e}"
                        )
                        raise
                    wait = calculate_delay(attempt, initial_delay, backoff)
                    logger.warning(
                        f"{func.__name__} attempt {attempt + 1}/{max_attempts} failed: {e}; "
                        f"retrying in {wait:.2f}s"
                    )
                    await asyncio.sleep(wait)
        return wrapper
    return decorator
