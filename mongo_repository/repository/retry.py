"""
Retry strategy for repository operations.

A ``RetryPolicy`` is injected into the repository; which operations it
guards is decided by the repository's ``retried_operations``.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger
from pymongo.errors import ConnectionFailure

T = TypeVar("T")

Backoff = Callable[[int], float]
Classifier = Callable[[BaseException], bool]


def is_transient_connection_error(exc: BaseException) -> bool:
    """Connection-level failure caused by an I/O or socket error.

    pymongo raises ``AutoReconnect``/``NetworkTimeout`` from the underlying
    ``OSError``; failures without such a cause (e.g. server selection
    timeouts) are not considered transient.
    """
    if not isinstance(exc, ConnectionFailure):
        return False
    cause = exc.__cause__ or exc.__context__
    return isinstance(cause, OSError)


def no_backoff(attempt: int) -> float:
    return 0.0


def exponential_backoff(base: float, cap: float = 30.0) -> Backoff:
    """Delay of ``base * 2 ** (attempt - 1)`` seconds, capped at ``cap``."""

    def _backoff(attempt: int) -> float:
        return min(cap, base * (2 ** (attempt - 1)))

    return _backoff


class RetryPolicy:
    """Retry an operation a bounded number of times on classified failures.

    Args:
        retries: Retries after the first attempt (``retries + 1`` attempts max).
        backoff: Seconds to wait before retry ``n`` (1-based).
        retry_on: Decides whether a failure is retryable.
    """

    def __init__(
        self,
        retries: int = 3,
        backoff: Backoff = no_backoff,
        retry_on: Classifier = is_transient_connection_error,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if retries < 0:
            raise ValueError("retries must be >= 0")
        self.retries = retries
        self.backoff = backoff
        self.retry_on = retry_on
        self._sleep = sleep
        self._async_sleep = async_sleep or asyncio.sleep

    def _should_retry(self, exc: BaseException, attempt: int) -> bool:
        if attempt > self.retries or not self.retry_on(exc):
            return False
        logger.warning(
            f"Transient store failure, retrying ({attempt}/{self.retries}): "
            f"{type(exc).__name__}: {exc}"
        )
        return True

    def execute(self, action: Callable[[], T]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return action()
            except Exception as exc:
                if not self._should_retry(exc, attempt):
                    raise
            delay = self.backoff(attempt)
            if delay > 0:
                self._sleep(delay)

    async def execute_async(self, action: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await action()
            except Exception as exc:
                if not self._should_retry(exc, attempt):
                    raise
            delay = self.backoff(attempt)
            if delay > 0:
                await self._async_sleep(delay)


# Single attempt, no retries
NO_RETRY = RetryPolicy(retries=0)
