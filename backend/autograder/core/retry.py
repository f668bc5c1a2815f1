"""
Exam Autograder - Persistence Retry Policy
Bounded retries with capped exponential backoff around database writes
"""
import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from autograder.core.config import settings
from autograder.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy for a unit of persistence work.

    The operation passed to ``run`` must be re-executable from scratch: it
    re-reads whatever it mutates so a retry never applies half a write.
    """
    max_attempts: int = 3
    backoff_seconds: float = 0.2
    backoff_cap_seconds: float = 2.0
    retry_on: tuple[type[BaseException], ...] = field(
        default=(OperationalError, InterfaceError)
    )

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.PERSISTENCE_MAX_ATTEMPTS,
            backoff_seconds=settings.PERSISTENCE_BACKOFF_SECONDS,
            backoff_cap_seconds=settings.PERSISTENCE_BACKOFF_CAP_SECONDS,
        )

    def delay_for(self, attempt: int) -> float:
        """Sleep before the next attempt; ``attempt`` counts from 1."""
        raw = min(self.backoff_cap_seconds, self.backoff_seconds * (2 ** (attempt - 1)))
        return raw * random.uniform(0.5, 1.5)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        on_error: Callable[[BaseException], Awaitable[None]] | None = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds or attempts are exhausted.

        Raises:
            PersistenceError: If every attempt failed with a retryable error
        """
        attempts = max(1, self.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except self.retry_on as exc:
                if on_error is not None:
                    await on_error(exc)
                if attempt == attempts:
                    logger.error("Persistence failed after %d attempts: %s", attempt, exc)
                    raise PersistenceError("Storage is temporarily unavailable, please retry") from exc
                delay = self.delay_for(attempt)
                logger.warning(
                    "Persistence attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt, attempts, exc, delay,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")
