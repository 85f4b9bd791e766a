"""Retry policy for provider calls.

The policy owns the attempt budget, the backoff schedule and the sleep
function, so tests can swap in a fake clock.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import httpx

from itinerary_mcp.errors import ProviderUnavailable, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures worth another attempt: network errors, non-2xx, provider busy
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (httpx.HTTPError, TransientProviderError)


def linear_backoff(base_seconds: float = 1.0) -> Callable[[int], float]:
    """Backoff of base, 2 x base, 3 x base ... for retry 1, 2, 3 ..."""

    def backoff(retry_number: int) -> float:
        return base_seconds * retry_number

    return backoff


@dataclass
class RetryPolicy:
    """Retry an async operation with increasing backoff.

    Args:
        max_retries: Retries after the first attempt (3 gives 4 attempts).
        backoff: Maps the 1-based retry number to a delay in seconds.
        sleep: Awaitable sleep, replaced by a fake in tests.
    """

    max_retries: int = 3
    backoff: Callable[[int], float] = field(default_factory=linear_backoff)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    retry_on: tuple[type[Exception], ...] = RETRYABLE_ERRORS

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    async def run(self, operation: Callable[[], Awaitable[T]], provider: str = "provider") -> T:
        """Run operation, retrying on retryable errors.

        Raises:
            ProviderUnavailable: When every attempt failed. Chained from the last error.
        """
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except self.retry_on as e:
                last_error = e
                if attempt == self.max_attempts:
                    break
                delay = self.backoff(attempt)
                logger.debug(
                    f"{provider} attempt {attempt}/{self.max_attempts} failed ({e}); "
                    f"retrying in {delay:.1f}s"
                )
                await self.sleep(delay)

        logger.warning(f"{provider} failed after {self.max_attempts} attempts: {last_error}")
        raise ProviderUnavailable(provider, self.max_attempts) from last_error
