"""Concurrency gate for part-copy dispatch."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")

DEFAULT_MAX_CONCURRENT_PARTS = 4


class ConcurrencyLimiter:
    """Bounds how many scheduled coroutines run at the same time.

    Calls beyond the bound wait for a free slot.  Waiters are released in
    the order they were scheduled, and each ``schedule()`` call returns its
    own coroutine's result, so callers keep the part-to-result association
    no matter which call finishes first.

    Attributes:
        max_concurrent: Maximum number of calls allowed in flight.
    """

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT_PARTS) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        """Number of scheduled calls currently holding a slot."""
        return self._in_flight

    async def schedule(
        self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Wait for a slot, then await ``fn(*args, **kwargs)``."""
        async with self._semaphore:
            self._in_flight += 1
            try:
                return await fn(*args, **kwargs)
            finally:
                self._in_flight -= 1
