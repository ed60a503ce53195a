from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")

_EMPTY = object()


class SingleFlightCache(Generic[T]):
    """
    TTL cache for one resource, with concurrent fetches coalesced into a
    single in-flight build.

    - A fresh value is returned without calling ``build``.
    - While a build runs, every caller awaits that same build.
    - A failed build raises to all of its waiters and leaves the cache empty;
      the next ``get()`` starts a new build. Stale data is never served.

    The build runs as its own task and callers await it through
    ``asyncio.shield``, so a caller that goes away mid-build does not cancel
    the work other callers (and the cache) are waiting on.
    """

    def __init__(
        self,
        build: Callable[[], Awaitable[T]],
        ttl_s: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")
        self._build = build
        self._ttl_s = ttl_s
        self._name = name
        self._clock = clock
        self._data: object = _EMPTY
        self._expires_at = 0.0
        self._in_flight: asyncio.Task[T] | None = None

    def peek(self) -> T | None:
        """Return the cached value if it is still fresh, without building."""
        if self._data is not _EMPTY and self._clock() < self._expires_at:
            return self._data  # type: ignore[return-value]
        return None

    def invalidate(self) -> None:
        self._data = _EMPTY
        self._expires_at = 0.0

    async def get(self) -> T:
        if self._data is not _EMPTY and self._clock() < self._expires_at:
            return self._data  # type: ignore[return-value]

        # No await between the check and the assignment: at most one build.
        task = self._in_flight
        if task is None:
            task = asyncio.ensure_future(self._run())
            task.add_done_callback(self._consume_exception)
            self._in_flight = task
        return await asyncio.shield(task)

    async def _run(self) -> T:
        started = self._clock()
        try:
            value = await self._build()
        except Exception:
            self.invalidate()
            raise
        finally:
            self._in_flight = None
        self._data = value
        self._expires_at = self._clock() + self._ttl_s
        logger.debug("{} rebuilt in {:.3f}s", self._name, self._clock() - started)
        return value

    def _consume_exception(self, task: asyncio.Task[T]) -> None:
        # Retrieve the exception even if every waiter was cancelled, so asyncio
        # doesn't complain about it never being retrieved.
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("{} build failed: {}", self._name, exc)
