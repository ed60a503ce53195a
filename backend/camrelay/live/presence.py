from __future__ import annotations

import time
from typing import Callable


class ViewerPresenceTracker:
    """
    Live viewer count from client heartbeats.

    Viewers are keyed by an opaque, client-generated id. An entry not
    refreshed within ``ttl_s`` no longer counts and is purged on the next
    read or write; there is no background sweeper.

    Only touched from the event loop, so no locking.
    """

    def __init__(self, ttl_s: float = 65.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")
        self._ttl_s = ttl_s
        self._clock = clock
        self._last_seen: dict[str, float] = {}

    def _sweep(self, now: float) -> None:
        expired = [vid for vid, seen in self._last_seen.items() if now - seen > self._ttl_s]
        for vid in expired:
            del self._last_seen[vid]

    def heartbeat(self, viewer_id: str) -> int:
        """Record that ``viewer_id`` is watching; returns the live count."""
        now = self._clock()
        self._sweep(now)
        self._last_seen[viewer_id] = now
        return len(self._last_seen)

    def count(self) -> int:
        self._sweep(self._clock())
        return len(self._last_seen)

    def forget(self, viewer_id: str) -> bool:
        return self._last_seen.pop(viewer_id, None) is not None
