from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

from loguru import logger

from camrelay.live.presence import ViewerPresenceTracker
from camrelay.telemetry.cache import SingleFlightCache
from camrelay.telemetry.schemas import snapshot_to_dto
from camrelay.telemetry.snapshot import StatusSnapshot

# Events a slow client hasn't read yet; beyond this the oldest are dropped.
MAX_PENDING_EVENTS = 64


@dataclass(frozen=True)
class LiveEvent:
    name: str  # "connected" | "status" | "status-error" | "viewers"
    data: Any

    def encode(self) -> str:
        """Server-Sent Events wire format."""
        payload = json.dumps(self.data, separators=(",", ":"))
        return f"event: {self.name}\ndata: {payload}\n\n"


class LiveConnection:
    """
    One open push channel (one browser tab).

    Owns two repeating tasks, one pushing status snapshots and one pushing the
    viewer count. ``close()`` cancels both; after that nothing more is queued.
    """

    def __init__(self, hub: "LiveChannelHub", viewer_id: str | None) -> None:
        self.viewer_id = viewer_id
        self._hub = hub
        self._queue: asyncio.Queue[LiveEvent | None] = asyncio.Queue()
        self._tasks: list[asyncio.Task[None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _start(self) -> None:
        self._emit(LiveEvent("connected", {"viewerId": self.viewer_id}))
        if self.viewer_id:
            self._hub.presence.heartbeat(self.viewer_id)
        self._tasks = [
            asyncio.create_task(self._repeat(self.push_status, self._hub.status_interval_s)),
            asyncio.create_task(self._repeat(self.push_presence, self._hub.presence_interval_s)),
        ]

    async def _repeat(self, push: Callable[[], Awaitable[None]], interval_s: float) -> None:
        # Push first so the client never waits a full interval for data.
        while not self._closed:
            try:
                await push()
            except Exception:
                logger.exception("live push failed for viewer {}", self.viewer_id)
            await asyncio.sleep(interval_s)

    async def push_status(self) -> None:
        try:
            snapshot: StatusSnapshot = await self._hub.status_cache.get()
            data = snapshot_to_dto(snapshot).model_dump(mode="json", by_alias=True)
        except Exception as e:
            logger.warning("status push failed for viewer {}: {}", self.viewer_id, e)
            self._emit(LiveEvent("status-error", {"error": str(e) or type(e).__name__}))
            return
        self._emit(LiveEvent("status", data))

    async def push_presence(self) -> None:
        presence = self._hub.presence
        if self.viewer_id:
            # An open tab keeps its viewer present without its own heartbeats.
            count = presence.heartbeat(self.viewer_id)
        else:
            count = presence.count()
        self._emit(LiveEvent("viewers", {"count": count}))

    def _emit(self, event: LiveEvent | None) -> None:
        if self._closed and event is not None:
            return
        if self._queue.qsize() >= MAX_PENDING_EVENTS:
            self._queue.get_nowait()
        self._queue.put_nowait(event)

    async def events(self) -> AsyncIterator[LiveEvent]:
        """Yield queued events until the connection is closed."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def close(self) -> None:
        """Cancel both push tasks. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for task in self._tasks:
            task.cancel()
        self._emit(None)
        self._hub._discard(self)
        logger.info("live connection closed (viewer {})", self.viewer_id)

    async def wait_closed(self) -> None:
        await asyncio.gather(*self._tasks, return_exceptions=True)


class LiveChannelHub:
    """
    Opens push channels that share one status cache and one presence tracker.

    Connections only own their own tasks; the hub keeps a set of them so
    they can all be closed on shutdown.
    """

    def __init__(
        self,
        status_cache: SingleFlightCache[StatusSnapshot],
        presence: ViewerPresenceTracker,
        *,
        status_interval_s: float = 2.0,
        presence_interval_s: float = 20.0,
    ) -> None:
        if status_interval_s <= 0 or presence_interval_s <= 0:
            raise ValueError("push intervals must be > 0")
        self.status_cache = status_cache
        self.presence = presence
        self.status_interval_s = status_interval_s
        self.presence_interval_s = presence_interval_s
        self._connections: set[LiveConnection] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def open(self, viewer_id: str | None = None) -> LiveConnection:
        """Must be called from a running event loop."""
        conn = LiveConnection(self, viewer_id or None)
        self._connections.add(conn)
        conn._start()
        logger.info("live connection opened (viewer {}, {} open)", conn.viewer_id, len(self._connections))
        return conn

    def _discard(self, conn: LiveConnection) -> None:
        self._connections.discard(conn)

    async def aclose(self) -> None:
        conns = list(self._connections)
        for conn in conns:
            conn.close()
        await asyncio.gather(*(conn.wait_closed() for conn in conns))
