from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from camrelay.telemetry.snapshot import (
    ClockStatus,
    DeviceStatus,
    GeolocationStatus,
    OpticsStatus,
    PtzCapabilities,
    StatusSnapshot,
    TemperatureStatus,
)
from camrelay.upstream.client import UpstreamClient, UpstreamResult

S = TypeVar("S")


async def _section(
    name: str,
    call: Callable[[], Awaitable[UpstreamResult[S]]],
    failed: Callable[[str], S],
) -> S:
    try:
        result = await call()
    except Exception as e:  # one section must never abort the snapshot
        logger.exception("unexpected error while fetching {}", name)
        return failed(f"internal error: {e}")
    if result.ok and result.value is not None:
        return result.value
    return failed(result.error or "no data")


class StatusAggregator:
    """
    Builds a StatusSnapshot from five independent camera queries.

    The queries run concurrently, so a build takes about as long as the
    slowest one. A failed query only marks its own section with an error;
    ``build()`` itself always returns a snapshot.
    """

    def __init__(self, client: UpstreamClient) -> None:
        self._client = client

    async def build(self) -> StatusSnapshot:
        c = self._client
        optics, geolocation, clock, device, temperature = await asyncio.gather(
            _section("optics", c.ptz_position, lambda e: OpticsStatus(error=e)),
            _section("geolocation", c.geolocation, lambda e: GeolocationStatus(error=e)),
            _section("clock", c.clock, lambda e: ClockStatus(error=e)),
            _section("device", c.device_identity, lambda e: DeviceStatus(error=e)),
            _section("temperature", c.temperature, lambda e: TemperatureStatus(error=e)),
        )
        snapshot = StatusSnapshot(
            optics=optics,
            geolocation=geolocation,
            clock=clock,
            device=device,
            temperature=temperature,
            fetched_at=datetime.now(timezone.utc),
        )
        if snapshot.errors:
            logger.info("status snapshot degraded: {}", ", ".join(sorted(snapshot.errors)))
        return snapshot


async def build_ptz_capabilities(client: UpstreamClient) -> PtzCapabilities:
    """
    Read the PTZ limits, substituting the fallback bound for anything the
    device doesn't report. Never fails.
    """
    result = await client.ptz_limits()
    if not result.ok or not result.value:
        logger.warning("using fallback PTZ limits: {}", result.error)
        return PtzCapabilities(source="fallback")

    defaults = PtzCapabilities()
    reported = {k: v for k, v in result.value.items() if v is not None}
    return PtzCapabilities(
        min_zoom=reported.get("min_zoom", defaults.min_zoom),
        max_zoom=reported.get("max_zoom", defaults.max_zoom),
        min_pan=reported.get("min_pan", defaults.min_pan),
        max_pan=reported.get("max_pan", defaults.max_pan),
        min_tilt=reported.get("min_tilt", defaults.min_tilt),
        max_tilt=reported.get("max_tilt", defaults.max_tilt),
        source="device",
    )
