from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from camrelay.live.hub import LiveChannelHub
from camrelay.live.presence import ViewerPresenceTracker
from camrelay.settings import Settings
from camrelay.telemetry.aggregator import StatusAggregator, build_ptz_capabilities
from camrelay.telemetry.cache import SingleFlightCache
from camrelay.telemetry.snapshot import PtzCapabilities, StatusSnapshot
from camrelay.upstream.client import UpstreamClient


@dataclass
class Services:
    """The process-wide shared state, built once per app."""

    settings: Settings
    client: UpstreamClient
    status_cache: SingleFlightCache[StatusSnapshot]
    capabilities_cache: SingleFlightCache[PtzCapabilities]
    presence: ViewerPresenceTracker
    hub: LiveChannelHub

    @classmethod
    def build(
        cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> "Services":
        client = UpstreamClient.from_settings(settings, transport=transport)
        aggregator = StatusAggregator(client)

        async def build_capabilities() -> PtzCapabilities:
            return await build_ptz_capabilities(client)

        status_cache = SingleFlightCache(aggregator.build, settings.status_ttl_s, name="status")
        capabilities_cache = SingleFlightCache(
            build_capabilities, settings.capabilities_ttl_s, name="ptz-capabilities"
        )
        presence = ViewerPresenceTracker(settings.viewer_ttl_s)
        hub = LiveChannelHub(
            status_cache,
            presence,
            status_interval_s=settings.live_status_interval_s,
            presence_interval_s=settings.live_presence_interval_s,
        )
        return cls(
            settings=settings,
            client=client,
            status_cache=status_cache,
            capabilities_cache=capabilities_cache,
            presence=presence,
            hub=hub,
        )

    async def aclose(self) -> None:
        await self.hub.aclose()
        await self.client.aclose()


def get_services(request: Request) -> Services:
    return request.app.state.services
