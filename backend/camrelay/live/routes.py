from __future__ import annotations

from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from camrelay.live.hub import LiveChannelHub
from camrelay.services import Services, get_services

router = APIRouter(prefix="/api", tags=["live"])


class HeartbeatRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=128, description="Client-generated viewer id")


class ViewerCountDTO(BaseModel):
    count: int


def get_hub(services: Services = Depends(get_services)) -> LiveChannelHub:
    return services.hub


async def _event_stream(hub: LiveChannelHub, viewer: str | None) -> AsyncIterator[str]:
    # Opened on first iteration: a stream that never starts leaves nothing open.
    conn = hub.open(viewer)
    try:
        async for event in conn.events():
            yield event.encode()
    finally:
        conn.close()


@router.get("/live")
async def live_events(
    viewer: str | None = Query(default=None, max_length=128, description="Client-generated viewer id"),
    hub: LiveChannelHub = Depends(get_hub),
) -> StreamingResponse:
    return StreamingResponse(
        _event_stream(hub, viewer),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/viewers/heartbeat", response_model=ViewerCountDTO)
async def viewer_heartbeat(
    req: HeartbeatRequest, services: Services = Depends(get_services)
) -> ViewerCountDTO:
    return ViewerCountDTO(count=services.presence.heartbeat(req.id))


@router.get("/viewers", response_model=ViewerCountDTO)
async def viewer_count(services: Services = Depends(get_services)) -> ViewerCountDTO:
    return ViewerCountDTO(count=services.presence.count())
