from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from camrelay.services import Services, get_services
from camrelay.telemetry.schemas import (
    PtzCapabilitiesDTO,
    StatusSnapshotDTO,
    capabilities_to_dto,
    snapshot_to_dto,
)

router = APIRouter(prefix="/api", tags=["telemetry"])


@router.get("/status", response_model=StatusSnapshotDTO)
async def get_status(services: Services = Depends(get_services)) -> StatusSnapshotDTO:
    try:
        snapshot = await services.status_cache.get()
    except Exception as e:
        logger.error("status snapshot unavailable: {}", e)
        raise HTTPException(status_code=502, detail=f"status unavailable: {e}") from e
    return snapshot_to_dto(snapshot)


@router.get("/ptz/capabilities", response_model=PtzCapabilitiesDTO)
async def get_ptz_capabilities(services: Services = Depends(get_services)) -> PtzCapabilitiesDTO:
    try:
        caps = await services.capabilities_cache.get()
    except Exception as e:
        logger.error("PTZ capabilities unavailable: {}", e)
        raise HTTPException(status_code=502, detail=f"capabilities unavailable: {e}") from e
    return capabilities_to_dto(caps)
