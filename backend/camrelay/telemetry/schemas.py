from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from camrelay.telemetry.snapshot import (
    ClockStatus,
    DeviceStatus,
    GeolocationStatus,
    OpticsStatus,
    PtzCapabilities,
    StatusSnapshot,
    TemperatureStatus,
)


class CamelDTO(BaseModel):
    # The browser client reads camelCase keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OpticsDTO(CamelDTO):
    magnification: float | None
    zoom: float | None
    pan: float | None
    tilt: float | None
    raw_text: str | None
    error: str | None = None


class GeolocationDTO(CamelDTO):
    lat: float | None
    lng: float | None
    heading: float | None
    valid_position: bool | None
    valid_heading: bool | None
    text: str | None
    standard_deviation_position: float | None
    standard_deviation_heading: float | None
    error: str | None = None


class ClockDTO(CamelDTO):
    camera_time: str | None
    utc_time: str | None
    timezone: str | None
    error: str | None = None


class DeviceDTO(CamelDTO):
    model: str | None
    firmware: str | None
    serial: str | None
    error: str | None = None


class SensorDTO(CamelDTO):
    id: str
    name: str | None
    celsius: float | None
    fahrenheit: float | None


class TemperatureDTO(CamelDTO):
    sensors: list[SensorDTO]
    heater_status: str | None
    heater_time_until_stop: float | None
    ir_state: str | None
    error: str | None = None


class StatusSnapshotDTO(CamelDTO):
    optics: OpticsDTO
    geolocation: GeolocationDTO
    clock: ClockDTO
    device: DeviceDTO
    temperature: TemperatureDTO
    fetched_at: datetime


class PtzCapabilitiesDTO(CamelDTO):
    min_zoom: float
    max_zoom: float
    min_pan: float
    max_pan: float
    min_tilt: float
    max_tilt: float
    source: str


def _optics_to_dto(o: OpticsStatus) -> OpticsDTO:
    return OpticsDTO(
        magnification=o.magnification,
        zoom=o.zoom,
        pan=o.pan,
        tilt=o.tilt,
        raw_text=o.raw_text,
        error=o.error,
    )


def _geolocation_to_dto(g: GeolocationStatus) -> GeolocationDTO:
    return GeolocationDTO(
        lat=g.lat,
        lng=g.lng,
        heading=g.heading,
        valid_position=g.valid_position,
        valid_heading=g.valid_heading,
        text=g.text,
        standard_deviation_position=g.standard_deviation_position,
        standard_deviation_heading=g.standard_deviation_heading,
        error=g.error,
    )


def _clock_to_dto(c: ClockStatus) -> ClockDTO:
    return ClockDTO(camera_time=c.camera_time, utc_time=c.utc_time, timezone=c.timezone, error=c.error)


def _device_to_dto(d: DeviceStatus) -> DeviceDTO:
    return DeviceDTO(model=d.model, firmware=d.firmware, serial=d.serial, error=d.error)


def _temperature_to_dto(t: TemperatureStatus) -> TemperatureDTO:
    return TemperatureDTO(
        sensors=[
            SensorDTO(id=s.id, name=s.name, celsius=s.celsius, fahrenheit=s.fahrenheit)
            for s in t.sensors
        ],
        heater_status=t.heater_status,
        heater_time_until_stop=t.heater_time_until_stop,
        ir_state=t.ir_state,
        error=t.error,
    )


def snapshot_to_dto(s: StatusSnapshot) -> StatusSnapshotDTO:
    return StatusSnapshotDTO(
        optics=_optics_to_dto(s.optics),
        geolocation=_geolocation_to_dto(s.geolocation),
        clock=_clock_to_dto(s.clock),
        device=_device_to_dto(s.device),
        temperature=_temperature_to_dto(s.temperature),
        fetched_at=s.fetched_at,
    )


def capabilities_to_dto(c: PtzCapabilities) -> PtzCapabilitiesDTO:
    return PtzCapabilitiesDTO(
        min_zoom=c.min_zoom,
        max_zoom=c.max_zoom,
        min_pan=c.min_pan,
        max_pan=c.max_pan,
        min_tilt=c.min_tilt,
        max_tilt=c.max_tilt,
        source=c.source,
    )
