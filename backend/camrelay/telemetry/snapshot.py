from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


# Every section carries either data or an ``error``. A failed section is the
# same type with all data fields left at None.


@dataclass(frozen=True)
class OpticsStatus:
    magnification: float | None = None
    zoom: float | None = None
    pan: float | None = None
    tilt: float | None = None
    raw_text: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class GeolocationStatus:
    lat: float | None = None
    lng: float | None = None
    heading: float | None = None
    valid_position: bool | None = None
    valid_heading: bool | None = None
    text: str | None = None
    standard_deviation_position: float | None = None
    standard_deviation_heading: float | None = None
    error: str | None = None


@dataclass(frozen=True)
class ClockStatus:
    camera_time: str | None = None  # device local time, as reported
    utc_time: str | None = None
    timezone: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class DeviceStatus:
    model: str | None = None
    firmware: str | None = None
    serial: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class TemperatureSensor:
    id: str
    name: str | None = None
    celsius: float | None = None
    fahrenheit: float | None = None


@dataclass(frozen=True)
class TemperatureStatus:
    """
    Temperature sensors and heater state.

    ``ir_state`` is optional enrichment from a separate query: it is None when
    that query fails, and that failure is never reported through ``error``.
    """

    sensors: tuple[TemperatureSensor, ...] = ()
    heater_status: str | None = None
    heater_time_until_stop: float | None = None
    ir_state: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class StatusSnapshot:
    """
    One aggregated telemetry read. Superseded by the next build, never mutated.
    """

    optics: OpticsStatus
    geolocation: GeolocationStatus
    clock: ClockStatus
    device: DeviceStatus
    temperature: TemperatureStatus
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def errors(self) -> dict[str, str]:
        sections = {
            "optics": self.optics,
            "geolocation": self.geolocation,
            "clock": self.clock,
            "device": self.device,
            "temperature": self.temperature,
        }
        return {name: s.error for name, s in sections.items() if s.error is not None}


# Used whenever the device can't tell us its PTZ limits.
FALLBACK_MIN_ZOOM = 1.0
FALLBACK_MAX_ZOOM = 9999.0
FALLBACK_MIN_PAN = -172.0
FALLBACK_MAX_PAN = 172.0
FALLBACK_MIN_TILT = -172.0
FALLBACK_MAX_TILT = 172.0


@dataclass(frozen=True)
class PtzCapabilities:
    min_zoom: float = FALLBACK_MIN_ZOOM
    max_zoom: float = FALLBACK_MAX_ZOOM
    min_pan: float = FALLBACK_MIN_PAN
    max_pan: float = FALLBACK_MAX_PAN
    min_tilt: float = FALLBACK_MIN_TILT
    max_tilt: float = FALLBACK_MAX_TILT
    source: str = "fallback"  # "device" | "fallback"
