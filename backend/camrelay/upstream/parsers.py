"""
Parsers for the camera's control API payloads.

Everything here is a pure function over the response body so it can be
exercised against literal fixtures. Malformed payloads raise ``ParseError``;
payloads in which the device itself reports a failure raise ``DeviceError``.
"""

from __future__ import annotations

import json
import math
import re
from typing import Iterator
from xml.etree import ElementTree

from camrelay.telemetry.snapshot import (
    FALLBACK_MAX_ZOOM,
    FALLBACK_MIN_ZOOM,
    ClockStatus,
    DeviceStatus,
    GeolocationStatus,
    OpticsStatus,
    TemperatureSensor,
    TemperatureStatus,
)


class ParseError(ValueError):
    pass


class DeviceError(ParseError):
    pass


_TRUE_RE = re.compile(r"^(true|1|yes)$", re.IGNORECASE)
_FALSE_RE = re.compile(r"^(false|0|no)$", re.IGNORECASE)
_SENSOR_KEY_RE = re.compile(r"^Sensor\.S(\d+)\.(Name|Celsius|Fahrenheit)$")

DEVICE_MODEL_KEYS = ("Brand.ProdNbr", "Brand.ProdShortName", "Brand.ProdFullName")
DEVICE_FIRMWARE_KEY = "Properties.Firmware.Version"
DEVICE_SERIAL_KEY = "Properties.System.SerialNumber"
IR_CUT_FILTER_KEY = "ImageSource.I0.DayNight.IrCutFilter"
PTZ_LIMIT_PREFIX = "PTZ.Limit.L1."
PTZ_LIMIT_FIELDS = {
    "MinZoom": "min_zoom",
    "MaxZoom": "max_zoom",
    "MinPan": "min_pan",
    "MaxPan": "max_pan",
    "MinTilt": "min_tilt",
    "MaxTilt": "max_tilt",
}


def to_number(value: str | None) -> float | None:
    """Parse a numeric field; anything non-finite or unparseable becomes None."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        num = float(value)
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def to_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    value = value.strip()
    if _TRUE_RE.match(value):
        return True
    if _FALSE_RE.match(value):
        return False
    return None


def _snippet(text: str, limit: int = 80) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _raise_on_error_text(text: str) -> None:
    # param.cgi and ptz.cgi answer 200 with a plain "Error: ..." body.
    stripped = text.strip()
    if stripped.lower().startswith("error"):
        raise DeviceError(_snippet(stripped, 120))


def parse_key_values(text: str) -> dict[str, str]:
    """
    Parse ``key=value`` lines. A leading ``root.`` is dropped from keys so
    ``root.Brand.ProdNbr`` and ``Brand.ProdNbr`` look the same to callers.
    """
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key.startswith("root."):
            key = key[len("root.") :]
        values[key] = value.strip()
    return values


def zoom_to_magnification(
    zoom: float | None,
    max_magnification: float,
    *,
    min_zoom: float = FALLBACK_MIN_ZOOM,
    max_zoom: float = FALLBACK_MAX_ZOOM,
) -> float | None:
    """Map the device zoom position onto 1x..max_magnification."""
    if zoom is None or max_zoom <= min_zoom:
        return None
    fraction = (min(max(zoom, min_zoom), max_zoom) - min_zoom) / (max_zoom - min_zoom)
    magnification = 1.0 + fraction * (max_magnification - 1.0)
    return round(magnification, 2) if math.isfinite(magnification) else None


def parse_ptz_position(text: str, *, max_magnification: float) -> OpticsStatus:
    _raise_on_error_text(text)
    values = parse_key_values(text)
    if not any(k in values for k in ("pan", "tilt", "zoom")):
        raise ParseError(f"no pan/tilt/zoom in PTZ response: {_snippet(text)!r}")

    zoom = to_number(values.get("zoom"))
    return OpticsStatus(
        magnification=zoom_to_magnification(zoom, max_magnification),
        zoom=zoom,
        pan=to_number(values.get("pan")),
        tilt=to_number(values.get("tilt")),
        raw_text=text.strip(),
    )


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_xml(xml: str, what: str) -> ElementTree.Element:
    try:
        return ElementTree.fromstring(xml.strip().encode("utf-8"))
    except ElementTree.ParseError as e:
        raise ParseError(f"malformed {what} XML: {e}") from e


def parse_geolocation(xml: str) -> GeolocationStatus:
    root = _parse_xml(xml, "geolocation")

    # First occurrence of each tag wins, namespaces ignored.
    tags: dict[str, str] = {}
    for el in root.iter():
        tags.setdefault(_local_name(el.tag), (el.text or "").strip())

    if "Error" in tags:
        detail = tags.get("ErrorDescription") or tags.get("ErrorCode") or "unknown error"
        raise DeviceError(f"camera geolocation error: {detail}")
    if not any(t in tags for t in ("Lat", "Lng", "ValidPosition")):
        raise ParseError("no location in geolocation response")

    return GeolocationStatus(
        lat=to_number(tags.get("Lat")),
        lng=to_number(tags.get("Lng")),
        heading=to_number(tags.get("Heading")),
        valid_position=to_bool(tags.get("ValidPosition")),
        valid_heading=to_bool(tags.get("ValidHeading")),
        text=tags.get("Text") or None,
        standard_deviation_position=to_number(tags.get("StandardDevPosition")),
        standard_deviation_heading=to_number(tags.get("StandardDevHeading")),
    )


def parse_clock(body: str) -> ClockStatus:
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise ParseError(f"unexpected clock response: {_snippet(body)!r}") from e
    if not isinstance(payload, dict):
        raise ParseError("unexpected clock response shape")

    error = payload.get("error")
    if error:
        if isinstance(error, dict):
            code = error.get("code")
            message = error.get("message") or "unknown error"
            detail = f"{code}: {message}" if code is not None else message
        else:
            detail = str(error)
        raise DeviceError(f"camera clock error {detail}")

    data = payload.get("data")
    if not isinstance(data, dict):
        raise ParseError("clock response has no data")

    clock = ClockStatus(
        camera_time=data.get("localDateTime"),
        utc_time=data.get("dateTime"),
        timezone=data.get("timeZone") or data.get("posixTimeZone"),
    )
    if clock.camera_time is None and clock.utc_time is None:
        raise ParseError("clock response has no date-time")
    return clock


def _device_from_values(values: dict[str, str]) -> DeviceStatus:
    model = next((values[k] for k in DEVICE_MODEL_KEYS if values.get(k)), None)
    device = DeviceStatus(
        model=model,
        firmware=values.get(DEVICE_FIRMWARE_KEY) or None,
        serial=values.get(DEVICE_SERIAL_KEY) or None,
    )
    if device.model is None and device.firmware is None and device.serial is None:
        raise ParseError("no device identity fields in response")
    return device


def parse_device_identity(text: str) -> DeviceStatus:
    _raise_on_error_text(text)
    return _device_from_values(parse_key_values(text))


def _walk_parameters(el: ElementTree.Element, prefix: str) -> Iterator[tuple[str, str]]:
    name = el.get("name")
    tag = _local_name(el.tag)
    if tag == "parameter" and name:
        yield f"{prefix}{name}", el.get("value", "")
        return
    if tag == "group" and name:
        prefix = f"{prefix}{name}."
    for child in el:
        yield from _walk_parameters(child, prefix)


def parse_device_identity_xml(xml: str) -> DeviceStatus:
    """Parse the ``listdefinitions`` XML form of the parameter tree."""
    root = _parse_xml(xml, "device identity")
    values: dict[str, str] = {}
    for key, value in _walk_parameters(root, ""):
        if key.startswith("root."):
            key = key[len("root.") :]
        values[key] = value.strip()
    return _device_from_values(values)


def parse_temperature(text: str) -> TemperatureStatus:
    _raise_on_error_text(text)
    sensors: dict[str, dict[str, object]] = {}
    heater_status: str | None = None
    heater_time_until_stop: float | None = None
    seen_heater = False

    for key, value in parse_key_values(text).items():
        m = _SENSOR_KEY_RE.match(key)
        if m:
            sensor_id = f"S{m.group(1)}"
            sensor = sensors.setdefault(sensor_id, {})
            if m.group(2) == "Name":
                sensor["name"] = value or None
            else:
                sensor[m.group(2).lower()] = to_number(value)
        elif key == "Heater.H0.Status":
            seen_heater = True
            heater_status = value or None
        elif key == "Heater.H0.TimeUntilStop":
            seen_heater = True
            heater_time_until_stop = to_number(value)

    if not sensors and not seen_heater:
        raise ParseError(f"no sensor or heater keys in temperature response: {_snippet(text)!r}")

    return TemperatureStatus(
        sensors=tuple(
            TemperatureSensor(id=sensor_id, **fields)  # type: ignore[arg-type]
            for sensor_id, fields in sorted(sensors.items(), key=lambda kv: int(kv[0][1:]))
        ),
        heater_status=heater_status,
        heater_time_until_stop=heater_time_until_stop,
    )


def parse_ir_state(text: str) -> str | None:
    return parse_key_values(text).get(IR_CUT_FILTER_KEY) or None


def parse_ptz_limits(text: str) -> dict[str, float | None]:
    """
    Return whichever of min/max zoom, pan and tilt the device reported,
    keyed by field name (``min_zoom``...). Missing or garbled limits are None.
    """
    _raise_on_error_text(text)
    values = parse_key_values(text)
    limits = {
        field: to_number(values.get(PTZ_LIMIT_PREFIX + key))
        for key, field in PTZ_LIMIT_FIELDS.items()
    }
    if all(v is None for v in limits.values()):
        raise ParseError("no PTZ limits in response")
    return limits
