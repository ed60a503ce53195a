from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, TypeVar

import httpx
from loguru import logger

from camrelay.settings import Settings
from camrelay.telemetry.snapshot import (
    ClockStatus,
    DeviceStatus,
    GeolocationStatus,
    OpticsStatus,
    TemperatureStatus,
)
from camrelay.upstream.parsers import (
    DeviceError,
    ParseError,
    parse_clock,
    parse_device_identity,
    parse_device_identity_xml,
    parse_geolocation,
    parse_ir_state,
    parse_ptz_limits,
    parse_ptz_position,
    parse_temperature,
)

T = TypeVar("T")

PTZ_POSITION_PATH = "/axis-cgi/com/ptz.cgi?query=position&camera={camera_id}"
LEGACY_PTZ_POSITION_PATH = "/axis-cgi/ptz.cgi?query=position"
TIME_PATH = "/axis-cgi/time.cgi"
DEVICE_IDENTITY_PATH = (
    "/axis-cgi/param.cgi?action=list"
    "&group=Brand.ProdNbr,Properties.Firmware.Version,Properties.System.SerialNumber"
)
DEVICE_IDENTITY_XML_PATH = (
    "/axis-cgi/param.cgi?action=listdefinitions&listformat=xmlschema"
    "&group=Brand.ProdNbr,Properties.Firmware.Version,Properties.System.SerialNumber"
)
IR_STATE_PATH = "/axis-cgi/param.cgi?action=list&group=ImageSource.I0.DayNight.IrCutFilter"
PTZ_LIMITS_PATH = "/axis-cgi/param.cgi?action=list&group=PTZ.Limit.L1"


class UpstreamError(Exception):
    """A camera request that got no HTTP response (timeout or transport failure)."""


@dataclass(frozen=True)
class UpstreamResult(Generic[T]):
    """
    Outcome of one camera call: ``value`` on success, ``error`` otherwise.

    ``status_code`` is set when the failure was a non-success HTTP status.
    """

    value: T | None = None
    error: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "UpstreamResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str, *, status_code: int | None = None) -> "UpstreamResult[T]":
        return cls(error=error, status_code=status_code)


class UpstreamClient:
    """
    Authenticated, timeout-bounded access to the camera's control endpoints.

    Every public method resolves to an ``UpstreamResult``; transport failures,
    error statuses and unparseable bodies are reported, never raised.
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None = None,
        password: str | None = None,
        auth_scheme: str = "digest",
        timeout_s: float = 5.0,
        camera_id: int = 1,
        max_magnification: float = 3.9,
        geolocation_path: str = "/axis-cgi/geolocation/get.cgi",
        temperature_path: str = "/axis-cgi/temperaturecontrol.cgi?action=statusall",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        auth: httpx.Auth | None = None
        if username and password:
            if auth_scheme == "basic":
                auth = httpx.BasicAuth(username, password)
            else:
                auth = httpx.DigestAuth(username, password)

        self._timeout_s = timeout_s
        self._camera_id = camera_id
        self._max_magnification = max_magnification
        self._geolocation_path = geolocation_path
        self._temperature_path = temperature_path
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            auth=auth,
            timeout=timeout_s,
            transport=transport,
            headers={"Cache-Control": "no-store"},
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> "UpstreamClient":
        return cls(
            settings.camera_host,
            username=settings.camera_username,
            password=settings.camera_password,
            auth_scheme=settings.camera_auth,
            timeout_s=settings.upstream_timeout_s,
            camera_id=settings.camera_id,
            max_magnification=settings.camera_max_magnification,
            geolocation_path=settings.camera_geolocation_path,
            temperature_path=settings.camera_temperature_path,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- raw calls ---

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        One authenticated request. ``timeout_s`` bounds the whole exchange,
        body and digest challenge included, not just each socket operation.
        Transport failures raise ``UpstreamError``.
        """
        try:
            return await asyncio.wait_for(
                self._http.request(method, path, **kwargs), self._timeout_s
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamError(f"timed out after {self._timeout_s:g}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"connection failed: {str(exc) or type(exc).__name__}") from exc

    async def fetch_text(self, path: str) -> UpstreamResult[str]:
        try:
            response = await self._send("GET", path)
        except UpstreamError as exc:
            return UpstreamResult.failure(str(exc))
        if not response.is_success:
            return UpstreamResult.failure(
                f"camera responded with {response.status_code}",
                status_code=response.status_code,
            )
        return UpstreamResult.success(response.text)

    async def post_json(self, path: str, body: dict[str, Any]) -> httpx.Response:
        """POST a JSON body. Returns the response whatever its status; raises ``UpstreamError``."""
        return await self._send("POST", path, json=body)

    async def _fetch_parsed(
        self, resource: str, path: str, parse: Callable[[str], T]
    ) -> UpstreamResult[T]:
        fetched = await self.fetch_text(path)
        if not fetched.ok:
            logger.warning("camera {} query failed: {}", resource, fetched.error)
            return UpstreamResult.failure(
                fetched.error or "request failed", status_code=fetched.status_code
            )
        try:
            return UpstreamResult.success(parse(fetched.value or ""))
        except ParseError as exc:
            logger.warning("camera {} response rejected: {}", resource, exc)
            return UpstreamResult.failure(str(exc))

    # --- resources ---

    async def ptz_position(self) -> UpstreamResult[OpticsStatus]:
        def parse(text: str) -> OpticsStatus:
            return parse_ptz_position(text, max_magnification=self._max_magnification)

        primary = PTZ_POSITION_PATH.format(camera_id=self._camera_id)
        result = await self._fetch_parsed("ptz position", primary, parse)
        if result.status_code is not None:
            logger.info("retrying PTZ position on legacy path after {}", result.error)
            result = await self._fetch_parsed("ptz position (legacy)", LEGACY_PTZ_POSITION_PATH, parse)
        return result

    async def geolocation(self) -> UpstreamResult[GeolocationStatus]:
        return await self._fetch_parsed("geolocation", self._geolocation_path, parse_geolocation)

    async def clock(self) -> UpstreamResult[ClockStatus]:
        try:
            response = await self.post_json(
                TIME_PATH, {"apiVersion": "1.0", "method": "getDateTimeInfo"}
            )
        except UpstreamError as exc:
            logger.warning("camera clock query failed: {}", exc)
            return UpstreamResult.failure(str(exc))
        status_code = None if response.is_success else response.status_code
        try:
            clock = parse_clock(response.text)
        except DeviceError as exc:
            # A JSON error object says more than the bare status code.
            error = str(exc)
        except ParseError as exc:
            error = str(exc) if status_code is None else f"camera responded with {status_code}"
        else:
            if status_code is None:
                return UpstreamResult.success(clock)
            error = f"camera responded with {status_code}"
        logger.warning("camera clock query failed: {}", error)
        return UpstreamResult.failure(error, status_code=status_code)

    async def device_identity(self) -> UpstreamResult[DeviceStatus]:
        result = await self._fetch_parsed("device identity", DEVICE_IDENTITY_PATH, parse_device_identity)
        if result.ok:
            return result
        fallback = await self._fetch_parsed(
            "device identity (xml)", DEVICE_IDENTITY_XML_PATH, parse_device_identity_xml
        )
        if fallback.ok:
            return fallback
        return UpstreamResult.failure(f"{result.error}; xml fallback: {fallback.error}")

    async def ir_state(self) -> UpstreamResult[str | None]:
        fetched = await self.fetch_text(IR_STATE_PATH)
        if not fetched.ok:
            logger.debug("IR state query failed: {}", fetched.error)
            return UpstreamResult.failure(fetched.error or "request failed")
        return UpstreamResult.success(parse_ir_state(fetched.value or ""))

    async def temperature(self) -> UpstreamResult[TemperatureStatus]:
        """
        Temperature sensors and heater, enriched with the IR-cut filter state.
        The IR query is best-effort: if it fails ``ir_state`` is just None.
        """
        temperature, ir = await asyncio.gather(
            self._fetch_parsed("temperature", self._temperature_path, parse_temperature),
            self.ir_state(),
        )
        if not temperature.ok or temperature.value is None:
            return temperature
        return UpstreamResult.success(replace(temperature.value, ir_state=ir.value if ir.ok else None))

    async def ptz_limits(self) -> UpstreamResult[dict[str, float | None]]:
        return await self._fetch_parsed("ptz limits", PTZ_LIMITS_PATH, parse_ptz_limits)
