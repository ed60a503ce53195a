"""Shared pytest fixtures: a scripted camera behind httpx.MockTransport."""

from __future__ import annotations

from typing import Callable, Union
from urllib.parse import unquote

import httpx
import pytest

from camrelay.settings import Settings

PTZ_POSITION_TEXT = "pan=12.5\ntilt=-3.25\nzoom=5000\niris=1\nfocus=3000\nautofocus=on\n"

GEOLOCATION_XML = """<?xml version="1.0" encoding="UTF-8"?>
<PositionResponse SchemaVersion="1.0">
  <Success>
    <GetSuccess>
      <Location>
        <Lat>40.4406</Lat>
        <Lng>-79.9959</Lng>
        <Heading>215.5</Heading>
      </Location>
      <ValidPosition>true</ValidPosition>
      <ValidHeading>false</ValidHeading>
      <StandardDevPosition>2.5</StandardDevPosition>
      <StandardDevHeading>NaN</StandardDevHeading>
      <Text>Mount Washington</Text>
    </GetSuccess>
  </Success>
</PositionResponse>
"""

CLOCK_JSON = {
    "apiVersion": "1.0",
    "method": "getDateTimeInfo",
    "data": {
        "dateTime": "2026-10-19T14:00:00Z",
        "localDateTime": "2026-10-19T10:00:00",
        "timeZone": "America/New_York",
    },
}

DEVICE_TEXT = (
    "root.Brand.ProdNbr=P3227-LVE\n"
    "root.Properties.Firmware.Version=10.12.153\n"
    "root.Properties.System.SerialNumber=ACCC8E123456\n"
)

DEVICE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<parameterDefinitions xmlns="http://www.axis.com/ParameterDefinitionsSchema" version="1.0">
  <model>P3227-LVE</model>
  <group name="root">
    <group name="Brand">
      <parameter name="ProdNbr" value="P3227-LVE" niceName="Product number">
        <type readonly="true"><string /></type>
      </parameter>
    </group>
    <group name="Properties">
      <group name="Firmware">
        <parameter name="Version" value="10.12.153" />
      </group>
      <group name="System">
        <parameter name="SerialNumber" value="ACCC8E123456" />
      </group>
    </group>
  </group>
</parameterDefinitions>
"""

TEMPERATURE_TEXT = (
    "Sensor.S1.Name=CPU\n"
    "Sensor.S1.Celsius=n/a\n"
    "Sensor.S0.Name=Main\n"
    "Sensor.S0.Celsius=31.5\n"
    "Sensor.S0.Fahrenheit=88.7\n"
    "Heater.H0.Status=Stopped\n"
    "Heater.H0.TimeUntilStop=0\n"
)

IR_TEXT = "root.ImageSource.I0.DayNight.IrCutFilter=auto\n"

PTZ_LIMITS_TEXT = (
    "root.PTZ.Limit.L1.MinPan=-170\n"
    "root.PTZ.Limit.L1.MaxPan=170\n"
    "root.PTZ.Limit.L1.MinTilt=-90\n"
    "root.PTZ.Limit.L1.MaxTilt=20\n"
    "root.PTZ.Limit.L1.MinZoom=1\n"
    "root.PTZ.Limit.L1.MaxZoom=9999\n"
)

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeCamera:
    """
    Answers camera requests from a table of URL substrings. Unknown URLs get
    a 404. Every request URL is recorded in ``calls``.
    """

    # Substrings of the (unquoted) request URL that identify each endpoint.
    PTZ = "/com/ptz.cgi"
    LEGACY_PTZ = "/axis-cgi/ptz.cgi"
    GEOLOCATION = "geolocation/get.cgi"
    TIME = "time.cgi"
    DEVICE = "action=list&group=Brand"
    DEVICE_XML = "action=listdefinitions"
    TEMPERATURE = "temperaturecontrol.cgi"
    IR = "IrCutFilter"
    PTZ_LIMITS = "PTZ.Limit"

    def __init__(self) -> None:
        self.routes: dict[str, Reply] = {}
        self.calls: list[str] = []
        self.requests: list[httpx.Request] = []

    def reply(self, match: str, reply: Reply) -> None:
        self.routes[match] = reply

    def fail(self, match: str, exc: type[httpx.TransportError] = httpx.ConnectError) -> None:
        def raise_(request: httpx.Request) -> httpx.Response:
            raise exc("camera unreachable", request=request)

        self.routes[match] = raise_

    def count(self, match: str) -> int:
        return sum(1 for url in self.calls if match in url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = unquote(str(request.url))
        self.calls.append(url)
        self.requests.append(request)
        for match, reply in self.routes.items():
            if match in url:
                return reply(request) if callable(reply) else reply
        return httpx.Response(404, text="Not Found")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def healthy_camera() -> FakeCamera:
    cam = FakeCamera()
    cam.reply(FakeCamera.PTZ, httpx.Response(200, text=PTZ_POSITION_TEXT))
    cam.reply(FakeCamera.GEOLOCATION, httpx.Response(200, text=GEOLOCATION_XML))
    cam.reply(FakeCamera.TIME, httpx.Response(200, json=CLOCK_JSON))
    cam.reply(FakeCamera.DEVICE, httpx.Response(200, text=DEVICE_TEXT))
    cam.reply(FakeCamera.DEVICE_XML, httpx.Response(200, text=DEVICE_XML))
    cam.reply(FakeCamera.TEMPERATURE, httpx.Response(200, text=TEMPERATURE_TEXT))
    cam.reply(FakeCamera.IR, httpx.Response(200, text=IR_TEXT))
    cam.reply(FakeCamera.PTZ_LIMITS, httpx.Response(200, text=PTZ_LIMITS_TEXT))
    return cam


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def camera() -> FakeCamera:
    return healthy_camera()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        camera_host="http://camera.test",
        camera_username="viewer",
        camera_password="secret",
        camera_auth="basic",
        upstream_timeout_s=1.0,
        status_ttl_s=2.0,
        capabilities_ttl_s=300.0,
        viewer_ttl_s=65.0,
        live_status_interval_s=0.05,
        live_presence_interval_s=0.05,
    )
