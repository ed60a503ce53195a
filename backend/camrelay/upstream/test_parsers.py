import pytest

from camrelay.upstream.parsers import (
    DeviceError,
    ParseError,
    parse_clock,
    parse_device_identity,
    parse_device_identity_xml,
    parse_geolocation,
    parse_ir_state,
    parse_key_values,
    parse_ptz_limits,
    parse_ptz_position,
    parse_temperature,
    to_bool,
    to_number,
    zoom_to_magnification,
)


def test_to_number_is_defensive() -> None:
    assert to_number("12.5") == 12.5
    assert to_number(" -3 ") == -3.0
    assert to_number("NaN") is None
    assert to_number("inf") is None
    assert to_number("n/a") is None
    assert to_number("") is None
    assert to_number(None) is None


def test_to_bool() -> None:
    assert to_bool("true") is True
    assert to_bool("1") is True
    assert to_bool("FALSE") is False
    assert to_bool("maybe") is None
    assert to_bool(None) is None


def test_key_values_drop_root_prefix_and_junk_lines() -> None:
    values = parse_key_values("root.Brand.ProdNbr=P3227-LVE\n\nnot a pair\n a = b=c \n")
    assert values == {"Brand.ProdNbr": "P3227-LVE", "a": "b=c"}


def test_ptz_position() -> None:
    optics = parse_ptz_position("pan=12.5\ntilt=-3.25\nzoom=5000\n", max_magnification=3.9)
    assert (optics.pan, optics.tilt, optics.zoom) == (12.5, -3.25, 5000.0)
    assert optics.magnification == 2.45
    assert optics.raw_text == "pan=12.5\ntilt=-3.25\nzoom=5000"
    assert optics.error is None


def test_ptz_position_garbled_numbers_become_none() -> None:
    optics = parse_ptz_position("pan=abc\ntilt=\nzoom=NaN\n", max_magnification=3.9)
    assert (optics.pan, optics.tilt, optics.zoom, optics.magnification) == (None, None, None, None)


def test_ptz_position_error_body() -> None:
    with pytest.raises(DeviceError):
        parse_ptz_position("Error: PTZ is not supported on this video source\n", max_magnification=3.9)


def test_ptz_position_without_axes_is_a_parse_error() -> None:
    with pytest.raises(ParseError):
        parse_ptz_position("<html>login</html>", max_magnification=3.9)


def test_magnification_clamps_to_range() -> None:
    assert zoom_to_magnification(1, 3.9) == 1.0
    assert zoom_to_magnification(9999, 3.9) == 3.9
    assert zoom_to_magnification(20000, 3.9) == 3.9
    assert zoom_to_magnification(None, 3.9) is None


GEO_XML = """<?xml version="1.0" encoding="UTF-8"?>
<PositionResponse xmlns="http://www.axis.com/vapix/geolocation" SchemaVersion="1.0">
  <Success><GetSuccess>
    <Location><Lat>40.4406</Lat><Lng>-79.9959</Lng><Heading>215.5</Heading></Location>
    <ValidPosition>true</ValidPosition>
    <ValidHeading>0</ValidHeading>
    <StandardDevPosition>2.5</StandardDevPosition>
    <StandardDevHeading>NaN</StandardDevHeading>
    <Text>Mount Washington</Text>
  </GetSuccess></Success>
</PositionResponse>"""


def test_geolocation_with_namespace() -> None:
    geo = parse_geolocation(GEO_XML)
    assert (geo.lat, geo.lng, geo.heading) == (40.4406, -79.9959, 215.5)
    assert geo.valid_position is True
    assert geo.valid_heading is False
    assert geo.standard_deviation_position == 2.5
    assert geo.standard_deviation_heading is None
    assert geo.text == "Mount Washington"


def test_geolocation_error_element() -> None:
    xml = (
        "<PositionResponse><Error><ErrorCode>2</ErrorCode>"
        "<ErrorDescription>No GPS fix</ErrorDescription></Error></PositionResponse>"
    )
    with pytest.raises(DeviceError, match="No GPS fix"):
        parse_geolocation(xml)


def test_geolocation_malformed_xml() -> None:
    with pytest.raises(ParseError, match="malformed"):
        parse_geolocation("<PositionResponse><Lat>40")


def test_clock() -> None:
    clock = parse_clock(
        '{"apiVersion": "1.0", "data": {"dateTime": "2026-10-19T14:00:00Z",'
        ' "localDateTime": "2026-10-19T10:00:00", "timeZone": "America/New_York"}}'
    )
    assert clock.camera_time == "2026-10-19T10:00:00"
    assert clock.utc_time == "2026-10-19T14:00:00Z"
    assert clock.timezone == "America/New_York"


def test_clock_falls_back_to_posix_timezone() -> None:
    clock = parse_clock('{"data": {"localDateTime": "2026-10-19T10:00:00", "posixTimeZone": "EST5EDT"}}')
    assert clock.timezone == "EST5EDT"


def test_clock_error_object() -> None:
    with pytest.raises(DeviceError, match="1001: Method not supported"):
        parse_clock('{"apiVersion": "1.0", "error": {"code": 1001, "message": "Method not supported"}}')


def test_clock_non_json_body() -> None:
    with pytest.raises(ParseError, match="unexpected clock response"):
        parse_clock("<html><body>401 Unauthorized</body></html>")


def test_device_identity_text() -> None:
    device = parse_device_identity(
        "root.Brand.ProdNbr=P3227-LVE\n"
        "root.Properties.Firmware.Version=10.12.153\n"
        "root.Properties.System.SerialNumber=ACCC8E123456\n"
    )
    assert (device.model, device.firmware, device.serial) == ("P3227-LVE", "10.12.153", "ACCC8E123456")


def test_device_identity_text_without_fields() -> None:
    with pytest.raises(ParseError):
        parse_device_identity("root.Network.HostName=cam\n")


def test_device_identity_xml() -> None:
    xml = """<parameterDefinitions xmlns="http://www.axis.com/ParameterDefinitionsSchema">
      <group name="root">
        <group name="Brand"><parameter name="ProdNbr" value="P3227-LVE"/></group>
        <group name="Properties">
          <group name="System"><parameter name="SerialNumber" value="ACCC8E123456"/></group>
        </group>
      </group>
    </parameterDefinitions>"""
    device = parse_device_identity_xml(xml)
    assert device.model == "P3227-LVE"
    assert device.firmware is None
    assert device.serial == "ACCC8E123456"


def test_temperature_sensors_sorted_by_number() -> None:
    t = parse_temperature(
        "Sensor.S10.Name=Housing\n"
        "Sensor.S10.Celsius=20\n"
        "Sensor.S2.Name=CPU\n"
        "Sensor.S2.Celsius=n/a\n"
        "Sensor.S2.Fahrenheit=\n"
        "Heater.H0.Status=Running\n"
        "Heater.H0.TimeUntilStop=120\n"
    )
    assert [s.id for s in t.sensors] == ["S2", "S10"]
    assert t.sensors[0].name == "CPU"
    assert t.sensors[0].celsius is None
    assert t.sensors[0].fahrenheit is None
    assert t.sensors[1].celsius == 20.0
    assert t.heater_status == "Running"
    assert t.heater_time_until_stop == 120.0
    assert t.ir_state is None


def test_temperature_without_known_keys() -> None:
    with pytest.raises(ParseError):
        parse_temperature("Foo=bar\n")


def test_ir_state() -> None:
    assert parse_ir_state("root.ImageSource.I0.DayNight.IrCutFilter=auto\n") == "auto"
    assert parse_ir_state("") is None


def test_ptz_limits_partial() -> None:
    limits = parse_ptz_limits("root.PTZ.Limit.L1.MinPan=-170\nroot.PTZ.Limit.L1.MaxPan=oops\n")
    assert limits["min_pan"] == -170.0
    assert limits["max_pan"] is None
    assert limits["max_zoom"] is None


def test_ptz_limits_empty() -> None:
    with pytest.raises(ParseError):
        parse_ptz_limits("root.PTZ.Various.V1.Locked=false\n")
