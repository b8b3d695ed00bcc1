"""Line-protocol rendering of a sensor snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from models.hardware import Sensor, SensorKind
from storage.column_log import format_value

MOTHERBOARD_MEASUREMENT = "motherboard"
POWER_MEASUREMENT = "power"
UNKNOWN_DEVICE = "unknown"


def sanitize_host_name(name: str) -> str:
    return name.replace(" ", "_").replace("-", "_")


def sanitize_device_name(name: str) -> str:
    return name.replace(" ", "_").replace("-", "_").replace("#", "_")


def sanitize_field_name(name: str) -> str:
    return name.replace(" ", "_").replace("-", "_").replace("#", "0")


@dataclass(frozen=True)
class IdentifierParts:
    hardware_kind: str
    device_number: int
    sensor_kind: str
    sensor_number: int


def _parse_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


def parse_identifier(identifier: str) -> IdentifierParts:
    """Split ``/<hardware-kind>/<device-number>/<sensor-kind>/<sensor-number>``.

    Hardware without a device number (``/lpc/temperature/0``) reports device 0
    and takes its sensor kind from the second segment.
    """
    segments = identifier.split("/")
    hardware_kind = segments[1] if len(segments) > 1 else ""
    second = segments[2] if len(segments) > 2 else ""
    device_number = _parse_int(second)
    if device_number is not None:
        sensor_kind = segments[3] if len(segments) > 3 else ""
    else:
        device_number = 0
        sensor_kind = second
    sensor_number = _parse_int(segments[-1]) or 0
    return IdentifierParts(
        hardware_kind=hardware_kind,
        device_number=device_number,
        sensor_kind=sensor_kind,
        sensor_number=sensor_number,
    )


def _number(value: Optional[float]) -> str:
    return format_value(value) or "0"


def motherboard_line(host: str, mainboard_name: str) -> str:
    device = sanitize_device_name(mainboard_name) if mainboard_name else UNKNOWN_DEVICE
    return (
        f"{MOTHERBOARD_MEASUREMENT},computer={host},sensor=name,"
        f"device={device},device_id={host}_{device} value=0"
    )


def sensor_line(host: str, sensor: Sensor) -> str:
    identifier = sensor.identifier
    parts = parse_identifier(identifier)
    device = sanitize_device_name(sensor.hardware.name)
    tags = ",".join(
        [
            f"computer={host}",
            f"sensor={parts.sensor_kind}",
            f"device={device}",
            f"device_id={host}_{device}_{parts.device_number}",
            f"sensor_number={parts.sensor_number}",
            f"openhw_id={identifier.replace('/', '_')}",
        ]
    )
    field_name = sanitize_field_name(sensor.name)
    return f"{parts.hardware_kind},{tags} {field_name}={_number(sensor.value)}"


def serialize(host: str, sensors: Iterable[Sensor], mainboard_name: str = "") -> str:
    """Render the marker point, one point per sensor and the power total.

    ``host`` must already be sanitized. The output is newline terminated and
    depends only on its inputs.
    """
    lines: List[str] = [motherboard_line(host, mainboard_name)]
    total_power = 0.0
    for sensor in sensors:
        lines.append(sensor_line(host, sensor))
        if sensor.kind is SensorKind.power and format_value(sensor.value):
            total_power += float(sensor.value)  # type: ignore[arg-type]
    lines.append(f"{POWER_MEASUREMENT},computer={host} total={_number(total_power)}")
    return "\n".join(lines) + "\n"
