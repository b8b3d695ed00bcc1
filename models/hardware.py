"""Observable hardware tree supplied by the host environment."""

from __future__ import annotations

from enum import Enum
from threading import Lock
from typing import Callable, List, Optional


class SensorKind(str, Enum):
    """Sensor categories as they appear in sensor identifiers."""

    voltage = "voltage"
    clock = "clock"
    temperature = "temperature"
    load = "load"
    fan = "fan"
    flow = "flow"
    control = "control"
    level = "level"
    factor = "factor"
    power = "power"
    data = "data"
    small_data = "smalldata"
    throughput = "throughput"


SensorCallback = Callable[["Sensor"], None]
HardwareCallback = Callable[["Hardware"], None]


class Sensor:

    def __init__(
        self,
        hardware: "Hardware",
        kind: SensorKind,
        index: int,
        name: str,
        value: Optional[float] = None,
    ) -> None:
        self.hardware = hardware
        self.kind = kind
        self.index = index
        self.name = name
        self.value = value

    @property
    def identifier(self) -> str:
        return f"{self.hardware.identifier}/{self.kind.value}/{self.index}"

    def __repr__(self) -> str:
        return f"Sensor({self.identifier!r}, name={self.name!r}, value={self.value!r})"


class Hardware:
    """A device node owning sensors and nested sub-hardware."""

    def __init__(
        self,
        name: str,
        kind: str,
        index: Optional[int] = 0,
        parent: Optional["Hardware"] = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self.index = index
        self.parent = parent
        self.sensors: List[Sensor] = []
        self.sub_hardware: List[Hardware] = []
        self._sensor_added: List[SensorCallback] = []
        self._sensor_removed: List[SensorCallback] = []
        self._lock = Lock()

    @property
    def identifier(self) -> str:
        if self.index is None:
            return f"/{self.kind}"
        return f"/{self.kind}/{self.index}"

    def add_sensor(
        self,
        kind: SensorKind,
        index: int,
        name: str,
        value: Optional[float] = None,
    ) -> Sensor:
        sensor = Sensor(hardware=self, kind=kind, index=index, name=name, value=value)
        with self._lock:
            self.sensors.append(sensor)
            callbacks = list(self._sensor_added)
        for callback in callbacks:
            callback(sensor)
        return sensor

    def remove_sensor(self, sensor: Sensor) -> None:
        with self._lock:
            if sensor not in self.sensors:
                return
            self.sensors.remove(sensor)
            callbacks = list(self._sensor_removed)
        for callback in callbacks:
            callback(sensor)

    def add_sub_hardware(self, name: str, kind: str, index: Optional[int] = 0) -> "Hardware":
        """Attach a child device. Children are expected before the parent is published."""
        child = Hardware(name=name, kind=kind, index=index, parent=self)
        self.sub_hardware.append(child)
        return child

    def subscribe(self, on_added: SensorCallback, on_removed: SensorCallback) -> None:
        with self._lock:
            self._sensor_added.append(on_added)
            self._sensor_removed.append(on_removed)

    def unsubscribe(self, on_added: SensorCallback, on_removed: SensorCallback) -> None:
        with self._lock:
            if on_added in self._sensor_added:
                self._sensor_added.remove(on_added)
            if on_removed in self._sensor_removed:
                self._sensor_removed.remove(on_removed)

    def __repr__(self) -> str:
        return f"Hardware({self.identifier!r}, name={self.name!r})"


class Computer:
    """Root hardware list. Notifies subscribers when devices come and go."""

    def __init__(self) -> None:
        self.hardware: List[Hardware] = []
        self._hardware_added: List[HardwareCallback] = []
        self._hardware_removed: List[HardwareCallback] = []
        self._lock = Lock()

    def add_hardware(self, hardware: Hardware) -> None:
        with self._lock:
            self.hardware.append(hardware)
            callbacks = list(self._hardware_added)
        for callback in callbacks:
            callback(hardware)

    def remove_hardware(self, hardware: Hardware) -> None:
        with self._lock:
            if hardware not in self.hardware:
                return
            self.hardware.remove(hardware)
            callbacks = list(self._hardware_removed)
        for callback in callbacks:
            callback(hardware)

    def roots(self) -> List[Hardware]:
        with self._lock:
            return list(self.hardware)

    def subscribe(self, on_added: HardwareCallback, on_removed: HardwareCallback) -> None:
        with self._lock:
            self._hardware_added.append(on_added)
            self._hardware_removed.append(on_removed)
