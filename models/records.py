"""Domain records shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union

from models.hardware import Hardware, Sensor


@dataclass(frozen=True, slots=True)
class TopologySnapshot:
    """Fixed slot layout plus the sensor currently occupying each slot."""

    identifiers: Tuple[str, ...]
    slots: Tuple[Optional[Sensor], ...]

    def __len__(self) -> int:
        return len(self.identifiers)


@dataclass(frozen=True, slots=True)
class HardwareAdded:
    hardware: Hardware


@dataclass(frozen=True, slots=True)
class HardwareRemoved:
    """Sensors are captured when the device is detached, before it can change further."""

    hardware: Hardware
    sensors: Tuple[Sensor, ...] = ()


@dataclass(frozen=True, slots=True)
class SensorAdded:
    sensor: Sensor


@dataclass(frozen=True, slots=True)
class SensorRemoved:
    sensor: Sensor


TopologyEvent = Union[HardwareAdded, HardwareRemoved, SensorAdded, SensorRemoved]


class SinkKind(str, Enum):
    column = "column"
    remote = "remote"


class SinkOutcome(str, Enum):
    """How a sink finished one emit call."""

    written = "written"
    io_error = "io_error"
    delivered = "delivered"
    rejected = "rejected"
    failed = "failed"


class TickStatus(str, Enum):
    skipped = "skipped"
    emitted = "emitted"


@dataclass(frozen=True, slots=True)
class TickResult:
    status: TickStatus
    timestamp: datetime
    outcome: Optional[SinkOutcome] = None
