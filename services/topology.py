"""Stable, index-addressable view over a hardware tree that changes at runtime."""

from __future__ import annotations

import logging
import queue
from threading import Event, Lock
from typing import Iterable, Iterator, List, Optional, Sequence

from models.hardware import Computer, Hardware, Sensor
from models.records import (
    HardwareAdded,
    HardwareRemoved,
    SensorAdded,
    SensorRemoved,
    TopologyEvent,
    TopologySnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1024


def walk_hardware(roots: Iterable[Hardware]) -> Iterator[Hardware]:
    """Yield hardware nodes depth first, children in declared order."""
    stack: List[Hardware] = list(reversed(list(roots)))
    while stack:
        hardware = stack.pop()
        yield hardware
        stack.extend(reversed(hardware.sub_hardware))


def walk_sensors(roots: Iterable[Hardware]) -> Iterator[Sensor]:
    for hardware in walk_hardware(roots):
        yield from list(hardware.sensors)


class SensorTopology:
    """Slot layout keyed by sensor identifier.

    Notification handlers only enqueue events; slots are mutated when
    ``refresh`` drains the queue under ``_lock``. Once a layout is fixed its
    length and order stay put until a new ``establish`` or ``rebuild``.
    """

    def __init__(self, computer: Computer, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.computer = computer
        self._slots: List[Optional[Sensor]] = []
        self._identifiers: List[str] = []
        self._fixed = False
        self._resync = Event()
        self._events: "queue.Queue[TopologyEvent]" = queue.Queue(maxsize=queue_size)
        self._lock = Lock()

        computer.subscribe(self._on_hardware_added, self._on_hardware_removed)
        for hardware in walk_hardware(computer.roots()):
            hardware.subscribe(self._on_sensor_added, self._on_sensor_removed)

    @property
    def is_fixed(self) -> bool:
        with self._lock:
            return self._fixed

    def refresh(self) -> TopologySnapshot:
        """Apply pending change events and return the current slots.

        Without a fixed layout the whole tree is enumerated and that order is
        fixed.
        """
        with self._lock:
            self._drain_locked()
            if not self._fixed:
                self._rebuild_locked()
            return self._snapshot_locked()

    def establish(self, identifiers: Sequence[str]) -> TopologySnapshot:
        """Fix a layout from a known identifier ordering and fill it from live sensors."""
        with self._lock:
            self._drain_locked()
            self._identifiers = list(identifiers)
            self._slots = [None] * len(self._identifiers)
            self._fixed = True
            self._match_live_locked()
            return self._snapshot_locked()

    def rebuild(self) -> TopologySnapshot:
        """Fix a layout from a full enumeration of the tree."""
        with self._lock:
            self._drain_locked()
            self._rebuild_locked()
            return self._snapshot_locked()

    def enumerate(self) -> List[Sensor]:
        """Walk the whole tree without touching the slot layout."""
        return list(walk_sensors(self.computer.roots()))

    def snapshot(self) -> TopologySnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> TopologySnapshot:
        return TopologySnapshot(identifiers=tuple(self._identifiers), slots=tuple(self._slots))

    def _rebuild_locked(self) -> None:
        sensors = self.enumerate()
        self._slots = list(sensors)
        self._identifiers = [sensor.identifier for sensor in sensors]
        self._fixed = True
        self._resync.clear()
        logger.debug("Topology enumerated", extra={"slot_count": len(self._slots)})

    def _match_live_locked(self) -> None:
        self._resync.clear()
        positions: dict[str, List[int]] = {}
        for index, identifier in enumerate(self._identifiers):
            positions.setdefault(identifier, []).append(index)
        for sensor in self.enumerate():
            for index in positions.get(sensor.identifier, ()):
                self._slots[index] = sensor

    def _drain_locked(self) -> None:
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            self._apply_locked(event)
        if self._resync.is_set() and self._fixed:
            logger.info("Resynchronising topology after dropped events")
            self._slots = [None] * len(self._identifiers)
            self._match_live_locked()

    def _apply_locked(self, event: TopologyEvent) -> None:
        if isinstance(event, HardwareAdded):
            for sensor in walk_sensors([event.hardware]):
                self._place_locked(sensor)
        elif isinstance(event, HardwareRemoved):
            detached = {id(node) for node in walk_hardware([event.hardware])}
            for sensor in event.sensors:
                self._clear_locked(sensor)
            for sensor in list(self._slots):
                if sensor is not None and id(sensor.hardware) in detached:
                    self._clear_locked(sensor)
        elif isinstance(event, SensorAdded):
            self._place_locked(event.sensor)
        elif isinstance(event, SensorRemoved):
            self._clear_locked(event.sensor)

    def _place_locked(self, sensor: Sensor) -> None:
        identifier = sensor.identifier
        matched = False
        for index, known in enumerate(self._identifiers):
            if known == identifier:
                self._slots[index] = sensor
                matched = True
        if not matched and not self._fixed:
            self._identifiers.append(identifier)
            self._slots.append(sensor)

    def _clear_locked(self, sensor: Sensor) -> None:
        identifier = sensor.identifier
        for index, known in enumerate(self._identifiers):
            if known == identifier and self._slots[index] is sensor:
                self._slots[index] = None
                logger.debug("Sensor slot emptied", extra={"sensor_id": identifier})

    def _enqueue(self, event: TopologyEvent) -> None:
        try:
            self._events.put_nowait(event)
        except queue.Full:
            # picked up by the next drain
            self._resync.set()
            logger.warning(
                "Topology event queue full; dropping event",
                extra={"reason": type(event).__name__},
            )

    def _on_hardware_added(self, hardware: Hardware) -> None:
        for node in walk_hardware([hardware]):
            node.subscribe(self._on_sensor_added, self._on_sensor_removed)
        self._enqueue(HardwareAdded(hardware))

    def _on_hardware_removed(self, hardware: Hardware) -> None:
        for node in walk_hardware([hardware]):
            node.unsubscribe(self._on_sensor_added, self._on_sensor_removed)
        self._enqueue(HardwareRemoved(hardware, tuple(walk_sensors([hardware]))))

    def _on_sensor_added(self, sensor: Sensor) -> None:
        self._enqueue(SensorAdded(sensor))

    def _on_sensor_removed(self, sensor: Sensor) -> None:
        self._enqueue(SensorRemoved(sensor))
