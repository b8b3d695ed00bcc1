"""Unit tests for the slot-stable sensor topology."""

from __future__ import annotations

import threading

from models.hardware import Computer, Hardware, SensorKind
from services.topology import SensorTopology, walk_sensors


def _cpu(index: int = 0) -> Hardware:
    cpu = Hardware(name="Intel Core i7-9700K", kind="cpu", index=index)
    cpu.add_sensor(SensorKind.temperature, 0, "CPU Package", 45.0)
    cpu.add_sensor(SensorKind.power, 0, "CPU Package", 12.5)
    return cpu


def _mainboard() -> Hardware:
    board = Hardware(name="ASUS PRIME Z390-A", kind="mainboard", index=None)
    chip = board.add_sub_hardware(name="Nuvoton NCT6798D", kind="lpc", index=None)
    chip.add_sensor(SensorKind.fan, 0, "Fan #1", 900.0)
    board.add_sensor(SensorKind.voltage, 0, "Vcore", 1.2)
    return board


def _computer(*hardware: Hardware) -> Computer:
    computer = Computer()
    for item in hardware:
        computer.add_hardware(item)
    return computer


def test_walk_is_depth_first_in_declared_order() -> None:
    board = _mainboard()
    cpu = _cpu()

    identifiers = [sensor.identifier for sensor in walk_sensors([board, cpu])]

    assert identifiers == [
        "/mainboard/voltage/0",
        "/lpc/fan/0",
        "/cpu/0/temperature/0",
        "/cpu/0/power/0",
    ]


def test_walk_handles_deep_trees_without_recursion() -> None:
    root = Hardware(name="root", kind="node", index=0)
    node = root
    for depth in range(5000):
        node = node.add_sub_hardware(name=f"n{depth}", kind="node", index=depth + 1)
    node.add_sensor(SensorKind.load, 0, "Leaf")

    sensors = list(walk_sensors([root]))

    assert [sensor.name for sensor in sensors] == ["Leaf"]


def test_first_refresh_fixes_enumeration_order() -> None:
    topology = SensorTopology(_computer(_cpu()))

    snapshot = topology.refresh()

    assert topology.is_fixed
    assert snapshot.identifiers == ("/cpu/0/temperature/0", "/cpu/0/power/0")
    assert all(slot is not None for slot in snapshot.slots)


def test_hardware_removal_empties_slots_without_shrinking() -> None:
    board = _mainboard()
    cpu = _cpu()
    computer = _computer(board, cpu)
    topology = SensorTopology(computer)
    before = topology.refresh()

    computer.remove_hardware(board)
    after = topology.refresh()

    assert len(after) == len(before) == 4
    assert after.slots[0] is None
    assert after.slots[1] is None
    assert after.slots[2] is not None
    assert after.identifiers == before.identifiers


def test_readded_hardware_refills_matching_slots() -> None:
    computer = _computer(_cpu())
    topology = SensorTopology(computer)
    topology.refresh()
    computer.remove_hardware(computer.hardware[0])
    topology.refresh()

    replacement = _cpu()
    computer.add_hardware(replacement)
    snapshot = topology.refresh()

    assert snapshot.slots == tuple(replacement.sensors)


def test_unknown_sensor_is_ignored_once_fixed() -> None:
    computer = _computer(_cpu())
    topology = SensorTopology(computer)
    topology.refresh()

    computer.hardware[0].add_sensor(SensorKind.clock, 1, "Core #1", 4700.0)
    snapshot = topology.refresh()

    assert len(snapshot) == 2
    assert "/cpu/0/clock/1" not in snapshot.identifiers


def test_hardware_added_before_first_refresh_is_included() -> None:
    computer = Computer()
    topology = SensorTopology(computer)

    computer.add_hardware(_cpu())
    computer.add_hardware(_mainboard())
    assert not topology.is_fixed

    snapshot = topology.refresh()

    assert snapshot.identifiers == (
        "/cpu/0/temperature/0",
        "/cpu/0/power/0",
        "/mainboard/voltage/0",
        "/lpc/fan/0",
    )
    assert topology.is_fixed


def test_sensor_removal_clears_only_its_slot() -> None:
    cpu = _cpu()
    computer = _computer(cpu)
    topology = SensorTopology(computer)
    topology.refresh()

    cpu.remove_sensor(cpu.sensors[1])
    snapshot = topology.refresh()

    assert snapshot.slots[0] is cpu.sensors[0]
    assert snapshot.slots[1] is None


def test_establish_from_header_keeps_missing_columns_empty() -> None:
    computer = _computer(_cpu())
    topology = SensorTopology(computer)

    snapshot = topology.establish(["/gpu/0/temperature/0", "/cpu/0/temperature/0"])

    assert snapshot.identifiers == ("/gpu/0/temperature/0", "/cpu/0/temperature/0")
    assert snapshot.slots[0] is None
    assert snapshot.slots[1] is not None
    assert snapshot.slots[1].name == "CPU Package"


def test_duplicate_identifiers_last_writer_wins() -> None:
    first = _cpu()
    second = _cpu()
    computer = _computer(first, second)
    topology = SensorTopology(computer)

    snapshot = topology.establish(["/cpu/0/temperature/0"])

    assert snapshot.slots[0] is second.sensors[0]


def test_full_queue_triggers_resync() -> None:
    cpu = _cpu()
    computer = _computer(cpu)
    topology = SensorTopology(computer, queue_size=1)
    topology.refresh()

    extra = cpu.add_sensor(SensorKind.load, 0, "CPU Total")
    computer.remove_hardware(cpu)
    snapshot = topology.refresh()

    assert extra.identifier not in snapshot.identifiers
    assert snapshot.slots == (None, None)


def test_sensor_dropped_after_hardware_removal_is_still_cleared() -> None:
    cpu = _cpu()
    computer = _computer(cpu)
    topology = SensorTopology(computer)
    topology.refresh()

    computer.remove_hardware(cpu)
    cpu.remove_sensor(cpu.sensors[0])
    snapshot = topology.refresh()

    assert snapshot.slots == (None, None)


def test_concurrent_hardware_churn_keeps_layout_stable() -> None:
    board = _mainboard()
    computer = _computer(board, _cpu())
    topology = SensorTopology(computer, queue_size=64)
    fixed = topology.refresh()
    finished = threading.Event()

    def churn() -> None:
        try:
            for _ in range(300):
                current = computer.hardware[-1]
                computer.remove_hardware(current)
                replacement = _cpu()
                computer.add_hardware(replacement)
                replacement.add_sensor(SensorKind.load, 0, "CPU Total", 1.0)
                replacement.remove_sensor(replacement.sensors[0])
        finally:
            finished.set()

    worker = threading.Thread(target=churn)
    worker.start()
    lengths = set()
    while not finished.is_set():
        snapshot = topology.refresh()
        lengths.add(len(snapshot))
        assert snapshot.identifiers == fixed.identifiers
    worker.join()

    final = topology.refresh()
    live = computer.hardware[-1]

    assert lengths <= {len(fixed)}
    assert final.identifiers == fixed.identifiers
    assert final.slots[0] is board.sensors[0]
    assert final.slots[1] is board.sub_hardware[0].sensors[0]
    assert final.slots[2] is None
    assert final.slots[3] is live.sensors[0]
    assert live.sensors[0].identifier == "/cpu/0/power/0"


def test_emptied_slot_is_logged_with_sensor_id(caplog) -> None:
    cpu = _cpu()
    topology = SensorTopology(_computer(cpu))
    topology.refresh()

    caplog.set_level("DEBUG", logger="services.topology")
    cpu.remove_sensor(cpu.sensors[1])
    topology.refresh()

    emptied = [record for record in caplog.records if record.name == "services.topology"]
    assert [getattr(record, "sensor_id", None) for record in emptied] == ["/cpu/0/power/0"]
