from __future__ import annotations

import asyncio
from datetime import date, datetime
from pathlib import Path

import pytest

from models.hardware import Computer, Hardware, SensorKind
from models.records import SinkOutcome
from services.topology import SensorTopology
from storage.column_log import (
    ColumnLogSink,
    format_timestamp,
    format_value,
    log_file_name,
    read_column_log,
    read_header_identifiers,
)

NOW = datetime(2024, 3, 5, 14, 7, 9)


def _setup() -> tuple[Computer, Hardware, SensorTopology]:
    cpu = Hardware(name="Intel Core i5", kind="cpu", index=0)
    cpu.add_sensor(SensorKind.temperature, 0, "CPU Package", 45.0)
    cpu.add_sensor(SensorKind.power, 0, "CPU Package", 12.5)
    computer = Computer()
    computer.add_hardware(cpu)
    return computer, cpu, SensorTopology(computer)


def _lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


def test_format_helpers() -> None:
    assert log_file_name("OpenHardwareMonitorLog", date(2024, 3, 5)) == "OpenHardwareMonitorLog-2024-03-05.csv"
    assert format_timestamp(NOW) == "03/05/2024 14:07:09"
    assert format_value(45.0) == "45"
    assert format_value(12.5) == "12.5"
    assert format_value(0.1) == "0.1"
    assert format_value(None) == ""
    assert format_value(float("nan")) == ""


def test_new_file_gets_two_line_header_and_row(tmp_path: Path) -> None:
    _, _, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")

    outcome = sink.write(topology, NOW)

    assert outcome is SinkOutcome.written
    assert sink.path == tmp_path / "hw-2024-03-05.csv"
    assert _lines(sink.path) == [
        ",/cpu/0/temperature/0,/cpu/0/power/0",
        'Time,"CPU Package","CPU Package"',
        "03/05/2024 14:07:09,45,12.5",
    ]


def test_emit_is_awaitable(tmp_path: Path) -> None:
    _, _, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")

    outcome = asyncio.run(sink.emit(topology, NOW))

    assert outcome is SinkOutcome.written


def test_reattach_matches_header_to_live_sensors(tmp_path: Path) -> None:
    path = tmp_path / "hw-2024-03-05.csv"
    path.write_text(',/cpu/0/temperature/0,/cpu/0/power/0\nTime,"a","b"\n', encoding="utf-8")
    cpu = Hardware(name="Intel Core i5", kind="cpu", index=0)
    cpu.add_sensor(SensorKind.temperature, 0, "CPU Package", 50.0)
    computer = Computer()
    computer.add_hardware(cpu)
    topology = SensorTopology(computer)
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")

    sink.write(topology, NOW)
    snapshot = topology.snapshot()

    assert len(snapshot) == 2
    assert snapshot.slots[0] is cpu.sensors[0]
    assert snapshot.slots[1] is None
    assert _lines(path)[-1] == "03/05/2024 14:07:09,50,"


@pytest.mark.parametrize("header", ["", ",\n", "\n"])
def test_unusable_header_is_rebuilt(tmp_path: Path, header: str) -> None:
    path = tmp_path / "hw-2024-03-05.csv"
    path.write_text(header, encoding="utf-8")
    _, _, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")

    sink.write(topology, NOW)

    assert _lines(path)[0] == ",/cpu/0/temperature/0,/cpu/0/power/0"
    assert len(_lines(path)) == 3


def test_read_header_identifiers_missing_file(tmp_path: Path) -> None:
    assert read_header_identifiers(tmp_path / "absent.csv") is None


def test_removed_hardware_renders_empty_fields(tmp_path: Path) -> None:
    computer, cpu, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")
    topology.refresh()
    sink.write(topology, NOW)

    computer.remove_hardware(cpu)
    topology.refresh()
    sink.write(topology, NOW.replace(second=10))

    assert len(topology.snapshot()) == 2
    assert _lines(sink.path)[-1] == "03/05/2024 14:07:10,,"


def test_midnight_rollover_starts_new_file(tmp_path: Path) -> None:
    _, _, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")
    sink.write(topology, datetime(2024, 3, 5, 23, 59, 59))

    sink.write(topology, datetime(2024, 3, 6, 0, 0, 1))

    assert sink.day == date(2024, 3, 6)
    assert len(_lines(tmp_path / "hw-2024-03-05.csv")) == 3
    assert _lines(tmp_path / "hw-2024-03-06.csv")[2].startswith("03/06/2024 00:00:01,")


def test_write_failure_is_swallowed(tmp_path: Path, monkeypatch) -> None:
    _, _, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")
    sink.write(topology, NOW)

    original_open = Path.open

    def failing_open(self, mode="r", *args, **kwargs):
        if mode == "a":
            raise PermissionError("locked")
        return original_open(self, mode, *args, **kwargs)

    monkeypatch.setattr(Path, "open", failing_open)

    assert sink.write(topology, NOW) is SinkOutcome.io_error


def test_round_trip_reconstructs_identifier_values(tmp_path: Path) -> None:
    _, _, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")
    sink.write(topology, NOW)

    log = read_column_log(sink.path)

    assert log.identifiers == ["/cpu/0/temperature/0", "/cpu/0/power/0"]
    assert log.names == ["CPU Package", "CPU Package"]
    assert len(log.rows) == 1
    assert log.rows[0].timestamp == NOW
    assert log.rows[0].values == {"/cpu/0/temperature/0": 45.0, "/cpu/0/power/0": 12.5}


def test_read_column_log_skips_malformed_rows(tmp_path: Path, caplog) -> None:
    path = tmp_path / "hw.csv"
    path.write_text(
        ',/a/0/load/0\nTime,"Load"\nnot-a-date,1\n03/05/2024 14:07:09,\n',
        encoding="utf-8",
    )

    log = read_column_log(path)

    assert [row.values for row in log.rows] == [{"/a/0/load/0": None}]
    assert any("Skipping row 3" in record.getMessage() for record in caplog.records)


def test_creation_failure_is_retried_on_next_write(tmp_path: Path, monkeypatch) -> None:
    _, _, topology = _setup()
    sink = ColumnLogSink(directory=tmp_path, prefix="hw")
    original_open = Path.open

    def failing_open(self, mode="r", *args, **kwargs):
        if mode == "w":
            raise PermissionError("read-only")
        return original_open(self, mode, *args, **kwargs)

    monkeypatch.setattr(Path, "open", failing_open)
    assert sink.write(topology, NOW) is SinkOutcome.io_error
    assert sink.day is None

    monkeypatch.setattr(Path, "open", original_open)
    assert sink.write(topology, NOW) is SinkOutcome.written
    assert len(_lines(tmp_path / "hw-2024-03-05.csv")) == 3
