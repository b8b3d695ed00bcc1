"""Daily CSV log whose columns are pinned to sensor identifiers."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

from models.records import SinkKind, SinkOutcome, TopologySnapshot
from services.topology import SensorTopology

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%m/%d/%Y %H:%M:%S"


def log_file_name(prefix: str, day: date) -> str:
    return f"{prefix}-{day:%Y-%m-%d}.csv"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def format_value(value: Optional[float]) -> str:
    """Shortest decimal text that parses back to the same float; '' when unknown."""
    if value is None or not math.isfinite(value):
        return ""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def read_header_identifiers(path: Path) -> Optional[List[str]]:
    """Return the identifier ordering from the first line, or None if unusable.

    An empty or zero-column header is treated the same as an unreadable one.
    """
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            line = handle.readline()
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(
            "Unable to read log header",
            extra={"file_path": str(path), "reason": str(exc)},
        )
        return None

    line = line.rstrip("\r\n")
    if not line:
        return None
    identifiers = line.split(",")[1:]
    if not any(identifiers):
        return None
    return identifiers


@dataclass
class LogRow:
    timestamp: datetime
    values: Dict[str, Optional[float]] = field(default_factory=dict)


@dataclass
class ColumnLog:
    identifiers: List[str]
    names: List[str]
    rows: List[LogRow] = field(default_factory=list)


def read_column_log(path: Path) -> ColumnLog:
    """Parse a log written by ``ColumnLogSink`` back into identifier/value rows."""
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.reader(handle)
        try:
            id_row = next(reader)
            name_row = next(reader)
        except StopIteration as exc:
            raise ValueError(f"Log file {path} is missing its two header lines.") from exc

        identifiers = id_row[1:]
        log = ColumnLog(identifiers=identifiers, names=name_row[1:])

        for line_number, row in enumerate(reader, start=3):
            if not row:
                continue
            try:
                timestamp = datetime.strptime(row[0], TIMESTAMP_FORMAT)
                cells = row[1:] + [""] * (len(identifiers) - len(row) + 1)
                values = {
                    identifier: float(cell) if cell else None
                    for identifier, cell in zip(identifiers, cells)
                }
            except ValueError as exc:
                logger.warning(
                    "Skipping row %s",
                    line_number,
                    extra={"file_path": str(path), "reason": str(exc)},
                )
                continue
            log.rows.append(LogRow(timestamp=timestamp, values=values))
    return log


class ColumnLogSink:
    """Appends one row per tick to ``<prefix>-<yyyy-MM-dd>.csv``.

    On the first tick of a day the sink either reattaches to that day's file
    by reading its identifier header or writes a fresh file from a full
    enumeration of the topology.
    """

    kind = SinkKind.column

    def __init__(self, directory: Path, prefix: str) -> None:
        self.directory = directory
        self.prefix = prefix
        self._day: Optional[date] = None
        self._path: Optional[Path] = None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def day(self) -> Optional[date]:
        return self._day

    async def emit(self, topology: SensorTopology, now: datetime) -> SinkOutcome:
        return self.write(topology, now)

    def write(self, topology: SensorTopology, now: datetime) -> SinkOutcome:
        path = self._path
        if path is None or self._day != now.date() or not path.exists():
            path = self._open_for_day(topology, now.date())
            if path is None:
                return SinkOutcome.io_error

        snapshot = topology.snapshot()
        line = self._format_row(snapshot, now)
        try:
            with path.open("a", encoding="utf-8", newline="") as handle:
                handle.write(line)
        except OSError as exc:
            logger.warning(
                "Failed to append log row",
                extra={"file_path": str(path), "reason": str(exc)},
            )
            return SinkOutcome.io_error
        return SinkOutcome.written

    def _open_for_day(self, topology: SensorTopology, day: date) -> Optional[Path]:
        """Attach to or create the file for `day`. Returns None when it cannot be created."""
        path = self.directory / log_file_name(self.prefix, day)
        self._day = day
        self._path = path

        identifiers = read_header_identifiers(path)
        if identifiers is not None:
            snapshot = topology.establish(identifiers)
            logger.info(
                "Reattached to existing log",
                extra={"file_path": str(path), "slot_count": len(snapshot)},
            )
            return path

        snapshot = topology.rebuild()
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(self._format_header(snapshot))
        except OSError as exc:
            logger.warning(
                "Failed to create log file",
                extra={"file_path": str(path), "reason": str(exc)},
            )
            self._day = None
            return None

        logger.info(
            "Created log file",
            extra={"file_path": str(path), "slot_count": len(snapshot)},
        )
        return path

    @staticmethod
    def _format_header(snapshot: TopologySnapshot) -> str:
        names = []
        for identifier, sensor in zip(snapshot.identifiers, snapshot.slots):
            names.append(f'"{sensor.name if sensor is not None else identifier}"')
        first = "," + ",".join(snapshot.identifiers)
        second = "Time," + ",".join(names)
        return f"{first}\n{second}\n"

    @staticmethod
    def _format_row(snapshot: TopologySnapshot, now: datetime) -> str:
        cells = [format_timestamp(now)]
        for sensor in snapshot.slots:
            cells.append(format_value(sensor.value) if sensor is not None else "")
        return ",".join(cells) + "\n"
