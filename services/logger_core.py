"""Tick orchestration: refresh topology, gate, emit, record."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from datastore.remote_config import build_default_config_store
from models.hardware import Computer
from models.records import SinkKind, SinkOutcome, TickResult, TickStatus
from services.rate_gate import RateGate
from services.remote_sink import RemoteLineSink
from services.topology import SensorTopology
from settings import Settings, get_settings
from storage.column_log import ColumnLogSink
from storage.fallback_log import FallbackLog

logger = logging.getLogger(__name__)


# every sink exposes `kind` and `async emit(topology, now) -> SinkOutcome`
AnySink = Union[ColumnLogSink, RemoteLineSink]


class LoggerCore:
    """Runs one tick at a time against a single sink chosen at construction."""

    def __init__(self, topology: SensorTopology, sink: AnySink, gate: RateGate) -> None:
        self.topology = topology
        self.sink = sink
        self.gate = gate
        self.last_result: Optional[TickResult] = None

    @property
    def last_success(self) -> Optional[datetime]:
        return self.gate.last_success

    async def tick(self, now: Optional[datetime] = None) -> TickResult:
        """Process one tick. Never raises; failures end up in the sink's own files."""
        now = now or datetime.now()
        self.topology.refresh()

        if not self.gate.should_proceed(now):
            return TickResult(status=TickStatus.skipped, timestamp=now)

        try:
            outcome = await self.sink.emit(self.topology, now)
        except Exception:  # noqa: BLE001 - a tick must never crash the host
            logger.exception("Sink raised during emit", extra={"sink": self.sink.kind.value})
            outcome = SinkOutcome.failed

        self.gate.record(now)
        result = TickResult(status=TickStatus.emitted, timestamp=now, outcome=outcome)
        self.last_result = result
        if outcome not in (SinkOutcome.written, SinkOutcome.delivered):
            logger.info(
                "Tick completed with degraded outcome",
                extra={"sink": self.sink.kind.value, "outcome": outcome.value},
            )
        return result

    async def aclose(self) -> None:
        if isinstance(self.sink, RemoteLineSink):
            await self.sink.aclose()


def build_sink(kind: SinkKind, settings: Settings) -> AnySink:
    if kind is SinkKind.remote:
        return RemoteLineSink(
            config_store=build_default_config_store(),
            fallback=FallbackLog(Path(settings.fallback_path)),
            host_name=settings.host_name,
            timeout=settings.remote_timeout,
        )
    return ColumnLogSink(directory=Path(settings.log_dir), prefix=settings.file_prefix)


@lru_cache
def build_default_computer() -> Computer:
    """Root hardware list the host populates with its devices."""
    return Computer()


@lru_cache
def build_default_logger(sink: Optional[SinkKind] = None) -> LoggerCore:
    """Factory that wires the logger from environment settings."""
    settings = get_settings()
    topology = SensorTopology(build_default_computer())
    gate = RateGate(interval=timedelta(seconds=settings.interval_seconds))
    return LoggerCore(topology=topology, sink=build_sink(sink or settings.sink, settings), gate=gate)
