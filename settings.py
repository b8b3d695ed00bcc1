from __future__ import annotations

import os
import socket
from dataclasses import dataclass
from functools import lru_cache

from models.records import SinkKind


_SINK_ENV = "HWLOG_SINK"
_INTERVAL_ENV = "HWLOG_INTERVAL_SECONDS"
_LOG_DIR_ENV = "HWLOG_LOG_DIR"
_FILE_PREFIX_ENV = "HWLOG_FILE_PREFIX"
_FALLBACK_PATH_ENV = "HWLOG_FALLBACK_PATH"
_REMOTE_CONFIG_PATH_ENV = "HWLOG_REMOTE_CONFIG_PATH"
_REMOTE_TIMEOUT_ENV = "HWLOG_REMOTE_TIMEOUT"
_HOST_NAME_ENV = "HWLOG_HOST_NAME"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    sink: SinkKind
    interval_seconds: float
    log_dir: str
    file_prefix: str
    fallback_path: str
    remote_config_path: str
    remote_timeout: float
    host_name: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_sink_kind(default: SinkKind) -> SinkKind:
    value = os.getenv(_SINK_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    try:
        return SinkKind(candidate)
    except ValueError:
        return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        sink=_read_sink_kind(SinkKind.column),
        interval_seconds=_read_positive_float(_INTERVAL_ENV, 1.0),
        log_dir=_read_str_env(_LOG_DIR_ENV, "./logs"),
        file_prefix=_read_str_env(_FILE_PREFIX_ENV, "OpenHardwareMonitorLog"),
        fallback_path=_read_str_env(_FALLBACK_PATH_ENV, "./log.txt"),
        remote_config_path=_read_str_env(_REMOTE_CONFIG_PATH_ENV, "./remote_config.json"),
        remote_timeout=_read_positive_float(_REMOTE_TIMEOUT_ENV, 10.0),
        host_name=_read_str_env(_HOST_NAME_ENV, socket.gethostname()),
        log_level=_read_log_level("INFO"),
    )
