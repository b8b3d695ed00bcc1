from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional

from pydantic import ValidationError

from app.schemas import RemoteSinkConfig
from settings import get_settings

logger = logging.getLogger(__name__)


class RemoteConfigStore:
    """JSON document holding the remote sink endpoint, re-read on every load.

    A missing document is created with defaults. A document that cannot be
    parsed is left alone and defaults are returned for that call only.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = Lock()

    def load(self) -> RemoteSinkConfig:
        with self._lock:
            if not self.path.exists():
                config = RemoteSinkConfig()
                self._persist(config)
                return config

            try:
                raw = self.path.read_text(encoding="utf-8")
                return RemoteSinkConfig.model_validate(json.loads(raw))
            except (OSError, ValueError, ValidationError) as exc:
                logger.warning(
                    "Remote sink configuration unreadable; using defaults",
                    extra={"file_path": str(self.path), "reason": type(exc).__name__},
                )
                return RemoteSinkConfig()

    def save(self, config: RemoteSinkConfig) -> None:
        with self._lock:
            self._persist(config)

    def _persist(self, config: RemoteSinkConfig) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(config.model_dump(mode="json"), indent=2, sort_keys=True),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.warning(
                "Unable to write remote sink configuration",
                extra={"file_path": str(self.path), "reason": str(exc)},
            )


@lru_cache
def build_default_config_store(path: Optional[str] = None) -> RemoteConfigStore:
    settings = get_settings()
    config_path = settings.remote_config_path if path is None else path
    return RemoteConfigStore(path=Path(config_path))
