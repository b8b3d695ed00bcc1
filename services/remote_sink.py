"""Pushes line-protocol snapshots to a time-series database over HTTP."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional, Tuple

import httpx

from app.schemas import RemoteSinkConfig
from datastore.remote_config import RemoteConfigStore
from models.records import SinkKind, SinkOutcome
from services.line_protocol import sanitize_host_name, serialize
from services.topology import SensorTopology
from storage.fallback_log import FallbackLog

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/plain; charset=utf-8"


def build_endpoint(config: RemoteSinkConfig, host: str) -> Tuple[str, Dict[str, str]]:
    """Return the ``/write`` URL and its query parameters."""
    base = config.url.strip().rstrip("/")
    if "://" not in base:
        base = f"http://{base}"
    params = {"db": config.db, "source": host}
    if config.has_credentials:
        params["u"] = config.username
        params["p"] = config.password
    return f"{base}:{config.port}/write", params


class RemoteLineSink:
    """Serializes a fresh enumeration on every tick and posts it once.

    Client-error responses keep the payload in the fallback file. Every other
    failure (server errors, network errors, timeouts) writes an ``Error=`` line
    followed by the payload.
    """

    kind = SinkKind.remote

    def __init__(
        self,
        config_store: RemoteConfigStore,
        fallback: FallbackLog,
        host_name: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config_store = config_store
        self.fallback = fallback
        self.host = sanitize_host_name(host_name)
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def emit(self, topology: SensorTopology, now: datetime) -> SinkOutcome:
        try:
            config = self.config_store.load()
        except Exception as exc:  # noqa: BLE001 - a broken store still gets one attempt at the defaults
            logger.warning(
                "Remote sink configuration failed to load; using defaults",
                extra={"reason": repr(exc)},
            )
            config = RemoteSinkConfig()

        try:
            roots = topology.computer.roots()
            mainboard = roots[0].name if roots else ""
            payload = serialize(self.host, topology.enumerate(), mainboard_name=mainboard)
        except Exception as exc:  # noqa: BLE001 - nothing to post, keep the diagnostic
            self._record_failure("", f"serialization failed: {exc!r}", "")
            return SinkOutcome.failed
        return await self.send(config, payload)

    async def send(self, config: RemoteSinkConfig, payload: str) -> SinkOutcome:
        endpoint, params = build_endpoint(config, self.host)
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    endpoint,
                    params=params,
                    content=payload.encode("utf-8"),
                    headers={"Content-Type": CONTENT_TYPE},
                ),
                timeout=self.timeout,
            )
            if response.is_client_error:
                logger.warning(
                    "Remote store rejected payload",
                    extra={"endpoint": endpoint, "status_code": response.status_code},
                )
                self.fallback.append_payload(payload)
                return SinkOutcome.rejected
            response.raise_for_status()
        except asyncio.TimeoutError:
            self._record_failure(endpoint, f"timed out after {self.timeout}s", payload)
            return SinkOutcome.failed
        except Exception as exc:  # noqa: BLE001 - any transport failure takes the fallback path
            self._record_failure(endpoint, repr(exc), payload)
            return SinkOutcome.failed

        logger.debug("Payload delivered", extra={"endpoint": endpoint})
        return SinkOutcome.delivered

    def _record_failure(self, endpoint: str, detail: str, payload: str) -> None:
        logger.warning(
            "Remote write failed",
            extra={"endpoint": endpoint, "reason": detail},
        )
        self.fallback.append_error(detail, payload)
