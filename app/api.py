"""HTTP route definitions for the logger status surface."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.schemas import (
    RemoteSinkConfig,
    SlotView,
    StatusResponse,
    TickResponse,
    TopologyResponse,
)
from datastore.remote_config import RemoteConfigStore, build_default_config_store
from services.logger_core import LoggerCore, build_default_logger

router = APIRouter()


def get_logger_core() -> LoggerCore:
    return build_default_logger()


def get_config_store() -> RemoteConfigStore:
    return build_default_config_store()


@router.post(
    "/tick",
    response_model=TickResponse,
    summary="Run one log tick now; skipped when the interval has not elapsed.",
)
async def run_tick(core: LoggerCore = Depends(get_logger_core)) -> TickResponse:
    result = await core.tick()
    return TickResponse.from_result(result)


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Active sink, interval and the last tick outcome.",
)
async def get_status(core: LoggerCore = Depends(get_logger_core)) -> StatusResponse:
    last = core.last_result
    return StatusResponse(
        sink=core.sink.kind,
        interval_seconds=core.gate.interval.total_seconds(),
        last_success=core.last_success,
        last_tick=TickResponse.from_result(last) if last is not None else None,
        slot_count=len(core.topology.snapshot()),
    )


@router.get(
    "/topology",
    response_model=TopologyResponse,
    summary="Current slot layout with live values.",
)
async def get_topology(core: LoggerCore = Depends(get_logger_core)) -> TopologyResponse:
    snapshot = core.topology.snapshot()
    slots = [
        SlotView(
            index=index,
            identifier=identifier,
            present=sensor is not None,
            name=sensor.name if sensor is not None else None,
            value=sensor.value if sensor is not None else None,
        )
        for index, (identifier, sensor) in enumerate(zip(snapshot.identifiers, snapshot.slots))
    ]
    return TopologyResponse(fixed=core.topology.is_fixed, slots=slots)


@router.get(
    "/remote-config",
    response_model=RemoteSinkConfig,
    summary="Effective remote sink configuration with the password masked.",
)
async def get_remote_config(
    store: RemoteConfigStore = Depends(get_config_store),
) -> RemoteSinkConfig:
    return store.load().masked()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
