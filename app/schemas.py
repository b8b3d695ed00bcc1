"""Pydantic schemas for the remote configuration document and the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.records import SinkKind, SinkOutcome, TickResult, TickStatus


class RemoteSinkConfig(BaseModel):
    """Persisted settings for the line-protocol endpoint."""

    url: str = "localhost"
    port: int = Field(default=8086, ge=1, le=65535)
    db: str = "openhwmon"
    username: str = ""
    password: str = ""

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def masked(self) -> "RemoteSinkConfig":
        if not self.password:
            return self.model_copy()
        return self.model_copy(update={"password": "***"})


class TickResponse(BaseModel):
    """Outcome of a single tick."""

    status: TickStatus
    timestamp: datetime
    outcome: Optional[SinkOutcome] = None

    @classmethod
    def from_result(cls, result: TickResult) -> "TickResponse":
        return cls(status=result.status, timestamp=result.timestamp, outcome=result.outcome)


class StatusResponse(BaseModel):
    sink: SinkKind
    interval_seconds: float = Field(..., gt=0)
    last_success: Optional[datetime] = None
    last_tick: Optional[TickResponse] = None
    slot_count: int = Field(..., ge=0)


class SlotView(BaseModel):
    """One column of the current slot layout."""

    index: int = Field(..., ge=0)
    identifier: str
    present: bool
    name: Optional[str] = None
    value: Optional[float] = None


class TopologyResponse(BaseModel):
    fixed: bool
    slots: List[SlotView] = Field(default_factory=list)
