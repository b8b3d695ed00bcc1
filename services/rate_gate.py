"""Interval gating for log ticks."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

# absorbs scheduler jitter so a tick arriving slightly early still counts
TOLERANCE = timedelta(milliseconds=500)


def should_proceed(
    now: datetime,
    last_success: Optional[datetime],
    interval: timedelta,
    tolerance: timedelta = TOLERANCE,
) -> bool:
    if last_success is None:
        return True
    return now >= last_success + interval - tolerance


class RateGate:

    def __init__(self, interval: timedelta, tolerance: timedelta = TOLERANCE) -> None:
        self.interval = interval
        self.tolerance = tolerance
        self.last_success: Optional[datetime] = None

    def should_proceed(self, now: datetime) -> bool:
        return should_proceed(now, self.last_success, self.interval, self.tolerance)

    def record(self, now: datetime) -> None:
        self.last_success = now
