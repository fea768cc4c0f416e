from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Server time source; message timestamps and activity windows read from it."""

    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def window_start(clock: Clock, window: timedelta) -> datetime:
    """Start of the trailing activity window ending now."""
    return clock.now() - window
