"""Sources of the current time, real and simulated."""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


class Clock(ABC):
    """Something that tells the time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time in UTC."""


class RealTime(Clock):
    """The system clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FakeTime(Clock):
    """A clock that advances one whole second on every reading."""

    def __init__(self, now: datetime):
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self._now = now.astimezone(timezone.utc)

    def now(self) -> datetime:
        seconds = math.floor(self._now.timestamp()) + 1
        self._now = datetime.fromtimestamp(seconds, timezone.utc)
        return self._now


def new_fake_time_for_epoch() -> FakeTime:
    return FakeTime(datetime.fromtimestamp(0, timezone.utc))


def parse_time(value: str) -> datetime:
    """Parse an RFC 3339 timestamp and return it in UTC; raise ValueError if malformed."""
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"Could not parse time: {value!r}")
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micros = int((fraction or "").ljust(6, "0")[:6] or 0)
    if offset == "Z":
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    result = datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
    )
    return result.astimezone(timezone.utc)