"""
Interval overlap engine.

Intervals are half-open ``[start, end)`` and anchored to a calendar date, so
two sessions that touch (one ends at 10:00, the next starts at 10:00) do not
conflict. Times are stored as text in the database and normalized here to
naive day-local ``datetime`` values before any comparison.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable

from app.core.errors import MalformedTimeData

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")

# semana de referência (sábado 2024-01-06 .. quinta 2024-01-11) para
# comparar horários semanais sem data
_REFERENCE_SATURDAY = date(2024, 1, 6)
WEEK_DAYS = ("Saturday", "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
_DAY_ALIASES = {d[:3].lower(): d for d in WEEK_DAYS}
_DAY_ALIASES.update({d.lower(): d for d in WEEK_DAYS})


def parse_time(value: str | None) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` (24h); anything else is malformed."""
    if not isinstance(value, str):
        raise MalformedTimeData(value, "time is not text")
    m = _TIME_RE.match(value)
    if not m:
        raise MalformedTimeData(value)
    h, mi, s = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if h > 23 or mi > 59 or s > 59:
        raise MalformedTimeData(value, "time out of range")
    return time(h, mi, s)


def format_time(value: str | time) -> str:
    t = parse_time(value) if isinstance(value, str) else value
    return t.strftime("%H:%M")


def normalize_day(day: str | None) -> str | None:
    if not day:
        return None
    return _DAY_ALIASES.get(day.strip().lower())


def anchor_weekday(day: str) -> date:
    """Date of ``day`` inside the fixed reference week."""
    canonical = normalize_day(day)
    if canonical is None:
        raise MalformedTimeData(day, "unknown weekday")
    return _REFERENCE_SATURDAY + timedelta(days=WEEK_DAYS.index(canonical))


@dataclass(frozen=True)
class Interval:
    on: date
    start: datetime
    end: datetime

    @classmethod
    def from_strings(cls, on: date, start: str | None, end: str | None) -> "Interval":
        start_at = datetime.combine(on, parse_time(start))
        end_at = datetime.combine(on, parse_time(end))
        if end_at <= start_at:
            raise MalformedTimeData(f"{start}-{end}", "interval ends before it starts")
        return cls(on=on, start=start_at, end=end_at)

    @classmethod
    def weekly(cls, day: str, start: str | None, end: str | None) -> "Interval":
        return cls.from_strings(anchor_weekday(day), start, end)


def overlaps(a: Interval, b: Interval) -> bool:
    if a.on != b.on:
        return False
    return a.start < b.end and a.end > b.start


def conflicts_with_any(candidate: Interval, busy: Iterable[Interval]) -> bool:
    return any(overlaps(candidate, other) for other in busy)
