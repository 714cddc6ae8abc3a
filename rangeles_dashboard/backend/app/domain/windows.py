# backend/app/domain/windows.py
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional


def utc_today(now: datetime) -> date:
    """Calendar day of `now` in UTC. Naive datetimes are taken as UTC."""
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(timezone.utc).date()


def parse_timestamp(v: Any) -> Optional[datetime]:
    """
    Parse an upstream timestamp into an aware UTC datetime.

    Accepts datetime/date objects and ISO-8601 strings (including the trailing
    "Z" the property API emits). Anything else, numbers included, -> None.
    """
    if v is None:
        return None
    if isinstance(v, datetime):
        dt = v
    elif isinstance(v, date):
        dt = datetime(v.year, v.month, v.day)
    elif isinstance(v, str):
        s = v.strip()
        if not s:
            return None
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def last_n_days_window(now: datetime, days: int = 30) -> tuple[date, date]:
    """
    Inclusive [today - days, today] window in UTC calendar days.
    Time of day is discarded on both ends.
    """
    end = utc_today(now)
    start = end - timedelta(days=int(days))
    return start, end


def in_window(ts: datetime, window: tuple[date, date]) -> bool:
    start, end = window
    return start <= utc_today(ts) <= end
