from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


DEFAULT_TZ = "UTC"


def now_local(tz_name: str = DEFAULT_TZ) -> datetime:
    return datetime.now(tz=ZoneInfo(tz_name))


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def goal_window(start: date, end: date, tz: timezone | ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """Half-open timestamp range covering every instant of the inclusive date range."""
    window_start = datetime.combine(start, time.min, tzinfo=tz)
    window_end = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz)
    return window_start, window_end


def in_goal_window(ts: datetime, start: date, end: date) -> bool:
    window_start, window_end = goal_window(start, end, ts.tzinfo)
    return window_start <= ts < window_end


def elapsed_days(since: datetime, now: datetime) -> float:
    return (now - since).total_seconds() / 86400


def elapsed_hours(since: datetime, now: datetime) -> float:
    return (now - since).total_seconds() / 3600
