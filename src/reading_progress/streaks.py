from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from reading_progress.db_constants import STREAK_MIN_DAYS


def _distinct_days(dates: Iterable[datetime | date]) -> list[date]:
    days = {d.date() if isinstance(d, datetime) else d for d in dates}
    return sorted(days)


def current_streak(dates: Iterable[datetime | date], today: date) -> int:
    """Consecutive reading days ending today, or yesterday if nothing was read yet today."""
    days = _distinct_days(dates)
    days = [d for d in days if d <= today]
    if not days:
        return 0
    if (today - days[-1]).days > 1:
        return 0

    streak = 0
    cursor = days[-1]
    for day in reversed(days):
        if day != cursor:
            break
        streak += 1
        cursor = day - timedelta(days=1)
    return streak


def longest_streak(dates: Iterable[datetime | date]) -> int:
    days = _distinct_days(dates)
    if not days:
        return 0
    longest = 1
    running = 1
    for prev, day in zip(days, days[1:]):
        if (day - prev).days == 1:
            running += 1
            longest = max(longest, running)
        else:
            running = 1
    return longest


def has_reading_streak(dates: Iterable[datetime | date], today: date) -> bool:
    return current_streak(dates, today) >= STREAK_MIN_DAYS
