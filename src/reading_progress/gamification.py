from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal

from reading_progress.db_constants import ACCOUNT_MAX_LEVEL

DEFAULT_ECONOMY_TUNING = {
    "xp_per_minute": 1,
    "xp_per_page": 2,
    "long_session_minutes": 60,
    "long_session_bonus_xp": 50,
    "streak_bonus_xp": 20,
    "book_completion_xp": 100,
    "coins_per_level": 50,
    "starting_coins": 100,
}

ACCOUNT_XP_SCALE = 100
PLANT_XP_BASE = 100
PLANT_XP_GROWTH = 1.5
PLANT_DEFAULT_MAX_LEVEL = 100


@dataclass(frozen=True)
class LevelProgress:
    level: int
    current_level_xp: int
    next_level_xp: int
    progress_percentage: int
    remaining_to_next: int


@dataclass(frozen=True)
class SessionXpBreakdown:
    minutes_xp: int
    pages_xp: int
    long_session_xp: int
    streak_xp: int

    @property
    def total(self) -> int:
        return self.minutes_xp + self.pages_xp + self.long_session_xp + self.streak_xp


def _effective_tuning(tuning: dict[str, int] | None = None) -> dict[str, int]:
    if not tuning:
        return dict(DEFAULT_ECONOMY_TUNING)
    merged = dict(DEFAULT_ECONOMY_TUNING)
    merged.update(tuning)
    return merged


def _clamped_percentage(into_level: int, needed: int) -> int:
    if needed == 0:
        return 100
    return max(0, min(100, (into_level * 100) // needed))


# Account curve: completing level L costs 100 * L^2.


def xp_for_level(level: int) -> int:
    if level < 1:
        return 0
    return ACCOUNT_XP_SCALE * level * level


def total_xp_for_level(level: int) -> int:
    """Cumulative XP at which ``level`` is reached (level 1 is reached at 0)."""
    capped = min(level, ACCOUNT_MAX_LEVEL)
    total = 0
    for lvl in range(1, capped):
        total += xp_for_level(lvl)
    return total


def level_from_xp(total_xp: int) -> int:
    xp = max(0, total_xp)
    level = 1
    accumulated = 0
    while level < ACCOUNT_MAX_LEVEL:
        needed = xp_for_level(level)
        if accumulated + needed > xp:
            break
        accumulated += needed
        level += 1
    return level


def xp_to_next_level(total_xp: int) -> int:
    level = level_from_xp(total_xp)
    if level >= ACCOUNT_MAX_LEVEL:
        return 0
    return max(total_xp_for_level(level + 1) - max(0, total_xp), 0)


def level_progress(total_xp: int) -> LevelProgress:
    xp = max(0, total_xp)
    level = level_from_xp(xp)
    current_level_xp = xp - total_xp_for_level(level)
    if level >= ACCOUNT_MAX_LEVEL:
        return LevelProgress(
            level=level,
            current_level_xp=current_level_xp,
            next_level_xp=0,
            progress_percentage=100,
            remaining_to_next=0,
        )
    span = xp_for_level(level)
    return LevelProgress(
        level=level,
        current_level_xp=current_level_xp,
        next_level_xp=span,
        progress_percentage=_clamped_percentage(current_level_xp, span),
        remaining_to_next=max(span - current_level_xp, 0),
    )


def level_up_coins(old_level: int, new_level: int, tuning: dict[str, int] | None = None) -> int:
    cfg = _effective_tuning(tuning)
    per_level = max(0, int(cfg["coins_per_level"]))
    return sum(lvl * per_level for lvl in range(old_level + 1, new_level + 1))


# Plant curve: reaching level L costs floor(100 * 1.5^(L-1) / growth_rate).


def _check_growth_rate(growth_rate: float) -> None:
    if growth_rate <= 0:
        raise ValueError(f"growth_rate must be positive, got {growth_rate}")


def plant_xp_for_level(level: int, growth_rate: float = 1.0) -> int:
    _check_growth_rate(growth_rate)
    if level <= 1:
        return 0
    return math.floor(PLANT_XP_BASE * PLANT_XP_GROWTH ** (level - 1) / growth_rate)


def plant_total_xp_for_level(level: int, growth_rate: float = 1.0) -> int:
    total = 0
    for lvl in range(2, level + 1):
        total += plant_xp_for_level(lvl, growth_rate)
    return total


def plant_level_from_xp(total_xp: int, growth_rate: float = 1.0, max_level: int = PLANT_DEFAULT_MAX_LEVEL) -> int:
    level = 1
    accumulated = 0
    while level < max_level:
        needed = plant_xp_for_level(level + 1, growth_rate)
        if accumulated + needed > total_xp:
            break
        accumulated += needed
        level += 1
    return level


def plant_xp_to_next_level(
    current_level: int,
    current_xp: int,
    growth_rate: float = 1.0,
    max_level: int = PLANT_DEFAULT_MAX_LEVEL,
) -> int:
    if current_level >= max_level:
        return 0
    floor_xp = plant_total_xp_for_level(current_level, growth_rate)
    next_xp = plant_total_xp_for_level(current_level + 1, growth_rate)
    return max((next_xp - floor_xp) - (current_xp - floor_xp), 0)


def plant_xp_percentage(current_level: int, current_xp: int, growth_rate: float = 1.0) -> int:
    floor_xp = plant_total_xp_for_level(current_level, growth_rate)
    next_xp = plant_total_xp_for_level(current_level + 1, growth_rate)
    return _clamped_percentage(current_xp - floor_xp, next_xp - floor_xp)


def plant_can_level_up(current_level: int, current_xp: int, growth_rate: float, max_level: int) -> bool:
    if current_level >= max_level:
        return False
    return current_xp >= plant_total_xp_for_level(current_level + 1, growth_rate)


# Session and book XP.


def session_xp_breakdown(
    minutes: int,
    pages_read: int | None,
    has_streak: bool,
    tuning: dict[str, int] | None = None,
) -> SessionXpBreakdown:
    cfg = _effective_tuning(tuning)
    mins = max(0, minutes)
    pages = max(0, pages_read or 0)
    long_threshold = max(1, int(cfg["long_session_minutes"]))
    return SessionXpBreakdown(
        minutes_xp=mins * max(0, int(cfg["xp_per_minute"])),
        pages_xp=pages * max(0, int(cfg["xp_per_page"])),
        long_session_xp=max(0, int(cfg["long_session_bonus_xp"])) if mins >= long_threshold else 0,
        streak_xp=max(0, int(cfg["streak_bonus_xp"])) if has_streak else 0,
    )


def book_completion_xp(tuning: dict[str, int] | None = None) -> int:
    return max(0, int(_effective_tuning(tuning)["book_completion_xp"]))


def plant_boost(current_level: int, species_boost: Decimal, max_level: int) -> Decimal:
    # e.g. 5% base at level 5 of 10 -> 0.05 + 5 * 0.005 = 0.075
    if max_level <= 0:
        return species_boost
    return species_boost + current_level * (species_boost / max_level)


def apply_plant_boost(base_xp: int, boost: Decimal) -> int:
    boosted = Decimal(base_xp) * (Decimal(1) + boost)
    return int(boosted.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))
