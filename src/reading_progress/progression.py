from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from reading_progress.db import Database
from reading_progress.db_models import AccountProgress, Plant, PlantSpecies
from reading_progress.gamification import (
    SessionXpBreakdown,
    apply_plant_boost,
    book_completion_xp,
    level_from_xp,
    level_up_coins,
    plant_boost,
    session_xp_breakdown,
)
from reading_progress.plant_health import is_alive

logger = logging.getLogger(__name__)

PROGRESS_CACHE_TTL_SECONDS = 300


@dataclass(frozen=True)
class LevelUp:
    old_level: int
    new_level: int
    coins_awarded: int
    new_total_coins: int


@dataclass(frozen=True)
class ProgressionResult:
    xp_earned: int
    base_xp: int
    breakdown: SessionXpBreakdown | None
    plant_boost_percentage: Decimal
    boost_bonus_xp: int
    new_total_xp: int
    level_up: LevelUp | None


class ProgressCache:
    """Caller-owned cache of the account progress record.

    Entries expire after ``ttl_seconds``; anything that writes progress must call ``invalidate()``.
    """

    def __init__(self, db: Database, ttl_seconds: int = PROGRESS_CACHE_TTL_SECONDS) -> None:
        self.db = db
        self.ttl = timedelta(seconds=max(0, ttl_seconds))
        self._value: AccountProgress | None = None
        self._loaded_at: datetime | None = None

    def get(self, now: datetime) -> AccountProgress:
        if self._value is not None and self._loaded_at is not None and now - self._loaded_at < self.ttl:
            return self._value
        self._value = self.db.get_account_progress(now)
        self._loaded_at = now
        return self._value

    def invalidate(self) -> None:
        self._value = None
        self._loaded_at = None


def total_plant_boost(
    plants: Iterable[Plant],
    species_by_id: dict[int, PlantSpecies],
    now: datetime,
) -> Decimal:
    total = Decimal(0)
    for plant in plants:
        species = species_by_id.get(plant.species_id)
        if species is None or not is_alive(plant, species, now):
            continue
        total += plant_boost(plant.current_level, species.xp_boost_percentage, species.max_level)
    return total


def check_level_up(
    progress: AccountProgress,
    new_total_xp: int,
    tuning: dict[str, int] | None = None,
) -> LevelUp | None:
    old_level = level_from_xp(progress.total_xp)
    new_level = level_from_xp(new_total_xp)
    if new_level <= old_level:
        return None
    coins = level_up_coins(old_level, new_level, tuning)
    return LevelUp(
        old_level=old_level,
        new_level=new_level,
        coins_awarded=coins,
        new_total_coins=progress.coins + coins,
    )


def _current_boost(db: Database, now: datetime) -> Decimal:
    if not db.is_feature_enabled("plant_boost"):
        return Decimal(0)
    species_by_id = {s.id: s for s in db.list_species()}
    return total_plant_boost(db.list_plants(), species_by_id, now)


def _apply_award(
    db: Database,
    base_xp: int,
    breakdown: SessionXpBreakdown | None,
    now: datetime,
    tuning: dict[str, int],
    cache: ProgressCache | None,
) -> ProgressionResult:
    boost = _current_boost(db, now)
    earned = apply_plant_boost(base_xp, boost)

    # XP, level and coins are read and written in one transaction.
    before, after = db.apply_xp_award(earned, now, tuning)
    level_up = check_level_up(before, after.total_xp, tuning)
    if cache is not None:
        cache.invalidate()

    if level_up:
        logger.info(
            "level up old=%s new=%s coins_awarded=%s",
            level_up.old_level,
            level_up.new_level,
            level_up.coins_awarded,
        )
    return ProgressionResult(
        xp_earned=earned,
        base_xp=base_xp,
        breakdown=breakdown,
        plant_boost_percentage=boost,
        boost_bonus_xp=earned - base_xp,
        new_total_xp=after.total_xp,
        level_up=level_up,
    )


def award_session_xp(
    db: Database,
    minutes: int,
    pages_read: int | None,
    has_streak: bool,
    now: datetime,
    active_plant_id: int | None = None,
    cache: ProgressCache | None = None,
) -> ProgressionResult:
    """Award XP for a finished session.

    ``active_plant_id`` is informational: the boost always sums every living owned plant, the active
    one included. Reading-day credit is handled separately by the caller.
    """
    tuning = db.get_economy_tuning()
    if not db.is_feature_enabled("streak_bonus"):
        has_streak = False
    breakdown = session_xp_breakdown(minutes, pages_read, has_streak, tuning)
    result = _apply_award(db, breakdown.total, breakdown, now, tuning, cache)
    logger.info(
        "session xp awarded minutes=%s pages=%s base=%s earned=%s active_plant_id=%s",
        minutes,
        pages_read,
        result.base_xp,
        result.xp_earned,
        active_plant_id,
    )
    return result


def award_book_completion_xp(
    db: Database,
    now: datetime,
    active_plant_id: int | None = None,
    cache: ProgressCache | None = None,
) -> ProgressionResult:
    tuning = db.get_economy_tuning()
    result = _apply_award(db, book_completion_xp(tuning), None, now, tuning, cache)
    logger.info("book completion xp awarded earned=%s active_plant_id=%s", result.xp_earned, active_plant_id)
    return result
