from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, datetime

from reading_progress.db_constants import READING_DAY_MIN_MINUTES
from reading_progress.db_models import Plant, PlantSpecies
from reading_progress.plant_health import is_alive

DAYS_PER_LEVEL = 3.0


@dataclass(frozen=True)
class ReadingDayOutcome:
    plant: Plant
    credited: bool
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


def level_from_reading_days(reading_days: int, growth_rate: float, max_level: int) -> int:
    if reading_days <= 0:
        return 1
    level = math.floor(reading_days * growth_rate / DAYS_PER_LEVEL) + 1
    return min(level, max_level)


def reading_days_for_level(level: int, growth_rate: float) -> int:
    if level <= 1:
        return 0
    return math.ceil((level - 1) * DAYS_PER_LEVEL / growth_rate)


def reading_days_to_next_level(current_level: int, reading_days: int, growth_rate: float, max_level: int) -> int:
    if current_level >= max_level:
        return 0
    return max(0, reading_days_for_level(current_level + 1, growth_rate) - reading_days)


def reading_days_percentage(current_level: int, reading_days: int, growth_rate: float, max_level: int) -> int:
    if current_level >= max_level:
        return 100
    days_for_current = reading_days_for_level(current_level, growth_rate)
    days_needed = reading_days_for_level(current_level + 1, growth_rate) - days_for_current
    if days_needed == 0:
        return 100
    return max(0, min(100, ((reading_days - days_for_current) * 100) // days_needed))


def _as_date(value: datetime | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def record_reading_day(
    plant: Plant,
    species: PlantSpecies,
    session_date: datetime | date,
    minutes: int,
    now: datetime,
) -> ReadingDayOutcome:
    """Credit one reading day to ``plant`` and re-derive its level.

    Sessions shorter than the minimum, dead plants and dates already credited
    leave the plant untouched. The level never goes down.
    """
    unchanged = ReadingDayOutcome(plant, False, plant.current_level, plant.current_level)
    if minutes < READING_DAY_MIN_MINUTES:
        return unchanged
    if not is_alive(plant, species, now):
        return unchanged

    day = _as_date(session_date)
    if plant.last_reading_day_recorded is not None and plant.last_reading_day_recorded == day:
        return unchanged

    days = plant.reading_days_count + 1
    candidate = level_from_reading_days(days, species.growth_rate, species.max_level)
    updated = replace(
        plant,
        reading_days_count=days,
        last_reading_day_recorded=day,
        current_level=max(plant.current_level, candidate),
    )
    return ReadingDayOutcome(updated, True, plant.current_level, updated.current_level)
