from __future__ import annotations

from datetime import datetime

from reading_progress.db_constants import PLANT_DEAD, PLANT_HEALTHY, PLANT_THIRSTY, PLANT_WILTING
from reading_progress.db_models import Plant, PlantSpecies
from reading_progress.time_utils import elapsed_days, elapsed_hours

WATER_WARNING_HOURS = 6


def _check_interval(interval_days: int) -> None:
    if interval_days <= 0:
        raise ValueError(f"interval_days must be positive, got {interval_days}")


def plant_status(last_watered: datetime, interval_days: int, now: datetime) -> str:
    """Map time since the last watering onto healthy/thirsty/wilting/dead.

    A plant turns thirsty after one missed interval, wilts at one and a half
    intervals and dies once two full intervals have passed.
    """
    _check_interval(interval_days)
    days = elapsed_days(last_watered, now)
    if days < interval_days:
        return PLANT_HEALTHY
    if days < interval_days * 1.5:
        return PLANT_THIRSTY
    if days < interval_days * 2:
        return PLANT_WILTING
    return PLANT_DEAD


def needs_watering_soon(last_watered: datetime, interval_days: int, now: datetime) -> bool:
    _check_interval(interval_days)
    hours = elapsed_hours(last_watered, now)
    return hours >= interval_days * 24 - WATER_WARNING_HOURS


def days_until_water_needed(last_watered: datetime, interval_days: int, now: datetime) -> float:
    _check_interval(interval_days)
    return max(0.0, interval_days - elapsed_days(last_watered, now))


def effective_status(plant: Plant, species: PlantSpecies, now: datetime) -> str:
    # Death is terminal: watering can no longer revive a plant stored as dead.
    if plant.status == PLANT_DEAD:
        return PLANT_DEAD
    return plant_status(plant.last_watered, species.water_interval_days, now)


def is_alive(plant: Plant, species: PlantSpecies, now: datetime) -> bool:
    return effective_status(plant, species, now) != PLANT_DEAD
