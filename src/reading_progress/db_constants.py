from __future__ import annotations

from decimal import Decimal
from typing import Any

BOOK_PLANNED = "planned"
BOOK_READING = "reading"
BOOK_COMPLETED = "completed"
BOOK_ABANDONED = "abandoned"
BOOK_WISHLIST = "wishlist"
BOOK_STATUSES = (BOOK_PLANNED, BOOK_READING, BOOK_COMPLETED, BOOK_ABANDONED, BOOK_WISHLIST)

PLANT_HEALTHY = "healthy"
PLANT_THIRSTY = "thirsty"
PLANT_WILTING = "wilting"
PLANT_DEAD = "dead"
PLANT_STATUSES = (PLANT_HEALTHY, PLANT_THIRSTY, PLANT_WILTING, PLANT_DEAD)

GOAL_BOOKS = "books"
GOAL_PAGES = "pages"
GOAL_MINUTES = "minutes"
GOAL_TYPES = (GOAL_BOOKS, GOAL_PAGES, GOAL_MINUTES)

READING_DAY_MIN_MINUTES = 15
STREAK_MIN_DAYS = 2
ACCOUNT_MAX_LEVEL = 1000

APP_CONFIG_DEFAULTS: dict[str, Any] = {
    "feature.plant_boost_enabled": True,
    "feature.streak_bonus_enabled": True,
    "job.plant_statuses_enabled": True,
    "job.sync_goals_enabled": True,
    "job.repair_level_enabled": True,
    "job.load_tuning_enabled": True,
    "economy.xp_per_minute": 1,
    "economy.xp_per_page": 2,
    "economy.long_session_minutes": 60,
    "economy.long_session_bonus_xp": 50,
    "economy.streak_bonus_xp": 20,
    "economy.book_completion_xp": 100,
    "economy.coins_per_level": 50,
    "economy.starting_coins": 100,
}

JOB_CONFIG_KEYS = {
    "plant_statuses": "job.plant_statuses_enabled",
    "sync_goals": "job.sync_goals_enabled",
    "repair_level": "job.repair_level_enabled",
    "load_tuning": "job.load_tuning_enabled",
}

# (name, description, max_level, water_interval_days, growth_rate, xp_boost, base_cost, unlock_level)
PLANT_SPECIES_SEED: list[tuple[str, str, int, int, float, Decimal, int, int]] = [
    ("Starter Sprout", "A simple plant for beginners. Grows quickly!", 10, 3, 1.2, Decimal("0.05"), 500, 1),
    ("Story Seedling", "A growing seedling nurtured by stories.", 11, 4, 1.1, Decimal("0.06"), 600, 3),
    ("Bookworm Fern", "A lush fern for dedicated readers.", 12, 4, 1.0, Decimal("0.08"), 750, 10),
    ("Literary Lily", "A beautiful lily that blooms with every chapter.", 14, 5, 0.9, Decimal("0.09"), 850, 14),
    ("Reading Cactus", "Low maintenance, high rewards.", 15, 7, 0.8, Decimal("0.10"), 1000, 20),
    ("Wisdom Willow", "A wise tree that stands the test of time.", 18, 8, 0.7, Decimal("0.12"), 1500, 28),
    ("Ancient Knowledge Bonsai", "An ancient bonsai radiating knowledge.", 20, 10, 0.6, Decimal("0.15"), 2500, 31),
    ("Mystic Tome Tree", "A legendary tree with leaves like parchment.", 25, 14, 0.5, Decimal("0.20"), 5000, 32),
]
