from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True)
class AccountProgress:
    total_xp: int
    level: int
    coins: int
    plants_purchased: int
    updated_at: datetime


@dataclass(frozen=True)
class Genre:
    id: int
    name: str


@dataclass(frozen=True)
class Book:
    id: int
    title: str
    author: str | None
    status: str
    page_count: int | None
    date_started: datetime | None
    date_completed: datetime | None
    created_at: datetime


@dataclass(frozen=True)
class BookGenre:
    book_id: int
    genre_id: int


@dataclass(frozen=True)
class ReadingSession:
    id: int
    book_id: int
    started_at: datetime
    ended_at: datetime | None
    minutes: int
    pages_read: int | None
    xp_earned: int


@dataclass(frozen=True)
class PlantSpecies:
    id: int
    name: str
    description: str
    max_level: int
    water_interval_days: int
    growth_rate: float
    xp_boost_percentage: Decimal
    base_cost: int
    unlock_level: int
    is_available: bool


@dataclass(frozen=True)
class Plant:
    id: int
    species_id: int
    name: str
    current_level: int
    reading_days_count: int
    last_reading_day_recorded: date | None
    status: str
    last_watered: datetime
    planted_at: datetime
    is_active: bool


@dataclass(frozen=True)
class ReadingGoal:
    id: int
    title: str
    goal_type: str
    target: int
    current: int
    start_date: date
    end_date: date
    is_completed: bool
    completed_at: datetime | None
    created_at: datetime


@dataclass(frozen=True)
class GoalExclusion:
    goal_id: int
    book_id: int


@dataclass(frozen=True)
class GoalGenreFilter:
    goal_id: int
    genre_id: int
