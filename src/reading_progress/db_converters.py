from __future__ import annotations

import sqlite3
from datetime import date, datetime
from decimal import Decimal

from reading_progress.db_models import (
    AccountProgress,
    Book,
    BookGenre,
    Genre,
    GoalExclusion,
    GoalGenreFilter,
    Plant,
    PlantSpecies,
    ReadingGoal,
    ReadingSession,
)


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_progress(row: sqlite3.Row) -> AccountProgress:
    return AccountProgress(
        total_xp=int(row["total_xp"]),
        level=int(row["level"]),
        coins=int(row["coins"]),
        plants_purchased=int(row["plants_purchased"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_genre(row: sqlite3.Row) -> Genre:
    return Genre(id=int(row["id"]), name=str(row["name"]))


def _row_to_book(row: sqlite3.Row) -> Book:
    return Book(
        id=int(row["id"]),
        title=str(row["title"]),
        author=row["author"],
        status=str(row["status"]),
        page_count=int(row["page_count"]) if row["page_count"] is not None else None,
        date_started=_dt(row["date_started"]),
        date_completed=_dt(row["date_completed"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_book_genre(row: sqlite3.Row) -> BookGenre:
    return BookGenre(book_id=int(row["book_id"]), genre_id=int(row["genre_id"]))


def _row_to_session(row: sqlite3.Row) -> ReadingSession:
    return ReadingSession(
        id=int(row["id"]),
        book_id=int(row["book_id"]),
        started_at=datetime.fromisoformat(row["started_at"]),
        ended_at=_dt(row["ended_at"]),
        minutes=int(row["minutes"]),
        pages_read=int(row["pages_read"]) if row["pages_read"] is not None else None,
        xp_earned=int(row["xp_earned"]),
    )


def _row_to_species(row: sqlite3.Row) -> PlantSpecies:
    return PlantSpecies(
        id=int(row["id"]),
        name=str(row["name"]),
        description=str(row["description"] or ""),
        max_level=int(row["max_level"]),
        water_interval_days=int(row["water_interval_days"]),
        growth_rate=float(row["growth_rate"]),
        xp_boost_percentage=Decimal(str(row["xp_boost_percentage"])),
        base_cost=int(row["base_cost"]),
        unlock_level=int(row["unlock_level"]),
        is_available=bool(row["is_available"]),
    )


def _row_to_plant(row: sqlite3.Row) -> Plant:
    return Plant(
        id=int(row["id"]),
        species_id=int(row["species_id"]),
        name=str(row["name"]),
        current_level=int(row["current_level"]),
        reading_days_count=int(row["reading_days_count"]),
        last_reading_day_recorded=(
            date.fromisoformat(row["last_reading_day_recorded"]) if row["last_reading_day_recorded"] else None
        ),
        status=str(row["status"]),
        last_watered=datetime.fromisoformat(row["last_watered"]),
        planted_at=datetime.fromisoformat(row["planted_at"]),
        is_active=bool(row["is_active"]),
    )


def _row_to_goal(row: sqlite3.Row) -> ReadingGoal:
    return ReadingGoal(
        id=int(row["id"]),
        title=str(row["title"]),
        goal_type=str(row["goal_type"]),
        target=int(row["target"]),
        current=int(row["current"]),
        start_date=date.fromisoformat(row["start_date"]),
        end_date=date.fromisoformat(row["end_date"]),
        is_completed=bool(row["is_completed"]),
        completed_at=_dt(row["completed_at"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_exclusion(row: sqlite3.Row) -> GoalExclusion:
    return GoalExclusion(goal_id=int(row["goal_id"]), book_id=int(row["book_id"]))


def _row_to_goal_genre(row: sqlite3.Row) -> GoalGenreFilter:
    return GoalGenreFilter(goal_id=int(row["goal_id"]), genre_id=int(row["genre_id"]))
