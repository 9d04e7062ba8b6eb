from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from reading_progress.db import Database
from reading_progress.db_constants import BOOK_COMPLETED, BOOK_PLANNED, BOOK_READING, PLANT_DEAD
from reading_progress.db_models import AccountProgress, Book, Plant, ReadingSession
from reading_progress.errors import (
    DeadPlantError,
    InvalidSessionError,
    NotFoundError,
    SpeciesUnavailableError,
)
from reading_progress.gamification import LevelProgress, level_from_xp, level_progress
from reading_progress.plant_growth import ReadingDayOutcome, record_reading_day
from reading_progress.plant_health import effective_status, needs_watering_soon
from reading_progress.progression import (
    ProgressCache,
    ProgressionResult,
    award_book_completion_xp,
    award_session_xp,
)
from reading_progress.streaks import current_streak, has_reading_streak, longest_streak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEndResult:
    session: ReadingSession
    progression: ProgressionResult
    reading_day: ReadingDayOutcome | None
    goals_changed: bool = True


@dataclass(frozen=True)
class ProgressView:
    progress: AccountProgress
    level: LevelProgress
    current_streak: int
    longest_streak: int
    active_plant: Plant | None


def _require_book(db: Database, book_id: int) -> Book:
    book = db.get_book(book_id)
    if book is None:
        raise NotFoundError("Book", book_id)
    return book


def _require_plant(db: Database, plant_id: int) -> Plant:
    plant = db.get_plant(plant_id)
    if plant is None:
        raise NotFoundError("Plant", plant_id)
    return plant


def _validate_pages(book: Book, pages_read: int | None) -> None:
    if pages_read is None:
        return
    if pages_read < 0:
        raise InvalidSessionError("pages_read cannot be negative")
    if book.page_count is not None and pages_read > book.page_count:
        raise InvalidSessionError(f"pages_read ({pages_read}) exceeds the book's page count ({book.page_count})")


def _session_dates(db: Database) -> list[datetime]:
    return [s.started_at for s in db.list_sessions()]


def credit_reading_day(db: Database, session_date: datetime, minutes: int, now: datetime) -> ReadingDayOutcome | None:
    """Credit the active plant with a reading day. Returns None when no plant is active."""
    plant = db.get_active_plant()
    if plant is None:
        return None
    species = db.get_species(plant.species_id)
    if species is None:
        raise NotFoundError("Species", plant.species_id)
    outcome = record_reading_day(plant, species, session_date, minutes, now)
    if outcome.credited:
        db.save_plant_growth(outcome.plant)
    if outcome.leveled_up:
        logger.info("plant level up plant_id=%s old=%s new=%s", plant.id, outcome.old_level, outcome.new_level)
    return outcome


def _safe_credit_reading_day(db: Database, session: ReadingSession, now: datetime) -> ReadingDayOutcome | None:
    try:
        return credit_reading_day(db, session.started_at, session.minutes, now)
    except Exception:
        # The XP award has already been committed and stands on its own.
        logger.exception("reading day credit failed session_id=%s", session.id)
        return None


def _finalize_session(
    db: Database,
    session: ReadingSession,
    ended_at: datetime,
    minutes: int,
    pages_read: int | None,
    now: datetime,
    cache: ProgressCache | None,
) -> SessionEndResult:
    claimed = db.claim_session(session.id, ended_at, minutes, pages_read)
    has_streak = has_reading_streak(_session_dates(db), now.date())
    active = db.get_active_plant()
    try:
        progression = award_session_xp(
            db,
            minutes=minutes,
            pages_read=pages_read,
            has_streak=has_streak,
            now=now,
            active_plant_id=active.id if active else None,
            cache=cache,
        )
    except Exception:
        db.reopen_session(claimed.id)
        raise
    finished = db.set_session_xp(claimed.id, progression.xp_earned)
    reading_day = _safe_credit_reading_day(db, finished, now)
    return SessionEndResult(session=finished, progression=progression, reading_day=reading_day)


def start_session(db: Database, book_id: int, now: datetime) -> ReadingSession:
    book = _require_book(db, book_id)
    if book.status == BOOK_PLANNED:
        db.set_book_status(book.id, BOOK_READING, now)
    session = db.add_session(book.id, started_at=now)
    logger.info("session started session_id=%s book_id=%s", session.id, book.id)
    return session


def end_session(
    db: Database,
    session_id: int,
    now: datetime,
    pages_read: int | None = None,
    cache: ProgressCache | None = None,
) -> SessionEndResult:
    session = db.get_session(session_id)
    if session is None:
        raise NotFoundError("Session", session_id)
    if session.ended_at is not None:
        raise InvalidSessionError(f"session {session_id} has already ended")
    _validate_pages(_require_book(db, session.book_id), pages_read)

    minutes = max(0, int((now - session.started_at).total_seconds() // 60))
    return _finalize_session(db, session, now, minutes, pages_read, now, cache)


def log_session(
    db: Database,
    book_id: int,
    started_at: datetime,
    minutes: int,
    now: datetime,
    pages_read: int | None = None,
    cache: ProgressCache | None = None,
) -> SessionEndResult:
    """Record a session that already happened, through the same pipeline as a live one."""
    if minutes < 0:
        raise InvalidSessionError("minutes cannot be negative")
    book = _require_book(db, book_id)
    _validate_pages(book, pages_read)
    if book.status == BOOK_PLANNED:
        db.set_book_status(book.id, BOOK_READING, started_at)
    session = db.add_session(book.id, started_at=started_at)
    return _finalize_session(db, session, started_at + timedelta(minutes=minutes), minutes, pages_read, now, cache)


def complete_book(
    db: Database,
    book_id: int,
    now: datetime,
    cache: ProgressCache | None = None,
) -> ProgressionResult | None:
    book = _require_book(db, book_id)
    if book.status == BOOK_COMPLETED:
        return None
    db.set_book_status(book.id, BOOK_COMPLETED, now)
    active = db.get_active_plant()
    return award_book_completion_xp(db, now, active_plant_id=active.id if active else None, cache=cache)


def water_plant(db: Database, plant_id: int, now: datetime) -> Plant:
    plant = _require_plant(db, plant_id)
    species = db.get_species(plant.species_id)
    if species is None:
        raise NotFoundError("Species", plant.species_id)
    if effective_status(plant, species, now) == PLANT_DEAD:
        if plant.status != PLANT_DEAD:
            db.set_plant_status(plant.id, PLANT_DEAD)
        raise DeadPlantError(plant.id)
    return db.water_plant_record(plant.id, now)


def refresh_plant_statuses(db: Database, now: datetime) -> list[Plant]:
    """Store the evaluated status of every plant; returns the plants whose status changed."""
    species_by_id = {s.id: s for s in db.list_species()}
    changed: list[Plant] = []
    for plant in db.list_plants():
        species = species_by_id.get(plant.species_id)
        if species is None:
            continue
        status = effective_status(plant, species, now)
        if status == plant.status:
            continue
        db.set_plant_status(plant.id, status)
        changed.append(replace(plant, status=status))
        logger.info("plant status changed plant_id=%s old=%s new=%s", plant.id, plant.status, status)
    return changed


def plants_needing_water(db: Database, now: datetime) -> list[Plant]:
    species_by_id = {s.id: s for s in db.list_species()}
    result: list[Plant] = []
    for plant in db.list_plants():
        species = species_by_id.get(plant.species_id)
        if species is None or effective_status(plant, species, now) == PLANT_DEAD:
            continue
        if needs_watering_soon(plant.last_watered, species.water_interval_days, now):
            result.append(plant)
    return result


def set_active_plant(db: Database, plant_id: int) -> Plant:
    return db.set_active_plant(plant_id)


def purchase_plant(
    db: Database,
    species_id: int,
    name: str,
    now: datetime,
    cache: ProgressCache | None = None,
) -> Plant:
    species = db.get_species(species_id)
    if species is None:
        raise NotFoundError("Species", species_id)
    if not species.is_available:
        raise SpeciesUnavailableError(f"{species.name} is not available")
    progress = db.get_account_progress(now)
    user_level = level_from_xp(progress.total_xp)
    if user_level < species.unlock_level:
        raise SpeciesUnavailableError(f"{species.name} unlocks at level {species.unlock_level}")

    plant, _ = db.purchase_plant_record(species.id, name.strip() or species.name, species.base_cost, now)
    if cache is not None:
        cache.invalidate()
    logger.info("plant purchased plant_id=%s species=%s cost=%s", plant.id, species.name, species.base_cost)
    if db.get_active_plant() is None:
        plant = db.set_active_plant(plant.id)
    return plant


def delete_plant(db: Database, plant_id: int) -> None:
    if not db.delete_plant(plant_id):
        raise NotFoundError("Plant", plant_id)


def progress_view(db: Database, now: datetime, cache: ProgressCache | None = None) -> ProgressView:
    progress = cache.get(now) if cache is not None else db.get_account_progress(now)
    dates = _session_dates(db)
    return ProgressView(
        progress=progress,
        level=level_progress(progress.total_xp),
        current_streak=current_streak(dates, now.date()),
        longest_streak=longest_streak(dates),
        active_plant=db.get_active_plant(),
    )
