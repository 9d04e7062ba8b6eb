from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from reading_progress import service
from reading_progress.db import Database
from reading_progress.db_constants import BOOK_COMPLETED, BOOK_READING, PLANT_DEAD, PLANT_THIRSTY
from reading_progress.errors import (
    DeadPlantError,
    InsufficientCoinsError,
    InvalidSessionError,
    NotFoundError,
    SpeciesUnavailableError,
)
from reading_progress.progression import ProgressCache


def _dt(y: int, m: int, d: int, h: int = 10, minute: int = 0) -> datetime:
    return datetime(y, m, d, h, minute, tzinfo=ZoneInfo("Europe/Oslo"))


def _db(tmp_path) -> Database:
    return Database(tmp_path / "reading.db")


def _sprout_id(db: Database) -> int:
    species = db.get_species_by_name("Starter Sprout")
    assert species is not None
    return species.id


def test_start_session_moves_planned_book_to_reading(tmp_path) -> None:
    db = _db(tmp_path)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1), page_count=600)
    session = service.start_session(db, book.id, _dt(2026, 3, 10))
    assert session.ended_at is None
    stored = db.get_book(book.id)
    assert stored.status == BOOK_READING
    assert stored.date_started == _dt(2026, 3, 10)
    with pytest.raises(NotFoundError):
        service.start_session(db, 999, _dt(2026, 3, 10))


def test_end_session_awards_and_stores_xp(tmp_path) -> None:
    db = _db(tmp_path)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1), page_count=600)
    session = service.start_session(db, book.id, _dt(2026, 3, 10, 10, 0))

    result = service.end_session(db, session.id, _dt(2026, 3, 10, 10, 45), pages_read=10)
    assert result.session.minutes == 45
    assert result.session.pages_read == 10
    assert result.session.ended_at == _dt(2026, 3, 10, 10, 45)
    assert result.progression.base_xp == 65
    assert result.session.xp_earned == result.progression.xp_earned == 65
    assert result.reading_day is None
    assert result.goals_changed is True
    assert db.get_account_progress(_dt(2026, 3, 10)).total_xp == 65


def test_end_session_validation(tmp_path) -> None:
    db = _db(tmp_path)
    book = db.add_book("Short", created_at=_dt(2026, 3, 1), page_count=50)
    session = service.start_session(db, book.id, _dt(2026, 3, 10, 10, 0))

    with pytest.raises(InvalidSessionError):
        service.end_session(db, session.id, _dt(2026, 3, 10, 10, 30), pages_read=-1)
    with pytest.raises(InvalidSessionError):
        service.end_session(db, session.id, _dt(2026, 3, 10, 10, 30), pages_read=51)
    with pytest.raises(NotFoundError):
        service.end_session(db, 999, _dt(2026, 3, 10, 10, 30))

    service.end_session(db, session.id, _dt(2026, 3, 10, 10, 30), pages_read=50)
    with pytest.raises(InvalidSessionError):
        service.end_session(db, session.id, _dt(2026, 3, 10, 11, 0))


def test_session_ended_elsewhere_awards_nothing(tmp_path, monkeypatch) -> None:
    db = _db(tmp_path)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    session = service.start_session(db, book.id, _dt(2026, 3, 10, 10, 0))
    stale = db.get_session(session.id)

    db.claim_session(session.id, _dt(2026, 3, 10, 10, 30), 30, None)
    monkeypatch.setattr(db, "get_session", lambda session_id: stale)

    with pytest.raises(InvalidSessionError):
        service.end_session(db, session.id, _dt(2026, 3, 10, 10, 40))
    assert db.get_account_progress(_dt(2026, 3, 10)).total_xp == 0
    monkeypatch.undo()
    assert db.get_session(session.id).minutes == 30
    assert db.get_session(session.id).xp_earned == 0


def test_failed_award_leaves_session_open(tmp_path, monkeypatch) -> None:
    db = _db(tmp_path)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    session = service.start_session(db, book.id, _dt(2026, 3, 10, 10, 0))

    def _boom(*args, **kwargs):
        raise RuntimeError("award failed")

    monkeypatch.setattr(service, "award_session_xp", _boom)
    with pytest.raises(RuntimeError):
        service.end_session(db, session.id, _dt(2026, 3, 10, 10, 30))
    assert db.get_session(session.id).ended_at is None

    monkeypatch.undo()
    result = service.end_session(db, session.id, _dt(2026, 3, 10, 10, 30))
    assert result.session.xp_earned == 30


def test_clock_skew_gives_zero_minutes(tmp_path) -> None:
    db = _db(tmp_path)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    session = service.start_session(db, book.id, _dt(2026, 3, 10, 10, 0))
    result = service.end_session(db, session.id, _dt(2026, 3, 10, 9, 0))
    assert result.session.minutes == 0
    assert result.progression.xp_earned == 0


def test_end_session_credits_active_plant(tmp_path) -> None:
    db = _db(tmp_path)
    plant = db.add_plant(_sprout_id(db), "Sprout", _dt(2026, 3, 10, 9), is_active=True)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    session = service.start_session(db, book.id, _dt(2026, 3, 10, 10, 0))

    result = service.end_session(db, session.id, _dt(2026, 3, 10, 10, 20))
    assert result.reading_day is not None
    assert result.reading_day.credited is True
    stored = db.get_plant(plant.id)
    assert stored.reading_days_count == 1
    assert stored.last_reading_day_recorded == _dt(2026, 3, 10).date()


def test_reading_day_failure_does_not_undo_xp(tmp_path, monkeypatch, caplog) -> None:
    db = _db(tmp_path)
    db.add_plant(_sprout_id(db), "Sprout", _dt(2026, 3, 10, 9), is_active=True)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    session = service.start_session(db, book.id, _dt(2026, 3, 10, 10, 0))

    def _boom(*args, **kwargs):
        raise RuntimeError("storage hiccup")

    monkeypatch.setattr(service, "record_reading_day", _boom)
    with caplog.at_level(logging.ERROR, logger="reading_progress.service"):
        result = service.end_session(db, session.id, _dt(2026, 3, 10, 10, 30))

    assert result.reading_day is None
    assert result.progression.xp_earned > 0
    assert db.get_account_progress(_dt(2026, 3, 10)).total_xp == result.progression.new_total_xp
    assert db.get_session(session.id).xp_earned == result.progression.xp_earned
    assert "reading day credit failed" in caplog.text


def test_logged_sessions_earn_streak_bonus(tmp_path) -> None:
    db = _db(tmp_path)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    first = service.log_session(db, book.id, _dt(2026, 3, 9, 20), 20, now=_dt(2026, 3, 9, 20, 20))
    assert first.progression.base_xp == 20
    assert db.get_book(book.id).status == BOOK_READING

    second = service.log_session(db, book.id, _dt(2026, 3, 10, 8), 20, now=_dt(2026, 3, 10, 8, 20))
    assert second.progression.breakdown.streak_xp == 20
    assert second.progression.base_xp == 40
    assert second.session.ended_at == _dt(2026, 3, 10, 8, 20)

    with pytest.raises(InvalidSessionError):
        service.log_session(db, book.id, _dt(2026, 3, 10, 9), -5, now=_dt(2026, 3, 10, 9))


def test_complete_book_awards_once(tmp_path) -> None:
    db = _db(tmp_path)
    cache = ProgressCache(db)
    now = _dt(2026, 3, 10)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1), status=BOOK_READING)
    assert cache.get(now).coins == 100

    result = service.complete_book(db, book.id, now, cache=cache)
    assert result is not None
    assert result.xp_earned == 100
    assert result.level_up is not None and result.level_up.coins_awarded == 100
    assert cache.get(now).coins == 200
    stored = db.get_book(book.id)
    assert stored.status == BOOK_COMPLETED
    assert stored.date_completed == now

    assert service.complete_book(db, book.id, _dt(2026, 3, 11)) is None
    assert db.get_account_progress(now).total_xp == 100


def test_watering_dead_plant_is_an_error(tmp_path) -> None:
    db = _db(tmp_path)
    plant = db.add_plant(_sprout_id(db), "Forgotten", _dt(2026, 3, 1))
    with pytest.raises(DeadPlantError, match="Cannot water a dead plant"):
        service.water_plant(db, plant.id, _dt(2026, 3, 10))
    assert db.get_plant(plant.id).status == PLANT_DEAD
    with pytest.raises(DeadPlantError):
        service.water_plant(db, plant.id, _dt(2026, 3, 10))
    with pytest.raises(NotFoundError):
        service.water_plant(db, 999, _dt(2026, 3, 10))


def test_watering_resets_clock(tmp_path) -> None:
    db = _db(tmp_path)
    plant = db.add_plant(_sprout_id(db), "Thirsty", _dt(2026, 3, 6))
    watered = service.water_plant(db, plant.id, _dt(2026, 3, 10))
    assert watered.last_watered == _dt(2026, 3, 10)
    assert service.refresh_plant_statuses(db, _dt(2026, 3, 10)) == []


def test_refresh_plant_statuses(tmp_path) -> None:
    db = _db(tmp_path)
    thirsty = db.add_plant(_sprout_id(db), "Thirsty", _dt(2026, 3, 6))
    db.add_plant(_sprout_id(db), "Fresh", _dt(2026, 3, 10))

    changed = service.refresh_plant_statuses(db, _dt(2026, 3, 10))
    assert [p.id for p in changed] == [thirsty.id]
    assert [p.status for p in changed] == [PLANT_THIRSTY]
    assert db.get_plant(thirsty.id).status == PLANT_THIRSTY


def test_plants_needing_water(tmp_path) -> None:
    db = _db(tmp_path)
    due = db.add_plant(_sprout_id(db), "Due", _dt(2026, 3, 7, 13))
    db.add_plant(_sprout_id(db), "Fresh", _dt(2026, 3, 10))
    db.add_plant(_sprout_id(db), "Dead", _dt(2026, 3, 1))

    assert [p.id for p in service.plants_needing_water(db, _dt(2026, 3, 10))] == [due.id]


def test_purchase_plant(tmp_path) -> None:
    db = _db(tmp_path)
    now = _dt(2026, 3, 10)
    sprout_id = _sprout_id(db)
    with pytest.raises(InsufficientCoinsError):
        service.purchase_plant(db, sprout_id, "Sprout", now)
    assert db.list_plants() == []

    db.add_coins(1000, now)
    plant = service.purchase_plant(db, sprout_id, "Sprout", now)
    assert plant.current_level == 1
    assert plant.reading_days_count == 0
    assert plant.last_watered == now
    assert plant.is_active is True
    progress = db.get_account_progress(now)
    assert progress.coins == 600
    assert progress.plants_purchased == 1

    second = service.purchase_plant(db, sprout_id, "  ", now)
    assert second.name == "Starter Sprout"
    assert second.is_active is False


def test_purchase_checks_unlock_level_and_availability(tmp_path) -> None:
    db = _db(tmp_path)
    now = _dt(2026, 3, 10)
    db.add_coins(10000, now)
    seedling = db.get_species_by_name("Story Seedling")
    assert seedling is not None
    with pytest.raises(SpeciesUnavailableError):
        service.purchase_plant(db, seedling.id, "Seedling", now)

    sprout_id = _sprout_id(db)
    db.set_species_available(sprout_id, False)
    with pytest.raises(SpeciesUnavailableError):
        service.purchase_plant(db, sprout_id, "Sprout", now)
    with pytest.raises(NotFoundError):
        service.purchase_plant(db, 999, "Ghost", now)


def test_set_active_and_delete_plant(tmp_path) -> None:
    db = _db(tmp_path)
    first = db.add_plant(_sprout_id(db), "One", _dt(2026, 3, 10), is_active=True)
    second = db.add_plant(_sprout_id(db), "Two", _dt(2026, 3, 10))
    assert service.set_active_plant(db, second.id).is_active is True
    assert db.get_plant(first.id).is_active is False

    service.delete_plant(db, second.id)
    assert db.get_plant(second.id) is None
    with pytest.raises(NotFoundError):
        service.delete_plant(db, second.id)


def test_progress_view(tmp_path) -> None:
    db = _db(tmp_path)
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    service.log_session(db, book.id, _dt(2026, 3, 9, 20), 30, now=_dt(2026, 3, 9, 20, 30))
    service.log_session(db, book.id, _dt(2026, 3, 10, 8), 30, now=_dt(2026, 3, 10, 8, 30))

    view = service.progress_view(db, _dt(2026, 3, 10, 12))
    assert view.current_streak == 2
    assert view.longest_streak == 2
    assert view.progress.total_xp == 80
    assert view.level.level == 1
    assert view.level.remaining_to_next == 20
    assert view.active_plant is None
