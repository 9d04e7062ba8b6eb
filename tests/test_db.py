from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from reading_progress.db import Database
from reading_progress.db_constants import BOOK_COMPLETED, BOOK_READING, GOAL_BOOKS, PLANT_SPECIES_SEED, PLANT_THIRSTY
from reading_progress.errors import InsufficientCoinsError, InvalidSessionError, NotFoundError


def _dt(y: int, m: int, d: int, h: int = 10, minute: int = 0) -> datetime:
    return datetime(y, m, d, h, minute, tzinfo=ZoneInfo("Europe/Oslo"))


def test_species_catalog_is_seeded_once(tmp_path) -> None:
    path = tmp_path / "reading.db"
    Database(path)
    db = Database(path)
    species = db.list_species()
    assert len(species) == len(PLANT_SPECIES_SEED)
    sprout = db.get_species_by_name("Starter Sprout")
    assert sprout is not None
    assert sprout.unlock_level == 1
    assert sprout.water_interval_days == 3


def test_account_progress_starts_with_coins(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    progress = db.get_account_progress(_dt(2026, 3, 1))
    assert progress.total_xp == 0
    assert progress.level == 1
    assert progress.coins == 100


def test_stale_level_is_repaired(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    now = _dt(2026, 3, 1)
    progress = db.get_account_progress(now)
    db.save_account_progress(replace(progress, total_xp=1000, level=1))

    repaired, changed = db.repair_account_level(now)
    assert changed is True
    assert repaired.level == 3
    _, changed_again = db.repair_account_level(now)
    assert changed_again is False


def test_stale_level_is_repaired_on_open(tmp_path) -> None:
    path = tmp_path / "reading.db"
    db = Database(path)
    now = _dt(2026, 3, 1)
    db.save_account_progress(replace(db.get_account_progress(now), total_xp=1000, level=1))
    assert Database(path).get_account_progress(now).level == 3


def test_spend_coins_is_conditional(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    now = _dt(2026, 3, 1)
    assert db.spend_coins(40, now).coins == 60
    with pytest.raises(InsufficientCoinsError) as exc:
        db.spend_coins(61, now)
    assert exc.value.available == 60
    assert db.get_account_progress(now).coins == 60


def test_book_status_stamps_dates(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1), page_count=600)
    reading = db.set_book_status(book.id, BOOK_READING, _dt(2026, 3, 2))
    assert reading.date_started == _dt(2026, 3, 2)
    done = db.set_book_status(book.id, BOOK_COMPLETED, _dt(2026, 3, 9))
    assert done.date_started == _dt(2026, 3, 2)
    assert done.date_completed == _dt(2026, 3, 9)
    with pytest.raises(NotFoundError):
        db.set_book_status(999, BOOK_READING, _dt(2026, 3, 2))


def test_goal_exclusions_and_genres_are_idempotent(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    goal = db.add_goal("Spring", GOAL_BOOKS, 3, date(2026, 3, 1), date(2026, 5, 31), created_at=_dt(2026, 3, 1))
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    genre = db.add_genre("Sci-Fi")

    db.exclude_book_from_goal(goal.id, book.id)
    db.exclude_book_from_goal(goal.id, book.id)
    assert len(db.list_goal_exclusions()) == 1
    db.include_book_in_goal(goal.id, book.id)
    db.include_book_in_goal(goal.id, book.id)
    assert db.list_goal_exclusions() == []

    db.add_genre_to_goal(goal.id, genre.id)
    db.add_genre_to_goal(goal.id, genre.id)
    assert len(db.list_goal_genres()) == 1
    db.remove_genre_from_goal(goal.id, genre.id)
    db.remove_genre_from_goal(goal.id, genre.id)
    assert db.list_goal_genres() == []


def test_goal_links_require_existing_goal(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    with pytest.raises(NotFoundError):
        db.exclude_book_from_goal(42, 1)
    with pytest.raises(NotFoundError):
        db.add_genre_to_goal(42, 1)


def test_goal_links_require_existing_book_and_genre(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    goal = db.add_goal("March", GOAL_BOOKS, 2, date(2026, 3, 1), date(2026, 3, 31), created_at=_dt(2026, 3, 1))

    for link in (db.exclude_book_from_goal, db.include_book_in_goal):
        with pytest.raises(NotFoundError) as exc:
            link(goal.id, 9999)
        assert (exc.value.kind, exc.value.entity_id) == ("Book", 9999)
    for link in (db.add_genre_to_goal, db.remove_genre_from_goal):
        with pytest.raises(NotFoundError) as exc:
            link(goal.id, 9999)
        assert (exc.value.kind, exc.value.entity_id) == ("Genre", 9999)
    assert db.list_goal_exclusions() == []
    assert db.list_goal_genres() == []


def test_book_genres_require_existing_rows(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    fiction = db.add_genre("Fiction")
    db.set_book_genres(book.id, [fiction.id])

    with pytest.raises(NotFoundError) as exc:
        db.set_book_genres(9999, [fiction.id])
    assert exc.value.kind == "Book"
    with pytest.raises(NotFoundError) as exc:
        db.set_book_genres(book.id, [fiction.id, 9999])
    assert exc.value.kind == "Genre"
    assert [(link.book_id, link.genre_id) for link in db.list_book_genres()] == [(book.id, fiction.id)]


def test_plant_writes_require_existing_plant(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    sprout = db.get_species_by_name("Starter Sprout")
    plant = db.add_plant(sprout.id, "Sprout", _dt(2026, 3, 10))

    with pytest.raises(NotFoundError) as exc:
        db.set_plant_status(9999, PLANT_THIRSTY)
    assert (exc.value.kind, exc.value.entity_id) == ("Plant", 9999)
    with pytest.raises(NotFoundError):
        db.save_plant_growth(replace(plant, id=9999, reading_days_count=3))
    assert db.get_plant(plant.id).reading_days_count == 0


def test_claim_session_only_once(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    book = db.add_book("Dune", created_at=_dt(2026, 3, 1))
    session = db.add_session(book.id, started_at=_dt(2026, 3, 10, 10))

    claimed = db.claim_session(session.id, _dt(2026, 3, 10, 10, 30), 30, 12)
    assert (claimed.minutes, claimed.pages_read, claimed.xp_earned) == (30, 12, 0)
    with pytest.raises(InvalidSessionError):
        db.claim_session(session.id, _dt(2026, 3, 10, 11), 60, None)
    with pytest.raises(NotFoundError):
        db.claim_session(9999, _dt(2026, 3, 10, 11), 60, None)
    assert db.set_session_xp(session.id, 54).xp_earned == 54
    assert db.get_session(session.id).minutes == 30


def test_goal_validation(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    with pytest.raises(ValueError):
        db.add_goal("Bad", "hours", 3, date(2026, 3, 1), date(2026, 3, 2), created_at=_dt(2026, 3, 1))
    with pytest.raises(ValueError):
        db.add_goal("Bad", GOAL_BOOKS, 0, date(2026, 3, 1), date(2026, 3, 2), created_at=_dt(2026, 3, 1))
    with pytest.raises(ValueError):
        db.add_goal("Bad", GOAL_BOOKS, 1, date(2026, 3, 2), date(2026, 3, 1), created_at=_dt(2026, 3, 1))


def test_genre_names_are_unique(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    first = db.add_genre("Fantasy")
    second = db.add_genre(" Fantasy ")
    assert first.id == second.id
    assert [g.name for g in db.list_genres()] == ["Fantasy"]


def test_only_one_active_plant(tmp_path) -> None:
    db = Database(tmp_path / "reading.db")
    now = _dt(2026, 3, 1)
    sprout = db.get_species_by_name("Starter Sprout")
    assert sprout is not None
    first = db.add_plant(sprout.id, "One", now, is_active=True)
    second = db.add_plant(sprout.id, "Two", now)
    db.set_active_plant(second.id)
    active = db.get_active_plant()
    assert active is not None and active.id == second.id
    assert db.get_plant(first.id).is_active is False
    with pytest.raises(NotFoundError):
        db.set_active_plant(999)
