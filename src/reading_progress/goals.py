from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Iterable

from reading_progress.db import Database
from reading_progress.db_constants import BOOK_COMPLETED, GOAL_BOOKS, GOAL_MINUTES, GOAL_PAGES
from reading_progress.db_models import (
    Book,
    BookGenre,
    GoalExclusion,
    GoalGenreFilter,
    ReadingGoal,
    ReadingSession,
)
from reading_progress.errors import NotFoundError
from reading_progress.time_utils import in_goal_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoalFilters:
    """Per-goal book filters, built once for a whole aggregation pass.

    ``genre_books`` only has entries for goals with at least one linked genre; a goal without an
    entry is unrestricted, which is not the same as an empty set.
    """

    excluded_books: dict[int, frozenset[int]]
    genre_books: dict[int, frozenset[int]]

    def counts(self, goal_id: int, book_id: int) -> bool:
        if book_id in self.excluded_books.get(goal_id, frozenset()):
            return False
        allowed = self.genre_books.get(goal_id)
        if allowed is None:
            return True
        return book_id in allowed


@dataclass(frozen=True)
class GoalSyncResult:
    goals: list[ReadingGoal]
    newly_completed: list[ReadingGoal]

    @property
    def changed(self) -> bool:
        return bool(self.newly_completed)


def build_goal_filters(
    exclusions: Iterable[GoalExclusion],
    goal_genres: Iterable[GoalGenreFilter],
    book_genres: Iterable[BookGenre],
) -> GoalFilters:
    excluded: dict[int, set[int]] = defaultdict(set)
    for ex in exclusions:
        excluded[ex.goal_id].add(ex.book_id)

    books_by_genre: dict[int, set[int]] = defaultdict(set)
    for link in book_genres:
        books_by_genre[link.genre_id].add(link.book_id)

    genre_books: dict[int, set[int]] = {}
    for gf in goal_genres:
        # OR semantics: union of every linked genre's books.
        genre_books.setdefault(gf.goal_id, set()).update(books_by_genre.get(gf.genre_id, set()))

    return GoalFilters(
        excluded_books={k: frozenset(v) for k, v in excluded.items()},
        genre_books={k: frozenset(v) for k, v in genre_books.items()},
    )


def _books_progress(
    goal: ReadingGoal,
    books: list[Book],
    sessions: list[ReadingSession],
    filters: GoalFilters,
) -> int:
    return sum(
        1
        for b in books
        if b.status == BOOK_COMPLETED
        and b.date_completed is not None
        and filters.counts(goal.id, b.id)
        and in_goal_window(b.date_completed, goal.start_date, goal.end_date)
    )


def _window_sessions(
    goal: ReadingGoal,
    sessions: list[ReadingSession],
    filters: GoalFilters,
) -> Iterable[ReadingSession]:
    for s in sessions:
        if s.ended_at is None:
            continue
        if not filters.counts(goal.id, s.book_id):
            continue
        if in_goal_window(s.ended_at, goal.start_date, goal.end_date):
            yield s


def _pages_progress(
    goal: ReadingGoal,
    books: list[Book],
    sessions: list[ReadingSession],
    filters: GoalFilters,
) -> int:
    return sum(s.pages_read or 0 for s in _window_sessions(goal, sessions, filters))


def _minutes_progress(
    goal: ReadingGoal,
    books: list[Book],
    sessions: list[ReadingSession],
    filters: GoalFilters,
) -> int:
    return sum(s.minutes for s in _window_sessions(goal, sessions, filters))


GOAL_AGGREGATORS: dict[str, Callable[[ReadingGoal, list[Book], list[ReadingSession], GoalFilters], int]] = {
    GOAL_BOOKS: _books_progress,
    GOAL_PAGES: _pages_progress,
    GOAL_MINUTES: _minutes_progress,
}


def aggregate_goal_progress(
    goals: Iterable[ReadingGoal],
    books: list[Book],
    sessions: list[ReadingSession],
    filters: GoalFilters,
    now: datetime,
) -> GoalSyncResult:
    """Recompute ``current`` for every goal and latch completion; nothing is written here."""
    updated: list[ReadingGoal] = []
    newly_completed: list[ReadingGoal] = []
    for goal in goals:
        aggregator = GOAL_AGGREGATORS.get(goal.goal_type)
        if aggregator is None:
            raise ValueError(f"unknown goal type: {goal.goal_type}")
        current = aggregator(goal, books, sessions, filters)
        if current >= goal.target and not goal.is_completed:
            goal = replace(goal, current=current, is_completed=True, completed_at=now)
            newly_completed.append(goal)
        else:
            goal = replace(goal, current=current)
        updated.append(goal)
    return GoalSyncResult(goals=updated, newly_completed=newly_completed)


def sync_goals(db: Database, now: datetime, goals: list[ReadingGoal] | None = None) -> GoalSyncResult:
    if goals is None:
        goals = db.list_goals()
    if not goals:
        return GoalSyncResult(goals=[], newly_completed=[])

    filters = build_goal_filters(db.list_goal_exclusions(), db.list_goal_genres(), db.list_book_genres())
    result = aggregate_goal_progress(goals, db.list_books(), db.list_sessions(), filters, now)

    db.save_completed_goals(result.newly_completed)
    for goal in result.newly_completed:
        logger.info("goal completed goal_id=%s type=%s target=%s", goal.id, goal.goal_type, goal.target)
    return result


def create_goal(
    db: Database,
    title: str,
    goal_type: str,
    target: int,
    start_date: date,
    end_date: date,
    now: datetime,
) -> ReadingGoal:
    goal = db.add_goal(title, goal_type, target, start_date, end_date, created_at=now)
    logger.info("goal created goal_id=%s type=%s target=%s", goal.id, goal.goal_type, goal.target)
    return sync_goals(db, now, [goal]).goals[0]


def delete_goal(db: Database, goal_id: int) -> None:
    if not db.delete_goal(goal_id):
        raise NotFoundError("Goal", goal_id)


def list_active_goals(db: Database, now: datetime) -> list[ReadingGoal]:
    today = now.date()
    active = [g for g in db.list_goals(completed=False) if g.end_date >= today]
    return [g for g in sync_goals(db, now, active).goals if not g.is_completed]


def list_completed_goals(db: Database, now: datetime) -> list[ReadingGoal]:
    return sync_goals(db, now, db.list_goals(completed=True)).goals
