from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Protocol

from reading_progress.db_constants import GOAL_TYPES
from reading_progress.db_converters import _row_to_exclusion, _row_to_goal, _row_to_goal_genre
from reading_progress.db_models import GoalExclusion, GoalGenreFilter, ReadingGoal
from reading_progress.db_repo.base import _require_row


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...


def _require_goal_and(conn: sqlite3.Connection, goal_id: int, table: str, kind: str, entity_id: int) -> None:
    _require_row(conn, "reading_goals", "Goal", goal_id)
    _require_row(conn, table, kind, entity_id)


class GoalMixin:
    def add_goal(
        self: DbProtocol,
        title: str,
        goal_type: str,
        target: int,
        start_date: date,
        end_date: date,
        created_at: datetime,
    ) -> ReadingGoal:
        if goal_type not in GOAL_TYPES:
            raise ValueError(f"unknown goal type: {goal_type}")
        if target <= 0:
            raise ValueError("target must be positive")
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO reading_goals(title, goal_type, target, current, start_date, end_date, is_completed, created_at)
                VALUES (?, ?, ?, 0, ?, ?, 0, ?)
                """,
                (title, goal_type, target, start_date.isoformat(), end_date.isoformat(), created_at.isoformat()),
            )
            row = conn.execute("SELECT * FROM reading_goals WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return _row_to_goal(row)

    def get_goal(self: DbProtocol, goal_id: int) -> ReadingGoal | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM reading_goals WHERE id = ?", (goal_id,)).fetchone()
        return _row_to_goal(row) if row else None

    def list_goals(self: DbProtocol, completed: bool | None = None) -> list[ReadingGoal]:
        with self._connect() as conn:
            if completed is None:
                rows = conn.execute("SELECT * FROM reading_goals ORDER BY end_date ASC, id ASC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM reading_goals WHERE is_completed = ? ORDER BY end_date ASC, id ASC",
                    (1 if completed else 0,),
                ).fetchall()
        return [_row_to_goal(r) for r in rows]

    def delete_goal(self: DbProtocol, goal_id: int) -> bool:
        with self._connect() as conn:
            conn.execute("DELETE FROM goal_excluded_books WHERE goal_id = ?", (goal_id,))
            conn.execute("DELETE FROM goal_genres WHERE goal_id = ?", (goal_id,))
            cur = conn.execute("DELETE FROM reading_goals WHERE id = ?", (goal_id,))
        return cur.rowcount > 0

    def save_completed_goals(self: DbProtocol, goals: list[ReadingGoal]) -> int:
        """Persist newly completed goals in one transaction. Already-completed rows are left untouched."""
        if not goals:
            return 0
        updated = 0
        with self._connect() as conn:
            for goal in goals:
                cur = conn.execute(
                    """
                    UPDATE reading_goals
                    SET is_completed = 1, completed_at = ?, current = ?
                    WHERE id = ? AND is_completed = 0
                    """,
                    (goal.completed_at.isoformat() if goal.completed_at else None, goal.current, goal.id),
                )
                updated += cur.rowcount
        return updated

    def exclude_book_from_goal(self: DbProtocol, goal_id: int, book_id: int) -> None:
        with self._connect() as conn:
            _require_goal_and(conn, goal_id, "books", "Book", book_id)
            conn.execute(
                "INSERT OR IGNORE INTO goal_excluded_books(goal_id, book_id) VALUES (?, ?)",
                (goal_id, book_id),
            )

    def include_book_in_goal(self: DbProtocol, goal_id: int, book_id: int) -> None:
        with self._connect() as conn:
            _require_goal_and(conn, goal_id, "books", "Book", book_id)
            conn.execute(
                "DELETE FROM goal_excluded_books WHERE goal_id = ? AND book_id = ?",
                (goal_id, book_id),
            )

    def add_genre_to_goal(self: DbProtocol, goal_id: int, genre_id: int) -> None:
        with self._connect() as conn:
            _require_goal_and(conn, goal_id, "genres", "Genre", genre_id)
            conn.execute(
                "INSERT OR IGNORE INTO goal_genres(goal_id, genre_id) VALUES (?, ?)",
                (goal_id, genre_id),
            )

    def remove_genre_from_goal(self: DbProtocol, goal_id: int, genre_id: int) -> None:
        with self._connect() as conn:
            _require_goal_and(conn, goal_id, "genres", "Genre", genre_id)
            conn.execute(
                "DELETE FROM goal_genres WHERE goal_id = ? AND genre_id = ?",
                (goal_id, genre_id),
            )

    def list_goal_exclusions(self: DbProtocol) -> list[GoalExclusion]:
        with self._connect() as conn:
            rows = conn.execute("SELECT goal_id, book_id FROM goal_excluded_books").fetchall()
        return [_row_to_exclusion(r) for r in rows]

    def list_goal_genres(self: DbProtocol) -> list[GoalGenreFilter]:
        with self._connect() as conn:
            rows = conn.execute("SELECT goal_id, genre_id FROM goal_genres").fetchall()
        return [_row_to_goal_genre(r) for r in rows]
