from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol

from reading_progress.db_constants import BOOK_COMPLETED, BOOK_PLANNED, BOOK_READING, BOOK_STATUSES
from reading_progress.db_converters import _row_to_book, _row_to_book_genre, _row_to_genre, _row_to_session
from reading_progress.db_models import Book, BookGenre, Genre, ReadingSession
from reading_progress.db_repo.base import _require_row
from reading_progress.errors import InvalidSessionError, NotFoundError


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...
    def get_book(self, book_id: int) -> Book | None: ...
    def get_session(self, session_id: int) -> ReadingSession | None: ...


class LibraryMixin:
    def add_genre(self: DbProtocol, name: str) -> Genre:
        clean = name.strip()
        if not clean:
            raise ValueError("genre name must not be empty")
        with self._connect() as conn:
            conn.execute("INSERT OR IGNORE INTO genres(name) VALUES (?)", (clean,))
            row = conn.execute("SELECT * FROM genres WHERE name = ?", (clean,)).fetchone()
        assert row is not None
        return _row_to_genre(row)

    def list_genres(self: DbProtocol) -> list[Genre]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM genres ORDER BY name ASC").fetchall()
        return [_row_to_genre(r) for r in rows]

    def add_book(
        self: DbProtocol,
        title: str,
        created_at: datetime,
        author: str | None = None,
        status: str = BOOK_PLANNED,
        page_count: int | None = None,
        date_started: datetime | None = None,
        date_completed: datetime | None = None,
    ) -> Book:
        if status not in BOOK_STATUSES:
            raise ValueError(f"unknown book status: {status}")
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO books(title, author, status, page_count, date_started, date_completed, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    title,
                    author,
                    status,
                    page_count,
                    date_started.isoformat() if date_started else None,
                    date_completed.isoformat() if date_completed else None,
                    created_at.isoformat(),
                ),
            )
            row = conn.execute("SELECT * FROM books WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return _row_to_book(row)

    def get_book(self: DbProtocol, book_id: int) -> Book | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        return _row_to_book(row) if row else None

    def list_books(self: DbProtocol, status: str | None = None) -> list[Book]:
        with self._connect() as conn:
            if status is None:
                rows = conn.execute("SELECT * FROM books ORDER BY id ASC").fetchall()
            else:
                rows = conn.execute("SELECT * FROM books WHERE status = ? ORDER BY id ASC", (status,)).fetchall()
        return [_row_to_book(r) for r in rows]

    def set_book_status(self: DbProtocol, book_id: int, status: str, at: datetime) -> Book:
        """Change status, stamping date_started/date_completed the first time they apply."""
        if status not in BOOK_STATUSES:
            raise ValueError(f"unknown book status: {status}")
        with self._connect() as conn:
            cur = conn.execute("UPDATE books SET status = ? WHERE id = ?", (status, book_id))
            if cur.rowcount == 0:
                raise NotFoundError("Book", book_id)
            if status == BOOK_READING:
                conn.execute(
                    "UPDATE books SET date_started = COALESCE(date_started, ?) WHERE id = ?",
                    (at.isoformat(), book_id),
                )
            elif status == BOOK_COMPLETED:
                conn.execute(
                    "UPDATE books SET date_completed = ? WHERE id = ?",
                    (at.isoformat(), book_id),
                )
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        assert row is not None
        return _row_to_book(row)

    def set_book_genres(self: DbProtocol, book_id: int, genre_ids: list[int]) -> None:
        with self._connect() as conn:
            _require_row(conn, "books", "Book", book_id)
            for genre_id in set(genre_ids):
                _require_row(conn, "genres", "Genre", genre_id)
            conn.execute("DELETE FROM book_genres WHERE book_id = ?", (book_id,))
            for genre_id in sorted(set(genre_ids)):
                conn.execute(
                    "INSERT INTO book_genres(book_id, genre_id) VALUES (?, ?)",
                    (book_id, genre_id),
                )

    def list_book_genres(self: DbProtocol) -> list[BookGenre]:
        with self._connect() as conn:
            rows = conn.execute("SELECT book_id, genre_id FROM book_genres").fetchall()
        return [_row_to_book_genre(r) for r in rows]

    def add_session(
        self: DbProtocol,
        book_id: int,
        started_at: datetime,
        ended_at: datetime | None = None,
        minutes: int = 0,
        pages_read: int | None = None,
        xp_earned: int = 0,
    ) -> ReadingSession:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO reading_sessions(book_id, started_at, ended_at, minutes, pages_read, xp_earned)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    book_id,
                    started_at.isoformat(),
                    ended_at.isoformat() if ended_at else None,
                    max(0, minutes),
                    pages_read,
                    xp_earned,
                ),
            )
            row = conn.execute("SELECT * FROM reading_sessions WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return _row_to_session(row)

    def get_session(self: DbProtocol, session_id: int) -> ReadingSession | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM reading_sessions WHERE id = ?", (session_id,)).fetchone()
        return _row_to_session(row) if row else None

    def list_sessions(self: DbProtocol, book_id: int | None = None) -> list[ReadingSession]:
        with self._connect() as conn:
            if book_id is None:
                rows = conn.execute("SELECT * FROM reading_sessions ORDER BY started_at ASC, id ASC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM reading_sessions WHERE book_id = ? ORDER BY started_at ASC, id ASC",
                    (book_id,),
                ).fetchall()
        return [_row_to_session(r) for r in rows]

    def claim_session(
        self: DbProtocol,
        session_id: int,
        ended_at: datetime,
        minutes: int,
        pages_read: int | None,
    ) -> ReadingSession:
        """Close an open session. Only one caller can close a given session."""
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE reading_sessions
                SET ended_at = ?, minutes = ?, pages_read = ?
                WHERE id = ? AND ended_at IS NULL
                """,
                (ended_at.isoformat(), max(0, minutes), pages_read, session_id),
            )
            if cur.rowcount == 0:
                _require_row(conn, "reading_sessions", "Session", session_id)
                raise InvalidSessionError(f"session {session_id} already ended")
            row = conn.execute("SELECT * FROM reading_sessions WHERE id = ?", (session_id,)).fetchone()
        assert row is not None
        return _row_to_session(row)

    def reopen_session(self: DbProtocol, session_id: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE reading_sessions SET ended_at = NULL, minutes = 0, pages_read = NULL WHERE id = ?",
                (session_id,),
            )

    def set_session_xp(self: DbProtocol, session_id: int, xp_earned: int) -> ReadingSession:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE reading_sessions SET xp_earned = ? WHERE id = ?",
                (xp_earned, session_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Session", session_id)
            row = conn.execute("SELECT * FROM reading_sessions WHERE id = ?", (session_id,)).fetchone()
        assert row is not None
        return _row_to_session(row)
