from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from reading_progress.db_constants import PLANT_SPECIES_SEED
from reading_progress.errors import NotFoundError
from reading_progress.gamification import level_from_xp


def _require_row(conn: sqlite3.Connection, table: str, kind: str, entity_id: int) -> None:
    if conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (entity_id,)).fetchone() is None:
        raise NotFoundError(kind, entity_id)


class BaseDatabase:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """
            )
            current = {row["version"] for row in conn.execute("SELECT version FROM schema_migrations")}

            migrations: dict[int, str] = {
                1: """
                    CREATE TABLE account_progress (
                        id INTEGER PRIMARY KEY CHECK(id = 1),
                        total_xp INTEGER NOT NULL DEFAULT 0 CHECK(total_xp >= 0),
                        level INTEGER NOT NULL DEFAULT 1 CHECK(level >= 1),
                        coins INTEGER NOT NULL DEFAULT 0 CHECK(coins >= 0),
                        plants_purchased INTEGER NOT NULL DEFAULT 0,
                        updated_at TEXT NOT NULL
                    );

                    CREATE TABLE genres (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL UNIQUE
                    );

                    CREATE TABLE books (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        title TEXT NOT NULL,
                        author TEXT,
                        status TEXT NOT NULL DEFAULT 'planned'
                            CHECK(status IN ('planned', 'reading', 'completed', 'abandoned', 'wishlist')),
                        page_count INTEGER CHECK(page_count IS NULL OR page_count >= 0),
                        date_started TEXT,
                        date_completed TEXT,
                        created_at TEXT NOT NULL
                    );

                    CREATE TABLE book_genres (
                        book_id INTEGER NOT NULL,
                        genre_id INTEGER NOT NULL,
                        PRIMARY KEY(book_id, genre_id)
                    );

                    CREATE TABLE reading_sessions (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        book_id INTEGER NOT NULL,
                        started_at TEXT NOT NULL,
                        ended_at TEXT,
                        minutes INTEGER NOT NULL DEFAULT 0 CHECK(minutes >= 0),
                        pages_read INTEGER CHECK(pages_read IS NULL OR pages_read >= 0),
                        xp_earned INTEGER NOT NULL DEFAULT 0
                    );

                    CREATE INDEX idx_sessions_started ON reading_sessions(started_at);
                    CREATE INDEX idx_sessions_book ON reading_sessions(book_id);

                    CREATE TABLE plant_species (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL UNIQUE,
                        description TEXT,
                        max_level INTEGER NOT NULL CHECK(max_level >= 1),
                        water_interval_days INTEGER NOT NULL CHECK(water_interval_days >= 1),
                        growth_rate REAL NOT NULL CHECK(growth_rate > 0),
                        xp_boost_percentage TEXT NOT NULL,
                        base_cost INTEGER NOT NULL DEFAULT 0,
                        unlock_level INTEGER NOT NULL DEFAULT 1,
                        is_available INTEGER NOT NULL DEFAULT 1
                    );

                    CREATE TABLE user_plants (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        species_id INTEGER NOT NULL,
                        name TEXT NOT NULL,
                        current_level INTEGER NOT NULL DEFAULT 1,
                        status TEXT NOT NULL DEFAULT 'healthy',
                        last_watered TEXT NOT NULL,
                        planted_at TEXT NOT NULL,
                        is_active INTEGER NOT NULL DEFAULT 0,
                        FOREIGN KEY (species_id) REFERENCES plant_species(id)
                    );

                    CREATE TABLE reading_goals (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        title TEXT NOT NULL,
                        goal_type TEXT NOT NULL CHECK(goal_type IN ('books', 'pages', 'minutes')),
                        target INTEGER NOT NULL CHECK(target > 0),
                        current INTEGER NOT NULL DEFAULT 0,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        is_completed INTEGER NOT NULL DEFAULT 0,
                        completed_at TEXT,
                        created_at TEXT NOT NULL
                    );
                """,
                2: """
                    ALTER TABLE user_plants ADD COLUMN reading_days_count INTEGER NOT NULL DEFAULT 0;
                    ALTER TABLE user_plants ADD COLUMN last_reading_day_recorded TEXT;
                """,
                3: """
                    CREATE TABLE IF NOT EXISTS app_config (
                        key TEXT PRIMARY KEY,
                        value_json TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        updated_by TEXT
                    );

                    CREATE TABLE IF NOT EXISTS admin_audit_log (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        actor TEXT,
                        action TEXT NOT NULL,
                        target TEXT NOT NULL,
                        payload_json TEXT,
                        created_at TEXT NOT NULL
                    );
                """,
                4: """
                    CREATE TABLE IF NOT EXISTS goal_excluded_books (
                        goal_id INTEGER NOT NULL,
                        book_id INTEGER NOT NULL,
                        PRIMARY KEY(goal_id, book_id)
                    );
                """,
                5: """
                    CREATE TABLE IF NOT EXISTS goal_genres (
                        goal_id INTEGER NOT NULL,
                        genre_id INTEGER NOT NULL,
                        PRIMARY KEY(goal_id, genre_id)
                    );
                """,
            }

            now = datetime.now().isoformat(timespec="seconds")
            for version in sorted(migrations):
                if version in current:
                    continue
                conn.executescript(migrations[version])
                conn.execute(
                    "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?)",
                    (version, now),
                )

            self._seed_plant_species(conn)
            self._repair_stale_level(conn)

    def _seed_plant_species(self, conn: sqlite3.Connection) -> None:
        for name, description, max_level, interval, growth, boost, cost, unlock in PLANT_SPECIES_SEED:
            conn.execute(
                """
                INSERT INTO plant_species(
                    name, description, max_level, water_interval_days, growth_rate,
                    xp_boost_percentage, base_cost, unlock_level, is_available
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1)
                ON CONFLICT(name) DO UPDATE SET
                    description=excluded.description,
                    max_level=excluded.max_level,
                    water_interval_days=excluded.water_interval_days,
                    growth_rate=excluded.growth_rate,
                    xp_boost_percentage=excluded.xp_boost_percentage,
                    base_cost=excluded.base_cost,
                    unlock_level=excluded.unlock_level
                """,
                (name, description, max_level, interval, growth, str(boost), cost, unlock),
            )

    def _repair_stale_level(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("SELECT total_xp, level FROM account_progress WHERE id = 1").fetchone()
        if row is None:
            return
        expected = level_from_xp(int(row["total_xp"]))
        if int(row["level"]) != expected:
            conn.execute("UPDATE account_progress SET level = ? WHERE id = 1", (expected,))
