from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol

from reading_progress.db_constants import PLANT_HEALTHY, PLANT_STATUSES
from reading_progress.db_converters import _row_to_plant, _row_to_progress, _row_to_species
from reading_progress.db_models import AccountProgress, Plant, PlantSpecies
from reading_progress.errors import InsufficientCoinsError, NotFoundError


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...
    def get_plant(self, plant_id: int) -> Plant | None: ...
    def get_account_progress(self, now: datetime) -> AccountProgress: ...


class PlantMixin:
    def list_species(self: DbProtocol, available_only: bool = False) -> list[PlantSpecies]:
        with self._connect() as conn:
            if available_only:
                rows = conn.execute(
                    "SELECT * FROM plant_species WHERE is_available = 1 ORDER BY unlock_level ASC, id ASC"
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM plant_species ORDER BY unlock_level ASC, id ASC").fetchall()
        return [_row_to_species(r) for r in rows]

    def get_species(self: DbProtocol, species_id: int) -> PlantSpecies | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM plant_species WHERE id = ?", (species_id,)).fetchone()
        return _row_to_species(row) if row else None

    def get_species_by_name(self: DbProtocol, name: str) -> PlantSpecies | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM plant_species WHERE name = ?", (name,)).fetchone()
        return _row_to_species(row) if row else None

    def set_species_available(self: DbProtocol, species_id: int, available: bool) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE plant_species SET is_available = ? WHERE id = ?",
                (1 if available else 0, species_id),
            )
        return cur.rowcount > 0

    def add_plant(self: DbProtocol, species_id: int, name: str, now: datetime, is_active: bool = False) -> Plant:
        with self._connect() as conn:
            if is_active:
                conn.execute("UPDATE user_plants SET is_active = 0")
            cur = conn.execute(
                """
                INSERT INTO user_plants(species_id, name, current_level, status, last_watered, planted_at, is_active)
                VALUES (?, ?, 1, ?, ?, ?, ?)
                """,
                (species_id, name, PLANT_HEALTHY, now.isoformat(), now.isoformat(), 1 if is_active else 0),
            )
            row = conn.execute("SELECT * FROM user_plants WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return _row_to_plant(row)

    def purchase_plant_record(
        self: DbProtocol,
        species_id: int,
        name: str,
        cost: int,
        now: datetime,
    ) -> tuple[Plant, AccountProgress]:
        """Debit coins and create the plant in a single transaction."""
        self.get_account_progress(now)
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE account_progress
                SET coins = coins - ?, plants_purchased = plants_purchased + 1, updated_at = ?
                WHERE id = 1 AND coins >= ?
                """,
                (cost, now.isoformat(), cost),
            )
            if cur.rowcount == 0:
                row = conn.execute("SELECT coins FROM account_progress WHERE id = 1").fetchone()
                raise InsufficientCoinsError(required=cost, available=int(row["coins"]) if row else 0)
            cur = conn.execute(
                """
                INSERT INTO user_plants(species_id, name, current_level, status, last_watered, planted_at, is_active)
                VALUES (?, ?, 1, ?, ?, ?, 0)
                """,
                (species_id, name, PLANT_HEALTHY, now.isoformat(), now.isoformat()),
            )
            plant_row = conn.execute("SELECT * FROM user_plants WHERE id = ?", (cur.lastrowid,)).fetchone()
            progress_row = conn.execute("SELECT * FROM account_progress WHERE id = 1").fetchone()
        assert plant_row is not None and progress_row is not None
        return _row_to_plant(plant_row), _row_to_progress(progress_row)

    def get_plant(self: DbProtocol, plant_id: int) -> Plant | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM user_plants WHERE id = ?", (plant_id,)).fetchone()
        return _row_to_plant(row) if row else None

    def list_plants(self: DbProtocol) -> list[Plant]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM user_plants ORDER BY id ASC").fetchall()
        return [_row_to_plant(r) for r in rows]

    def get_active_plant(self: DbProtocol) -> Plant | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM user_plants WHERE is_active = 1 ORDER BY id ASC LIMIT 1").fetchone()
        return _row_to_plant(row) if row else None

    def set_active_plant(self: DbProtocol, plant_id: int) -> Plant:
        with self._connect() as conn:
            exists = conn.execute("SELECT id FROM user_plants WHERE id = ?", (plant_id,)).fetchone()
            if exists is None:
                raise NotFoundError("Plant", plant_id)
            conn.execute("UPDATE user_plants SET is_active = CASE WHEN id = ? THEN 1 ELSE 0 END", (plant_id,))
            row = conn.execute("SELECT * FROM user_plants WHERE id = ?", (plant_id,)).fetchone()
        assert row is not None
        return _row_to_plant(row)

    def save_plant_growth(self: DbProtocol, plant: Plant) -> None:
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE user_plants
                SET reading_days_count = ?, last_reading_day_recorded = ?, current_level = ?
                WHERE id = ?
                """,
                (
                    plant.reading_days_count,
                    plant.last_reading_day_recorded.isoformat() if plant.last_reading_day_recorded else None,
                    plant.current_level,
                    plant.id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Plant", plant.id)

    def set_plant_status(self: DbProtocol, plant_id: int, status: str) -> None:
        if status not in PLANT_STATUSES:
            raise ValueError(f"unknown plant status: {status}")
        with self._connect() as conn:
            cur = conn.execute("UPDATE user_plants SET status = ? WHERE id = ?", (status, plant_id))
            if cur.rowcount == 0:
                raise NotFoundError("Plant", plant_id)

    def water_plant_record(self: DbProtocol, plant_id: int, now: datetime) -> Plant:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE user_plants SET last_watered = ?, status = ? WHERE id = ?",
                (now.isoformat(), PLANT_HEALTHY, plant_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Plant", plant_id)
            row = conn.execute("SELECT * FROM user_plants WHERE id = ?", (plant_id,)).fetchone()
        assert row is not None
        return _row_to_plant(row)

    def delete_plant(self: DbProtocol, plant_id: int) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM user_plants WHERE id = ?", (plant_id,))
        return cur.rowcount > 0
