from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol

from reading_progress.db_converters import _row_to_progress
from reading_progress.db_models import AccountProgress
from reading_progress.errors import InsufficientCoinsError
from reading_progress.gamification import level_from_xp, level_up_coins


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...
    def get_economy_tuning(self) -> dict[str, int]: ...
    def get_account_progress(self, now: datetime) -> AccountProgress: ...


class ProgressMixin:
    def get_account_progress(self: DbProtocol, now: datetime) -> AccountProgress:
        """Return the single progress record, creating it with the starting coins on first use."""
        starting_coins = self.get_economy_tuning()["starting_coins"]
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO account_progress(id, total_xp, level, coins, plants_purchased, updated_at)
                VALUES (1, 0, 1, ?, 0, ?)
                """,
                (starting_coins, now.isoformat()),
            )
            row = conn.execute("SELECT * FROM account_progress WHERE id = 1").fetchone()
        assert row is not None
        return _row_to_progress(row)

    def save_account_progress(self: DbProtocol, progress: AccountProgress) -> AccountProgress:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE account_progress
                SET total_xp = ?, level = ?, coins = ?, plants_purchased = ?, updated_at = ?
                WHERE id = 1
                """,
                (
                    progress.total_xp,
                    progress.level,
                    progress.coins,
                    progress.plants_purchased,
                    progress.updated_at.isoformat(),
                ),
            )
        return progress

    def apply_xp_award(
        self: DbProtocol,
        xp: int,
        now: datetime,
        tuning: dict[str, int] | None = None,
    ) -> tuple[AccountProgress, AccountProgress]:
        """Add XP and any level-up coins in one write transaction.

        Returns the record as read inside the transaction and the record after the update.
        """
        self.get_account_progress(now)
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT * FROM account_progress WHERE id = 1").fetchone()
            assert row is not None
            before = _row_to_progress(row)
            new_total = before.total_xp + max(0, xp)
            new_level = level_from_xp(new_total)
            coins = level_up_coins(level_from_xp(before.total_xp), new_level, tuning)
            conn.execute(
                """
                UPDATE account_progress
                SET total_xp = ?, level = ?, coins = coins + ?, updated_at = ?
                WHERE id = 1
                """,
                (new_total, new_level, coins, now.isoformat()),
            )
            after_row = conn.execute("SELECT * FROM account_progress WHERE id = 1").fetchone()
        assert after_row is not None
        return before, _row_to_progress(after_row)

    def repair_account_level(self: DbProtocol, now: datetime) -> tuple[AccountProgress, bool]:
        current = self.get_account_progress(now)
        expected = level_from_xp(current.total_xp)
        if current.level == expected:
            return current, False
        with self._connect() as conn:
            conn.execute(
                "UPDATE account_progress SET level = ?, updated_at = ? WHERE id = 1",
                (expected, now.isoformat()),
            )
        return self.get_account_progress(now), True

    def spend_coins(self: DbProtocol, amount: int, now: datetime) -> AccountProgress:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        current = self.get_account_progress(now)
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE account_progress SET coins = coins - ?, updated_at = ? WHERE id = 1 AND coins >= ?",
                (amount, now.isoformat(), amount),
            )
        if cur.rowcount == 0:
            raise InsufficientCoinsError(required=amount, available=current.coins)
        return self.get_account_progress(now)

    def add_coins(self: DbProtocol, amount: int, now: datetime) -> AccountProgress:
        self.get_account_progress(now)
        with self._connect() as conn:
            conn.execute(
                "UPDATE account_progress SET coins = MAX(0, coins + ?), updated_at = ? WHERE id = 1",
                (amount, now.isoformat()),
            )
        return self.get_account_progress(now)
