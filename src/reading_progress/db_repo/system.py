from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Any, Protocol

from reading_progress.db_constants import APP_CONFIG_DEFAULTS, JOB_CONFIG_KEYS
from reading_progress.gamification import DEFAULT_ECONOMY_TUNING

# Keys whose value must stay strictly positive; every other economy value only needs to be >= 0.
_POSITIVE_ECONOMY_KEYS = {"long_session_minutes"}


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...
    def get_app_config(self) -> dict[str, Any]: ...
    def get_app_config_value(self, key: str) -> Any: ...


class SystemMixin:
    def get_app_config(self: DbProtocol) -> dict[str, Any]:
        config = dict(APP_CONFIG_DEFAULTS)
        with self._connect() as conn:
            rows = conn.execute("SELECT key, value_json FROM app_config").fetchall()
        for row in rows:
            key = str(row["key"])
            if key not in APP_CONFIG_DEFAULTS:
                continue
            try:
                config[key] = json.loads(str(row["value_json"]))
            except json.JSONDecodeError:
                continue
        return config

    def set_app_config(self: DbProtocol, updates: dict[str, Any], actor: str = "system", note: str | None = None) -> dict[str, Any]:
        current = self.get_app_config()
        changes = {
            key: value
            for key, value in updates.items()
            if key in APP_CONFIG_DEFAULTS and current.get(key) != value
        }
        if not changes:
            return current
        now = datetime.now().isoformat()
        with self._connect() as conn:
            for key, value in changes.items():
                conn.execute(
                    """
                    INSERT INTO app_config(key, value_json, updated_at, updated_by)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value_json=excluded.value_json,
                        updated_at=excluded.updated_at,
                        updated_by=excluded.updated_by
                    """,
                    (key, json.dumps(value), now, actor),
                )
                conn.execute(
                    """
                    INSERT INTO admin_audit_log(actor, action, target, payload_json, created_at)
                    VALUES (?, 'config.update', ?, ?, ?)
                    """,
                    (actor, key, json.dumps({"value": value, "note": note}), now),
                )
        return self.get_app_config()

    def get_app_config_value(self: DbProtocol, key: str) -> Any:
        config = self.get_app_config()
        return config.get(key, APP_CONFIG_DEFAULTS.get(key))

    def is_feature_enabled(self: DbProtocol, feature_name: str) -> bool:
        value = self.get_app_config_value(f"feature.{feature_name}_enabled")
        if value is None:
            return True
        return bool(value)

    def is_job_enabled(self: DbProtocol, job_name: str) -> bool:
        key = JOB_CONFIG_KEYS.get(job_name)
        if not key:
            return True
        value = self.get_app_config_value(key)
        if value is None:
            return True
        return bool(value)

    def get_economy_tuning(self: DbProtocol) -> dict[str, int]:
        config = self.get_app_config()
        tuning: dict[str, int] = {}
        for name, default in DEFAULT_ECONOMY_TUNING.items():
            try:
                value = int(config.get(f"economy.{name}", default))
            except (TypeError, ValueError):
                value = default
            floor = 1 if name in _POSITIVE_ECONOMY_KEYS else 0
            tuning[name] = max(floor, value)
        return tuning

    def list_admin_audit(self: DbProtocol, limit: int = 100) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, actor, action, target, payload_json, created_at
                FROM admin_audit_log
                ORDER BY id DESC
                LIMIT ?
                """,
                (max(1, limit),),
            ).fetchall()
        return [dict(r) for r in rows]
