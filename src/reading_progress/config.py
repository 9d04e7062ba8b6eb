from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from reading_progress.db_constants import APP_CONFIG_DEFAULTS

logger = logging.getLogger(__name__)

ECONOMY_PREFIX = "economy."


@dataclass(frozen=True)
class Settings:
    database_path: Path
    tz: str
    economy_config_path: Path
    log_level: str


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        raw = line.strip()
        if not raw or raw.startswith("#") or "=" not in raw:
            continue
        key, value = raw.split("=", maxsplit=1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _parse_log_level(value: str | None, default: str = "INFO") -> str:
    if not value:
        return default
    level = value.strip().upper()
    if level not in logging.getLevelNamesMapping():
        return default
    return level


def load_settings(env_file: Path = Path(".env")) -> Settings:
    _load_env_file(env_file)
    return Settings(
        database_path=Path(os.getenv("DATABASE_PATH", "./data/reading.db")),
        tz=os.getenv("TZ", "UTC") or "UTC",
        economy_config_path=Path(os.getenv("ECONOMY_CONFIG", "./economy.yaml")),
        log_level=_parse_log_level(os.getenv("LOG_LEVEL")),
    )


def load_economy_file(path: Path) -> dict[str, Any]:
    """Read economy overrides from YAML.

    Accepts flat ``economy.<name>: value`` keys or a nested ``economy:`` mapping. Returns the
    app-config keys to write; a missing file means no overrides.
    """
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text()) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")

    flat: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "economy" and isinstance(value, dict):
            for name, inner in value.items():
                flat[f"{ECONOMY_PREFIX}{name}"] = inner
        else:
            flat[str(key)] = value

    overrides: dict[str, Any] = {}
    for key, value in flat.items():
        if not key.startswith(ECONOMY_PREFIX) or key not in APP_CONFIG_DEFAULTS:
            logger.warning("ignoring unknown economy key %s in %s", key, path)
            continue
        try:
            overrides[key] = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{path}: {key} must be an integer, got {value!r}") from None
    return overrides
