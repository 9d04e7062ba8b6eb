from __future__ import annotations

import logging

from reading_progress.config import Settings, load_economy_file
from reading_progress.db import Database
from reading_progress.goals import sync_goals
from reading_progress.service import refresh_plant_statuses
from reading_progress.time_utils import now_local

logger = logging.getLogger(__name__)

JOB_NAMES = ("plant_statuses", "sync_goals", "repair_level", "load_tuning")


def run_plant_statuses(db: Database, settings: Settings) -> None:
    changed = refresh_plant_statuses(db, now_local(settings.tz))
    logger.info("plant statuses refreshed: changed=%s", len(changed))


def run_sync_goals(db: Database, settings: Settings) -> None:
    result = sync_goals(db, now_local(settings.tz))
    logger.info("goals synced: goals=%s newly_completed=%s", len(result.goals), len(result.newly_completed))


def run_repair_level(db: Database, settings: Settings) -> None:
    progress, repaired = db.repair_account_level(now_local(settings.tz))
    if repaired:
        logger.info("account level repaired: level=%s total_xp=%s", progress.level, progress.total_xp)
    else:
        logger.info("account level consistent: level=%s", progress.level)


def run_load_tuning(db: Database, settings: Settings) -> None:
    overrides = load_economy_file(settings.economy_config_path)
    if not overrides:
        logger.info("no economy overrides in %s", settings.economy_config_path)
        return
    db.set_app_config(overrides, actor="load_tuning", note=str(settings.economy_config_path))
    logger.info("economy overrides loaded: keys=%s", ",".join(sorted(overrides)))


def run_job(job_name: str, db: Database, settings: Settings) -> None:
    if job_name not in JOB_NAMES:
        raise SystemExit(f"Unknown job '{job_name}'. Expected one of: {', '.join(JOB_NAMES)}")
    if not db.is_job_enabled(job_name):
        logger.info("job disabled: %s", job_name)
        return
    if job_name == "plant_statuses":
        run_plant_statuses(db, settings)
    elif job_name == "sync_goals":
        run_sync_goals(db, settings)
    elif job_name == "repair_level":
        run_repair_level(db, settings)
    else:
        run_load_tuning(db, settings)
