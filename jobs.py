from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from reading_progress.config import load_settings
from reading_progress.db import Database
from reading_progress.jobs_runner import run_job
from reading_progress.logging_setup import setup_logging


def main() -> None:
    if len(sys.argv) != 2:
        raise SystemExit("Usage: python jobs.py <plant_statuses|sync_goals|repair_level|load_tuning>")

    settings = load_settings()
    setup_logging(settings.log_level)
    db = Database(settings.database_path)
    run_job(sys.argv[1], db, settings)


if __name__ == "__main__":
    main()
