from __future__ import annotations

from reading_progress.db_models import (  # noqa: F401
    AccountProgress,
    Book,
    BookGenre,
    Genre,
    GoalExclusion,
    GoalGenreFilter,
    Plant,
    PlantSpecies,
    ReadingGoal,
    ReadingSession,
)
from reading_progress.db_repo import (
    BaseDatabase,
    GoalMixin,
    LibraryMixin,
    PlantMixin,
    ProgressMixin,
    SystemMixin,
)


class Database(
    BaseDatabase,
    ProgressMixin,
    LibraryMixin,
    PlantMixin,
    GoalMixin,
    SystemMixin,
):
    pass
