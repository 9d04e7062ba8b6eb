from .base import BaseDatabase
from .progress import ProgressMixin
from .library import LibraryMixin
from .plants import PlantMixin
from .goals import GoalMixin
from .system import SystemMixin

__all__ = [
    "BaseDatabase",
    "ProgressMixin",
    "LibraryMixin",
    "PlantMixin",
    "GoalMixin",
    "SystemMixin",
]
