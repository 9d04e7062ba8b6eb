from __future__ import annotations


class ReadingProgressError(Exception):
    """Base class for errors raised by the progression engine and its services."""


class NotFoundError(ReadingProgressError, LookupError):
    def __init__(self, kind: str, entity_id: int) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class DeadPlantError(ReadingProgressError):
    def __init__(self, plant_id: int) -> None:
        super().__init__("Cannot water a dead plant")
        self.plant_id = plant_id


class InsufficientCoinsError(ReadingProgressError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Insufficient coins: need {required}, have {available}")
        self.required = required
        self.available = available


class SpeciesUnavailableError(ReadingProgressError):
    pass


class InvalidSessionError(ReadingProgressError, ValueError):
    pass
