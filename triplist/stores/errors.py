"""Errors raised by the in-memory stores."""
from typing import List


class TripNotFoundError(LookupError):
    pass


class DayNotFoundError(LookupError):
    pass


class ActivityNotFoundError(LookupError):
    pass


class TripValidationError(ValueError):
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {', '.join(self.errors)}")


class InvalidCursorError(ValueError):
    pass
