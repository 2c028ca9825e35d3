"""Error taxonomy for the Four Pillars engine."""

from typing import Optional


class FourPillarsError(Exception):
    """Base class for errors raised by the engine."""


class UnsupportedYearError(FourPillarsError, ValueError):
    """The requested civil year is outside the supported astronomical range."""

    def __init__(self, year: int, min_year: int, max_year: int):
        self.year = year
        self.min_year = min_year
        self.max_year = max_year
        super().__init__(
            f"Year {year} is outside the supported range {min_year}-{max_year}"
        )


class InvalidHourIndexError(FourPillarsError, ValueError):
    """Hour index is not one of the twelve branch hours (0-11)."""

    def __init__(self, hour_index: object, reason: Optional[str] = None):
        self.hour_index = hour_index
        message = f"Hour index must be an integer in 0-11, got {hour_index!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
