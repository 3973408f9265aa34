"""Local calendar date and time-of-day strings."""

from __future__ import annotations

from datetime import datetime
from typing import Callable


class LocalClock:
    """Formats the local wall clock for log file names and entry timestamps."""

    def __init__(self, now: Callable[[], datetime] | None = None) -> None:
        self._now = now or datetime.now

    def today(self) -> str:
        """Return the local date as ``YYYY-MM-DD``."""

        return self._now().strftime("%Y-%m-%d")

    def time_of_day(self) -> str:
        """Return the local time as 24-hour ``HH:MM:SS``."""

        return self._now().strftime("%H:%M:%S")


__all__ = ["LocalClock"]
