"""Imperial calendar arithmetic.

Dates are strings ``"YYYY-DDD HH:MM"`` with 365-day years and day-of-year
starting at 001.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DAYS_PER_YEAR = 365
_DATE = re.compile(r"^(\d{1,5})-(\d{3})(?: (\d{2}):(\d{2}))?$")


class InvalidDateError(ValueError):
    pass


@dataclass(frozen=True)
class ImperialDate:
    year: int
    day: int
    hour: int = 0
    minute: int = 0

    def __str__(self) -> str:
        return f"{self.year}-{self.day:03d} {self.hour:02d}:{self.minute:02d}"

    def to_minutes(self) -> int:
        days = self.year * DAYS_PER_YEAR + (self.day - 1)
        return (days * 24 + self.hour) * 60 + self.minute

    @classmethod
    def from_minutes(cls, total: int) -> "ImperialDate":
        total_hours, minute = divmod(total, 60)
        total_days, hour = divmod(total_hours, 24)
        year, day_index = divmod(total_days, DAYS_PER_YEAR)
        return cls(year=year, day=day_index + 1, hour=hour, minute=minute)


def parse_date(value: str) -> ImperialDate:
    match = _DATE.match((value or "").strip())
    if not match:
        raise InvalidDateError(f"Invalid Imperial date: {value!r}")
    year, day = int(match.group(1)), int(match.group(2))
    hour = int(match.group(3) or 0)
    minute = int(match.group(4) or 0)
    if not 1 <= day <= DAYS_PER_YEAR or hour > 23 or minute > 59:
        raise InvalidDateError(f"Invalid Imperial date: {value!r}")
    return ImperialDate(year, day, hour, minute)


def advance_date(value: str, hours: int = 0, minutes: int = 0) -> str:
    """Return ``value`` moved forward (or back) by the given time."""
    start = parse_date(value)
    return str(ImperialDate.from_minutes(start.to_minutes() + hours * 60 + minutes))


def hours_between(start: str, end: str) -> float:
    return (parse_date(end).to_minutes() - parse_date(start).to_minutes()) / 60
