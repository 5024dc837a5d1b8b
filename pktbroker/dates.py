"""Calendar dates and whole-day differences in local time."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Optional, Union

_SECONDS_PER_DAY = 86400
_ATOI = re.compile(r"[ \t\n\r\f\v]*([+-]?[0-9]+)")
_MIN_DATE_TEXT = len("YYYY-MM-DD")


@dataclass(frozen=True, order=True)
class Date:
    """A calendar date; month and day are one-based. Ordered by year, month, day."""

    year: int = 0
    month: int = 0
    day: int = 0

    def to_time(self) -> int:
        """Seconds since the epoch of local midnight at the start of this date."""
        return int(time.mktime((self.year, self.month, self.day, 0, 0, 0, 0, 0, -1)))

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


def _whole_days(seconds: int) -> int:
    days = abs(seconds) // _SECONDS_PER_DAY
    return -days if seconds < 0 else days


def days_between(d1: Date, d2: Date) -> int:
    """Whole days from d1 to d2, truncated toward zero."""
    return _whole_days(d2.to_time() - d1.to_time())


def days_since(date: Date, now: Optional[float] = None) -> int:
    """Whole days from the date to now (the current time by default)."""
    current = int(time.time() if now is None else now)
    return _whole_days(current - date.to_time())


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


def parse_date(text: Union[str, bytes]) -> Date:
    """Parse 'YYYY-MM-DD'; each field is read like atoi, so junk reads as 0."""
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("ascii", errors="replace")
    if len(text) < _MIN_DATE_TEXT:
        raise ValueError(f"date text too short: {text!r}")
    return Date(_atoi(text[0:4]), _atoi(text[5:7]), _atoi(text[8:]))