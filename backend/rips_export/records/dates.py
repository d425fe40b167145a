"""Date parsing, range filtering and RIPS date formatting.

Source records store dates in two shapes: timestamp-typed values (``datetime``
or ISO-8601 strings with a time part) and plain ``YYYY-MM-DD`` strings. Both
are reduced to a calendar day before range comparison; aware timestamps are
compared on their UTC day.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
import re

from ..core.types import DateValue

RIPS_DATETIME_FORMAT = "%Y-%m-%d %H:%M"
RIPS_DATE_FORMAT = "%Y-%m-%d"

_PLAIN_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: DateValue) -> datetime | None:
    """Parse a stored date value into a naive UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_utc_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if not text:
        return None
    if _PLAIN_DATE_RE.match(text):
        return datetime.strptime(text, RIPS_DATE_FORMAT)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _to_utc_naive(datetime.fromisoformat(text))
    except ValueError:
        pass
    try:
        return datetime.strptime(text, RIPS_DATETIME_FORMAT)
    except ValueError as err:
        raise ValueError(f"Unrecognized date value '{value}'") from err


def event_day(value: DateValue) -> date | None:
    """Return the calendar day of a stored date value."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_utc_naive(value).date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    if _PLAIN_DATE_RE.match(text):
        return date.fromisoformat(text)
    timestamp = parse_timestamp(text)
    return timestamp.date() if timestamp else None


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day range; a missing bound is open."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.start > self.end:
            raise ValueError(
                f"date range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @property
    def is_bounded(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, value: DateValue) -> bool:
        if not self.is_bounded:
            return True
        day = event_day(value)
        if day is None:
            return False
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True

    def as_dict(self) -> dict[str, str | None]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


def format_rips_datetime(value: DateValue) -> str | None:
    """Format as ``YYYY-MM-DD HH:MM``, truncating seconds."""
    timestamp = parse_timestamp(value)
    if timestamp is None:
        return None
    return timestamp.strftime(RIPS_DATETIME_FORMAT)


def format_rips_date(value: DateValue) -> str | None:
    day = event_day(value)
    if day is None:
        return None
    return day.strftime(RIPS_DATE_FORMAT)


def parse_rips_datetime(text: str) -> datetime:
    return datetime.strptime(text, RIPS_DATETIME_FORMAT)


def calculate_age(birth_date: DateValue, reference_date: date | None = None) -> int:
    """Completed years between birth date and reference date, never negative."""
    born = event_day(birth_date)
    if born is None:
        raise ValueError("birth date is required to compute age")
    today = reference_date or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return max(age, 0)
