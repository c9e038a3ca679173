"""
Working-hours resolution.

Raw schedules are stored as JSON keyed by lower-case weekday name. They are
parsed into a ``WorkingHours`` mapping where every weekday is either a
``DayWindow`` or ``CLOSED``, so callers never branch on missing keys.
"""
import enum
from dataclasses import dataclass
from datetime import date, time
from typing import Dict, Optional, Union

from .errors import InvalidInputError

MINUTES_PER_DAY = 24 * 60


class Weekday(str, enum.Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


class Closed:
    """The day has no bookable window"""

    def __repr__(self):
        return "CLOSED"


CLOSED = Closed()


@dataclass(frozen=True)
class DayWindow:
    """Open interval of a day, in minutes since midnight"""
    open: int
    close: int


WorkingHours = Dict[Weekday, Union[DayWindow, Closed]]


def parse_hhmm(value: str) -> int:
    """Parse "HH:mm" into minutes since midnight"""
    try:
        hours, minutes = value.split(":")[:2]
        h, m = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise InvalidInputError(f"Invalid time '{value}', expected HH:mm")
    if not (0 <= h < 24 and 0 <= m < 60):
        raise InvalidInputError(f"Invalid time '{value}', expected HH:mm")
    return h * 60 + m


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidInputError("Time must fall within a single day")
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_day(raw: Optional[dict]) -> Union[DayWindow, Closed]:
    if not raw or raw.get("closed"):
        return CLOSED
    if not raw.get("open") or not raw.get("close"):
        return CLOSED
    window = DayWindow(parse_hhmm(raw["open"]), parse_hhmm(raw["close"]))
    # Upstream validation should prevent this, but never hand out a negative window
    if window.open >= window.close:
        return CLOSED
    return window


def parse_working_hours(raw: Optional[dict]) -> Optional[WorkingHours]:
    """Turn a stored schedule into ``WorkingHours``; ``None`` stays ``None``"""
    if raw is None:
        return None
    return {day: _parse_day(raw.get(day.value)) for day in Weekday}


def resolve_window(working_hours: Optional[WorkingHours], day: date) -> Union[DayWindow, Closed]:
    if not working_hours:
        return CLOSED
    return working_hours.get(Weekday.of(day), CLOSED)


def hours_for(business, staff=None) -> Optional[WorkingHours]:
    """Staff schedule when the staff member has one, else the business schedule"""
    if staff is not None and staff.working_hours is not None:
        return parse_working_hours(staff.working_hours)
    return parse_working_hours(business.working_hours)
