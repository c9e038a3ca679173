"""
Blocked-date resolution for a business day
"""
from datetime import date
from typing import FrozenSet, Iterable, Optional, Union

from sqlalchemy.orm import Session

from . import models
from .overlap import Interval
from .schedule import to_minutes


class FullDayBlocked:
    def __repr__(self):
        return "FULL_DAY"


FULL_DAY = FullDayBlocked()

Blackouts = Union[FullDayBlocked, FrozenSet[Interval]]


def _in_scope(row: models.BlockedDate, staff_id: Optional[int]) -> bool:
    # Global rows always apply; staff rows only to that staff member's queries
    return row.staff_id is None or (staff_id is not None and row.staff_id == staff_id)


def resolve_blackouts(rows: Iterable[models.BlockedDate], staff_id: Optional[int] = None) -> Blackouts:
    """Reduce blocked-date rows of one day to FULL_DAY or a set of ranges.

    Ranges are returned as-is, without merging; the overlap check treats them
    as an unordered set.
    """
    ranges = set()
    for row in rows:
        if not _in_scope(row, staff_id):
            continue
        if row.start_time is None or row.end_time is None:
            return FULL_DAY
        start, end = to_minutes(row.start_time), to_minutes(row.end_time)
        if start < end:
            ranges.add((start, end))
    return frozenset(ranges)


def load_blackouts(db: Session, business_id: int, day: date, staff_id: Optional[int] = None) -> Blackouts:
    rows = db.query(models.BlockedDate).filter(
        models.BlockedDate.business_id == business_id,
        models.BlockedDate.date == day,
    ).all()
    return resolve_blackouts(rows, staff_id)
