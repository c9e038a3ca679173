"""
Half-open interval intersection used for booking and blackout checks
"""
from typing import Iterable, Tuple

Interval = Tuple[int, int]


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True when [a_start, a_end) and [b_start, b_end) intersect.

    Touching intervals (a_end == b_start) do not overlap, so back-to-back
    bookings are allowed when no buffer applies.
    """
    return a_start < b_end and a_end > b_start


def overlaps_any(interval: Interval, others: Iterable[Interval]) -> bool:
    start, end = interval
    return any(intervals_overlap(start, end, o_start, o_end) for o_start, o_end in others)
