"""
Available-slot generation for a business day
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from . import models
from .blackouts import FULL_DAY, load_blackouts
from .config import SLOT_INTERVAL_MINUTES
from .database import read_only
from .errors import InvalidAssignmentError, InvalidInputError, NotFoundError
from .overlap import Interval, overlaps_any
from .schedule import CLOSED, DayWindow, format_minutes, hours_for, resolve_window, to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    time: str
    available: bool


def effective_buffer(service_buffer: Optional[int], business_buffer: Optional[int]) -> int:
    """The stricter of the service and business buffers"""
    return max(service_buffer or 0, business_buffer or 0)


def generate_slots(
    window: DayWindow,
    duration_minutes: int,
    buffer_minutes: int,
    occupied: Iterable[Interval],
    blackout_ranges: Iterable[Interval],
    interval_minutes: int = SLOT_INTERVAL_MINUTES,
) -> List[Slot]:
    """Candidate starts from ``window.open`` every ``interval_minutes``.

    A start is offered while ``start + duration <= close``; its trailing buffer
    may run past closing. ``occupied`` holds existing bookings already widened
    by their own buffer and is tested against ``[start, start + duration +
    buffer)``. Blackouts are tested against ``[start, start + duration)`` only.
    """
    occupied = list(occupied)
    blackout_ranges = list(blackout_ranges)
    slots = []
    start = window.open
    while start + duration_minutes <= window.close:
        end = start + duration_minutes
        taken = overlaps_any((start, end + buffer_minutes), occupied)
        blocked = overlaps_any((start, end), blackout_ranges)
        slots.append(Slot(time=format_minutes(start), available=not (taken or blocked)))
        start += interval_minutes
    return slots


def load_occupied(db: Session, business: models.Business, day: date, staff_id: Optional[int] = None) -> List[Interval]:
    """Non-cancelled bookings in one staff scope as ``[time, end_time + buffer)``.

    Bookings assigned to a staff member only collide with that staff member;
    unassigned bookings only collide with other unassigned bookings.
    """
    query = db.query(models.Booking.time, models.Booking.end_time, models.Service.buffer_minutes).join(
        models.Service, models.Booking.service_id == models.Service.id
    ).filter(
        models.Booking.business_id == business.id,
        models.Booking.date == day,
        models.Booking.status.in_(models.ACTIVE_STATUSES),
    )
    if staff_id is None:
        query = query.filter(models.Booking.staff_id.is_(None))
    else:
        query = query.filter(models.Booking.staff_id == staff_id)

    return [
        (to_minutes(start), to_minutes(end) + effective_buffer(service_buffer, business.buffer_minutes))
        for start, end, service_buffer in query.all()
    ]


def get_business(db: Session, business_id: int) -> models.Business:
    business = db.query(models.Business).filter(models.Business.id == business_id).first()
    if not business:
        raise NotFoundError("Business not found")
    return business


def get_service(db: Session, business_id: int, service_id: int) -> models.Service:
    service = db.query(models.Service).filter(
        models.Service.id == service_id,
        models.Service.business_id == business_id,
    ).first()
    if not service or not service.active:
        raise NotFoundError("Service not found")
    return service


def get_staff(db: Session, business_id: int, staff_id: int, service: Optional[models.Service] = None) -> models.Staff:
    staff = db.query(models.Staff).filter(
        models.Staff.id == staff_id,
        models.Staff.business_id == business_id,
    ).first()
    if not staff:
        raise NotFoundError("Staff member not found")
    if not staff.active:
        raise InvalidAssignmentError("Staff member is not taking bookings")
    if service is not None and service not in staff.services:
        raise InvalidAssignmentError("Staff member does not perform this service")
    return staff


def get_available_slots(
    db: Session,
    business_id: int,
    day: date,
    duration_minutes: Optional[int] = None,
    staff_id: Optional[int] = None,
    service_id: Optional[int] = None,
) -> List[Slot]:
    """Slot grid for one day; empty when the day is closed or fully blocked.

    With ``service_id`` the service's own duration and buffer are used.
    Otherwise ``duration_minutes`` is required and only the business buffer
    applies.
    """
    with read_only(db):
        business = get_business(db, business_id)

        service = None
        if service_id is not None:
            service = get_service(db, business_id, service_id)
            duration_minutes = service.duration_minutes
            buffer_minutes = effective_buffer(service.buffer_minutes, business.buffer_minutes)
        else:
            buffer_minutes = effective_buffer(None, business.buffer_minutes)

        if duration_minutes is None or duration_minutes < 1:
            raise InvalidInputError("Duration must be at least 1 minute")

        staff = get_staff(db, business_id, staff_id, service) if staff_id is not None else None

        window = resolve_window(hours_for(business, staff), day)
        if window is CLOSED:
            logger.debug(f"Business {business_id} closed on {day} (staff {staff_id})")
            return []

        blackouts = load_blackouts(db, business_id, day, staff_id)
        if blackouts is FULL_DAY:
            logger.debug(f"Business {business_id} blocked on {day} (staff {staff_id})")
            return []

        occupied = load_occupied(db, business, day, staff_id)
        return generate_slots(window, duration_minutes, buffer_minutes, occupied, blackouts)

