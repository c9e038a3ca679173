"""
Booking write path: commit-time conflict checking and status changes
"""
import logging
from datetime import date, time
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .blackouts import FULL_DAY, load_blackouts
from .database import read_only, unit_of_work
from .errors import ConflictError, InvalidInputError, NotFoundError
from .models import BookingStatus
from .overlap import overlaps_any
from .schedule import CLOSED, MINUTES_PER_DAY, from_minutes, hours_for, resolve_window, to_minutes
from .slots import effective_buffer, get_business, get_service, get_staff, load_occupied

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BookingStatus.BOOKED: {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW},
}


def lock_booking_day(db: Session, business_id: int, day: date) -> models.BookingLock:
    """Take the row lock that serializes all booking commits for one business day.

    The lock row is created on first use. When two transactions race to create
    it, the loser gets an IntegrityError from its savepoint and then waits on the
    winner's row lock.
    """
    query = db.query(models.BookingLock).filter(
        models.BookingLock.business_id == business_id,
        models.BookingLock.date == day,
    ).with_for_update()

    lock = query.first()
    if lock is None:
        try:
            with db.begin_nested():
                db.add(models.BookingLock(business_id=business_id, date=day))
        except IntegrityError:
            logger.debug(f"Lock row for business {business_id} on {day} created concurrently")
        lock = query.one()
    return lock


def upsert_customer(db: Session, name: str, phone: str) -> models.Customer:
    """Find the customer by phone or create one; the latest name wins"""
    customer = db.query(models.Customer).filter(models.Customer.phone == phone).first()
    if customer:
        customer.name = name
        return customer

    try:
        with db.begin_nested():
            customer = models.Customer(name=name, phone=phone)
            db.add(customer)
    except IntegrityError:
        # Same phone inserted by a booking for another business
        customer = db.query(models.Customer).filter(models.Customer.phone == phone).one()
        customer.name = name
    return customer


def create_booking(
    db: Session,
    business_id: int,
    service_id: int,
    customer_name: str,
    customer_phone: str,
    booking_date: date,
    booking_time: time,
    staff_id: Optional[int] = None,
    notes: Optional[str] = None,
    promotion_id: Optional[int] = None,
) -> models.Booking:
    """Create a booking in a single transaction.

    The availability check is repeated here under the day lock rather than
    trusting a slot list fetched earlier. Raises NotFoundError,
    InvalidAssignmentError, InvalidInputError, ConflictError or StorageFailure.
    Promotion usage is not incremented here.
    """
    with unit_of_work(db):
        # The lock row references the business, so it must exist first
        business = get_business(db, business_id)
        lock_booking_day(db, business_id, booking_date)

        service = get_service(db, business_id, service_id)
        staff = get_staff(db, business_id, staff_id, service) if staff_id is not None else None

        start = to_minutes(booking_time)
        end = start + service.duration_minutes
        if end >= MINUTES_PER_DAY:
            raise InvalidInputError("Booking must end on the same day")
        buffer_minutes = effective_buffer(service.buffer_minutes, business.buffer_minutes)

        window = resolve_window(hours_for(business, staff), booking_date)
        if window is CLOSED or start < window.open or end > window.close:
            raise ConflictError("Requested time is outside working hours")

        blackouts = load_blackouts(db, business_id, booking_date, staff_id)
        if blackouts is FULL_DAY or overlaps_any((start, end), blackouts):
            raise ConflictError("Requested time is blocked")

        occupied = load_occupied(db, business, booking_date, staff_id)
        if overlaps_any((start, end + buffer_minutes), occupied):
            logger.warning(
                f"⚠️ Slot taken: business {business_id}, {booking_date} {booking_time:%H:%M}, staff {staff_id}"
            )
            raise ConflictError("This time slot is no longer available")

        customer = upsert_customer(db, customer_name, customer_phone)

        booking = models.Booking(
            business_id=business_id,
            service_id=service.id,
            customer=customer,
            staff_id=staff_id,
            date=booking_date,
            time=from_minutes(start),
            end_time=from_minutes(end),
            status=BookingStatus.BOOKED.value,
            promotion_id=promotion_id,
            notes=notes,
        )
        db.add(booking)

    db.refresh(booking)
    logger.info(f"✅ Booking {booking.id} created for business {business_id} on {booking_date} at {booking.time:%H:%M}")
    return booking


def update_booking_status(db: Session, business_id: int, booking_id: int, status: str) -> models.Booking:
    """Move a Booked booking to Cancelled, Completed or No-Show"""
    try:
        new_status = BookingStatus(status)
    except ValueError:
        raise InvalidInputError(f"Invalid status '{status}'")

    with unit_of_work(db):
        booking = db.query(models.Booking).filter(
            models.Booking.id == booking_id,
            models.Booking.business_id == business_id,
        ).with_for_update().first()
        if not booking:
            raise NotFoundError("Booking not found")

        current = BookingStatus(booking.status)
        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidInputError(f"Cannot change status from {current.value} to {new_status.value}")
        booking.status = new_status.value

    db.refresh(booking)
    logger.info(f"Booking {booking_id} is now {new_status.value}")
    return booking


def list_bookings(
    db: Session,
    business_id: int,
    day: Optional[date] = None,
    status: Optional[str] = None,
) -> List[models.Booking]:
    """Newest day first, then by start time within a day"""
    with read_only(db):
        query = db.query(models.Booking).filter(models.Booking.business_id == business_id)

        if day:
            query = query.filter(models.Booking.date == day)
        if status:
            query = query.filter(models.Booking.status == status)

        return query.order_by(models.Booking.date.desc(), models.Booking.time).all()


def staff_for_service(db: Session, business_id: int, service_id: int) -> List[models.Staff]:
    """Active staff members assigned to a service"""
    with read_only(db):
        service = get_service(db, business_id, service_id)
        return db.query(models.Staff).join(models.Staff.services).filter(
            models.Staff.business_id == business_id,
            models.Staff.active.is_(True),
            models.Service.id == service.id,
        ).order_by(models.Staff.name).all()


def purge_booking_locks(db: Session, before: date) -> int:
    """Delete lock rows for days before ``before``.

    Only pass a day that has already passed; a row for a bookable day may be
    held by a commit in progress.
    """
    if before > date.today():
        raise InvalidInputError("Only past booking days can be purged")

    with unit_of_work(db):
        deleted = db.query(models.BookingLock).filter(
            models.BookingLock.date < before,
        ).delete(synchronize_session=False)

    logger.info(f"Purged {deleted} booking lock rows before {before}")
    return deleted
