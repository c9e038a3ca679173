import logging
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import booking_service, models, promotions, schemas, slots
from .config import LOG_LEVEL
from .database import engine, get_db
from .errors import BookingError

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create tables
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="Salon Booking System", version="1.0.0")


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/api/businesses/{business_id}/slots", response_model=List[schemas.SlotResponse])
def get_slots(
    business_id: int,
    booking_date: date = Query(..., alias="date"),
    duration: int = Query(30, ge=1, le=480),
    service_id: Optional[int] = Query(None),
    staff_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    """Available start times for one day at a fixed cadence"""
    if booking_date < date.today():
        raise HTTPException(status_code=400, detail="Cannot book in the past")

    return slots.get_available_slots(
        db,
        business_id,
        booking_date,
        duration_minutes=duration,
        staff_id=staff_id,
        service_id=service_id,
    )


@app.post("/api/bookings/", response_model=schemas.BookingResponse, status_code=201)
def create_booking(booking: schemas.BookingCreate, db: Session = Depends(get_db)):
    """Create a booking; 409 when the slot was taken in the meantime"""
    slots.get_business(db, booking.business_id)

    promotion_id = None
    if booking.promotion_code:
        promo = promotions.validate_promotion(
            db, booking.business_id, booking.promotion_code, booking.service_id
        )
        if not promo:
            raise HTTPException(status_code=400, detail="Invalid or expired promotion code")
        promotion_id = promo.id

    db_booking = booking_service.create_booking(
        db,
        business_id=booking.business_id,
        service_id=booking.service_id,
        customer_name=booking.name,
        customer_phone=booking.phone,
        booking_date=booking.booking_date,
        booking_time=booking.start_time(),
        staff_id=booking.staff_id,
        notes=booking.notes,
        promotion_id=promotion_id,
    )

    # Best-effort, outside the booking transaction
    if promotion_id is not None:
        promotions.increment_usage(db, promotion_id)

    return db_booking


@app.get("/api/businesses/{business_id}/bookings", response_model=List[schemas.BookingResponse])
def get_bookings(
    business_id: int,
    booking_date: Optional[date] = Query(None, alias="date"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Bookings of a business, optionally for one day or status"""
    return booking_service.list_bookings(db, business_id, day=booking_date, status=status)


@app.patch("/api/businesses/{business_id}/bookings/{booking_id}", response_model=schemas.BookingResponse)
def update_booking(
    business_id: int,
    booking_id: int,
    update: schemas.StatusUpdate,
    db: Session = Depends(get_db)
):
    """Cancel, complete or mark a booking as a no-show"""
    return booking_service.update_booking_status(db, business_id, booking_id, update.status)


@app.get("/api/businesses/{business_id}/services/{service_id}/staff", response_model=List[schemas.StaffResponse])
def get_service_staff(business_id: int, service_id: int, db: Session = Depends(get_db)):
    """Staff members who can be booked for a service"""
    return booking_service.staff_for_service(db, business_id, service_id)
