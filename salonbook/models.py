"""
Database models for the salon booking core
"""
import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Table,
    Text,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base


class BookingStatus(str, enum.Enum):
    BOOKED = "Booked"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    NO_SHOW = "No-Show"


# Statuses that hold their time range against other bookings
ACTIVE_STATUSES = [s.value for s in BookingStatus if s is not BookingStatus.CANCELLED]


staff_services = Table(
    "staff_services",
    Base.metadata,
    Column("staff_id", Integer, ForeignKey("staff.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", Integer, ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Business(Base):
    """Business with its weekly schedule and default buffer"""
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    phone = Column(String(20))
    location = Column(String(200))
    # {"monday": {"open": "09:00", "close": "17:00", "closed": false}, ...}
    working_hours = Column(JSON, nullable=False, default=dict)
    buffer_minutes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    services = relationship("Service", back_populates="business")
    staff = relationship("Staff", back_populates="business")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False)
    # Overrides the business buffer only when it is stricter
    buffer_minutes = Column(Integer, nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    business = relationship("Business", back_populates="services")
    staff = relationship("Staff", secondary=staff_services, back_populates="services")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    role = Column(String(50), nullable=False, default="stylist")
    # Falls back to the business schedule when null
    working_hours = Column(JSON, nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    business = relationship("Business", back_populates="staff")
    services = relationship("Service", secondary=staff_services, back_populates="staff")


class BlockedDate(Base):
    """Holiday, leave or maintenance window. No start/end means the whole day."""
    __tablename__ = "blocked_dates"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String(200))


class Customer(Base):
    """Guest customer, shared across businesses and identified by phone"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, server_default=func.now())

    bookings = relationship("Booking", back_populates="customer")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    # start + service duration; the buffer is not part of the stored range
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.BOOKED.value)
    promotion_id = Column(Integer, ForeignKey("promotions.id"), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    customer = relationship("Customer", back_populates="bookings")
    service = relationship("Service")
    staff = relationship("Staff")


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    code = Column(String(40), nullable=False)
    discount_type = Column(String(20), nullable=False, default="percentage")
    discount_value = Column(Numeric(10, 2), nullable=False)
    valid_from = Column(Date, nullable=False)
    valid_to = Column(Date, nullable=False)
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, nullable=False, default=0)
    # Service ids the code applies to; empty means every service
    applicable_services = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("business_id", "code", name="unique_promotion_code"),
    )


class BookingLock(Base):
    """One row per business day, locked FOR UPDATE while a booking is committed"""
    __tablename__ = "booking_locks"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    date = Column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("business_id", "date", name="unique_booking_day"),
    )
