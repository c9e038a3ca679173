import re
from pydantic import BaseModel, Field, validator
from datetime import date, datetime, time
from typing import Optional

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
PHONE_PATTERN = re.compile(r"^(\+254|0)[17]\d{8}$")
WHITESPACE = re.compile(r"\s+")


def sanitize(value: str) -> str:
    """Trim and drop control characters"""
    return CONTROL_CHARS.sub("", value.strip())


class CustomerResponse(BaseModel):
    id: int
    name: str
    phone: str

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    time: str
    available: bool


class BookingCreate(BaseModel):
    business_id: int
    service_id: int
    name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., min_length=7, max_length=20)
    booking_date: date
    booking_time: str
    staff_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=1000)
    promotion_code: Optional[str] = Field(None, max_length=40)

    @validator('name')
    def clean_text(cls, v):
        v = sanitize(v)
        if len(v) < 2:
            raise ValueError('Value is too short')
        return v

    @validator('phone')
    def phone_format(cls, v):
        v = WHITESPACE.sub("", v)
        if not PHONE_PATTERN.match(v):
            raise ValueError('Invalid phone number. Use 07XXXXXXXX or +2547XXXXXXXX')
        # One stored form per number, so customers are matched by phone
        return "0" + v[-9:]

    @validator('notes')
    def clean_notes(cls, v):
        if v is None:
            return v
        return sanitize(v) or None

    @validator('booking_date')
    def date_not_in_past(cls, v):
        if v < date.today():
            raise ValueError('Cannot book in the past')
        return v

    @validator('booking_time')
    def time_format(cls, v):
        if not TIME_PATTERN.match(v):
            raise ValueError('Invalid time format. Use HH:mm')
        return v

    def start_time(self) -> time:
        hours, minutes = self.booking_time.split(":")
        return time(int(hours), int(minutes))


class BookingResponse(BaseModel):
    id: int
    business_id: int
    service_id: int
    staff_id: Optional[int] = None
    promotion_id: Optional[int] = None
    date: date
    time: time
    end_time: time
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    customer: CustomerResponse

    class Config:
        from_attributes = True


class StatusUpdate(BaseModel):
    status: str


class StaffResponse(BaseModel):
    id: int
    name: str
    role: str

    class Config:
        from_attributes = True
