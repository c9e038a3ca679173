import os
from datetime import date, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy.orm import sessionmaker

from salonbook import models
from salonbook.database import Base, make_engine

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def weekly_hours(open_="09:00", close="17:00", closed_days=("sunday",)):
    return {
        day: {"open": open_, "close": close, "closed": day in closed_days}
        for day in WEEKDAYS
    }


def upcoming(weekday: int) -> date:
    """Next date with the given weekday, at least one day after today"""
    today = date.today()
    ahead = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=ahead)


def make_business(db, slug="studio", buffer_minutes=0, working_hours=None):
    business = models.Business(
        name=slug.title(),
        slug=slug,
        phone="0712345678",
        location="Nairobi",
        working_hours=working_hours if working_hours is not None else weekly_hours(),
        buffer_minutes=buffer_minutes,
    )
    db.add(business)
    db.commit()
    return business


def make_service(db, business, name="Haircut", duration_minutes=60, buffer_minutes=None, active=True):
    service = models.Service(
        business_id=business.id,
        name=name,
        price=500,
        duration_minutes=duration_minutes,
        buffer_minutes=buffer_minutes,
        active=active,
    )
    db.add(service)
    db.commit()
    return service


def make_staff(db, business, name="Amina", services=(), working_hours=None, active=True):
    staff = models.Staff(
        business_id=business.id,
        name=name,
        working_hours=working_hours,
        active=active,
    )
    staff.services = list(services)
    db.add(staff)
    db.commit()
    return staff


def block(db, business, day, staff=None, start=None, end=None, reason="Holiday"):
    row = models.BlockedDate(
        business_id=business.id,
        staff_id=staff.id if staff else None,
        date=day,
        start_time=start,
        end_time=end,
        reason=reason,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'salonbook.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def monday():
    return upcoming(0)


@pytest.fixture
def business(db):
    return make_business(db)


@pytest.fixture
def service(db, business):
    return make_service(db, business)
