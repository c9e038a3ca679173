from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from salonbook import models, slots
from salonbook.database import get_db
from salonbook.main import app

from conftest import make_business, make_service, make_staff, upcoming


@pytest.fixture
def seed(session_factory):
    """Business, service, staff and a promotion; the session is closed before requests run"""
    session = session_factory()
    try:
        business = make_business(session)
        cut = make_service(session, business, name="Haircut", duration_minutes=60)
        nails = make_service(session, business, name="Manicure", duration_minutes=30)
        stylist = make_staff(session, business, name="Amina", services=[cut])
        promo = models.Promotion(
            business_id=business.id, code="WELCOME", discount_value=10,
            valid_from=date.today() - timedelta(days=1), valid_to=date.today() + timedelta(days=30),
            max_uses=1,
        )
        session.add(promo)
        session.commit()
        ids = {
            "business": business.id,
            "cut": cut.id,
            "nails": nails.id,
            "stylist": stylist.id,
            "promo": promo.id,
        }
    finally:
        session.close()
    return ids


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _booking(seed, day, at="10:00", **extra):
    body = {
        "business_id": seed["business"],
        "service_id": seed["cut"],
        "name": "Wanjiru",
        "phone": "0711111111",
        "booking_date": day.isoformat(),
        "booking_time": at,
    }
    body.update(extra)
    return body


def test_slots_for_open_day(client, seed):
    monday = upcoming(0)
    response = client.get(
        f"/api/businesses/{seed['business']}/slots",
        params={"date": monday.isoformat(), "duration": 60},
    )

    assert response.status_code == 200
    slots = response.json()
    assert slots[0] == {"time": "09:00", "available": True}
    assert slots[-1] == {"time": "16:00", "available": True}
    assert len(slots) == 15


def test_slots_for_closed_day_are_empty(client, seed):
    response = client.get(
        f"/api/businesses/{seed['business']}/slots",
        params={"date": upcoming(6).isoformat(), "service_id": seed["cut"]},
    )
    assert response.status_code == 200
    assert response.json() == []


def test_slots_reject_past_dates_and_bad_durations(client, seed):
    url = f"/api/businesses/{seed['business']}/slots"

    assert client.get(url, params={"date": (date.today() - timedelta(days=1)).isoformat()}).status_code == 400
    assert client.get(url, params={"date": upcoming(0).isoformat(), "duration": 0}).status_code == 422
    assert client.get(url, params={"date": "01-06-2024"}).status_code == 422


def test_slots_for_unknown_business(client, seed):
    response = client.get("/api/businesses/999/slots", params={"date": upcoming(0).isoformat()})
    assert response.status_code == 404


def test_booking_then_slot_is_taken(client, seed):
    monday = upcoming(0)
    response = client.post("/api/bookings/", json=_booking(seed, monday, notes="  first visit\x07 "))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "Booked"
    assert body["time"] == "10:00:00"
    assert body["end_time"] == "11:00:00"
    assert body["notes"] == "first visit"
    assert body["customer"]["phone"] == "0711111111"

    slots = client.get(
        f"/api/businesses/{seed['business']}/slots",
        params={"date": monday.isoformat(), "service_id": seed["cut"]},
    ).json()
    availability = {s["time"]: s["available"] for s in slots}
    assert availability["09:00"] is True
    assert availability["10:00"] is False
    assert availability["11:00"] is True


def test_second_booking_gets_409(client, seed):
    monday = upcoming(0)
    assert client.post("/api/bookings/", json=_booking(seed, monday)).status_code == 201

    response = client.post("/api/bookings/", json=_booking(seed, monday, phone="0722222222"))
    assert response.status_code == 409
    assert response.json()["detail"] == "This time slot is no longer available"


def test_booking_error_kinds_map_to_status_codes(client, seed):
    monday = upcoming(0)

    missing = client.post("/api/bookings/", json=_booking(seed, monday, service_id=999))
    assert missing.status_code == 404

    wrong_staff = client.post(
        "/api/bookings/", json=_booking(seed, monday, service_id=seed["nails"], staff_id=seed["stylist"])
    )
    assert wrong_staff.status_code == 400


def test_booking_body_validation(client, seed):
    monday = upcoming(0)

    assert client.post("/api/bookings/", json=_booking(seed, monday, at="9:00")).status_code == 422
    assert client.post("/api/bookings/", json=_booking(seed, monday, name=" ")).status_code == 422
    yesterday = date.today() - timedelta(days=1)
    assert client.post("/api/bookings/", json=_booking(seed, yesterday)).status_code == 422


def test_promotion_code_is_applied_once(client, seed, session_factory):
    monday = upcoming(0)

    first = client.post("/api/bookings/", json=_booking(seed, monday, promotion_code="welcome"))
    assert first.status_code == 201
    assert first.json()["promotion_id"] == seed["promo"]

    exhausted = client.post(
        "/api/bookings/", json=_booking(seed, monday, at="13:00", promotion_code="WELCOME")
    )
    assert exhausted.status_code == 400

    session = session_factory()
    try:
        assert session.get(models.Promotion, seed["promo"]).current_uses == 1
    finally:
        session.close()


def test_status_update_and_listing(client, seed):
    monday = upcoming(0)
    booking_id = client.post("/api/bookings/", json=_booking(seed, monday)).json()["id"]
    url = f"/api/businesses/{seed['business']}/bookings/{booking_id}"

    response = client.patch(url, json={"status": "Cancelled"})
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"

    assert client.patch(url, json={"status": "Booked"}).status_code == 400
    assert client.patch(f"/api/businesses/{seed['business']}/bookings/999", json={"status": "Completed"}).status_code == 404

    listed = client.get(
        f"/api/businesses/{seed['business']}/bookings",
        params={"date": monday.isoformat(), "status": "Cancelled"},
    ).json()
    assert [b["id"] for b in listed] == [booking_id]

    # the cancelled slot can be booked again
    assert client.post("/api/bookings/", json=_booking(seed, monday, phone="0722222222")).status_code == 201


def test_staff_for_service(client, seed):
    response = client.get(f"/api/businesses/{seed['business']}/services/{seed['cut']}/staff")

    assert response.status_code == 200
    assert [s["name"] for s in response.json()] == ["Amina"]
    assert client.get(f"/api/businesses/{seed['business']}/services/{seed['nails']}/staff").json() == []


def test_phone_is_normalized_before_customer_lookup(client, seed, session_factory):
    monday = upcoming(0)

    first = client.post("/api/bookings/", json=_booking(seed, monday, phone="0711111111"))
    spaced = client.post("/api/bookings/", json=_booking(seed, monday, at="12:00", phone="0711 111 111"))
    intl = client.post("/api/bookings/", json=_booking(seed, monday, at="14:00", phone="+254711111111"))

    assert [r.status_code for r in (first, spaced, intl)] == [201, 201, 201]
    assert {r.json()["customer"]["id"] for r in (first, spaced, intl)} == {first.json()["customer"]["id"]}
    assert intl.json()["customer"]["phone"] == "0711111111"

    session = session_factory()
    try:
        assert session.query(models.Customer).count() == 1
    finally:
        session.close()


@pytest.mark.parametrize("phone", ["12345678", "0811111111", "+25471111111", "07111111112"])
def test_invalid_phone_is_rejected(client, seed, phone):
    response = client.post("/api/bookings/", json=_booking(seed, upcoming(0), phone=phone))
    assert response.status_code == 422


def test_unknown_business_with_promotion_code_is_404(client, seed):
    response = client.post(
        "/api/bookings/", json=_booking(seed, upcoming(0), business_id=999, promotion_code="WELCOME")
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Business not found"


def test_storage_error_during_slot_query_is_503(client, seed, monkeypatch):
    def broken_load(*args, **kwargs):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(slots, "load_occupied", broken_load)
    response = client.get(
        f"/api/businesses/{seed['business']}/slots",
        params={"date": upcoming(0).isoformat(), "service_id": seed["cut"]},
    )
    assert response.status_code == 503
