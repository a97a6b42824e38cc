from datetime import date

import pytest

from app.application.ports.identity import Caller
from app.application.services.calendar_feed_service import FeedFilter
from app.exceptions import InvalidInput
from app.schemas.appointments.appointment import AppointmentCreate

from conftest import MONDAY

STAFF = Caller(user_id="s1", role="staff")
SUMMER_MONDAY = date(2030, 7, 1)


@pytest.fixture
def feeds(clinic):
    d = clinic.directory
    d.add_specialty(3, "Cardiology", duration=45)
    d.add_specialty(4, "Dermatology")
    d.add_doctor(7, name="Dr. House", specialty_id=3)
    d.add_doctor(8, name="Dr. Grey", specialty_id=4)
    for doctor_id in (7, 8):
        d.add_interval(doctor_id, 0, "09:00", "12:00")
    return clinic.feeds


def book(clinic, doctor_id, on, at, name="Ana Pérez"):
    return clinic.appointments.create_appointment(AppointmentCreate(
        doctor_id=doctor_id,
        patient_name=name,
        patient_phone="+34 600 000 000",
        reason="Chest pain, follow-up",
        appointment_date=on.isoformat(),
        appointment_time=at,
    ), Caller(user_id="p1"))


def events(body):
    return body.count("BEGIN:VEVENT")


def test_pending_appointment_appears(feeds, clinic):
    appt = book(clinic, 7, MONDAY, "09:00")
    body = feeds.generate_feed(FeedFilter())

    assert events(body) == 1
    assert f"UID:appointment-{appt.id}@clinic.test" in body
    assert "SUMMARY:Appointment: Ana Pérez with Dr. House - Cardiology" in body
    assert "STATUS:TENTATIVE" in body
    # winter: Atlantic/Canary is UTC+0
    assert "DTSTART:20300114T090000Z" in body
    # cardiology lasts 45 minutes
    assert "DTEND:20300114T094500Z" in body


def test_confirmed_is_marked_confirmed(feeds, clinic):
    appt = book(clinic, 7, MONDAY, "09:00")
    clinic.appointments.update_status(appt.id, "confirmed", STAFF)

    assert "STATUS:CONFIRMED" in feeds.generate_feed(FeedFilter())


def test_cancelled_appointment_disappears(feeds, clinic):
    appt = book(clinic, 7, MONDAY, "09:00")
    clinic.appointments.update_status(appt.id, "cancelled", STAFF)

    assert events(feeds.generate_feed(FeedFilter())) == 0


def test_summer_time_is_converted_to_utc(feeds, clinic):
    book(clinic, 8, SUMMER_MONDAY, "09:00")

    body = feeds.generate_feed(FeedFilter())
    assert "DTSTART:20300701T080000Z" in body
    assert "DTEND:20300701T083000Z" in body


def test_feed_is_idempotent(feeds, clinic):
    book(clinic, 7, MONDAY, "09:00")
    book(clinic, 8, MONDAY, "10:00", name="Luis")

    assert feeds.generate_feed(FeedFilter()) == feeds.generate_feed(FeedFilter())
    assert feeds.generate_doctor_feed(7) == feeds.generate_doctor_feed(7)


def test_filters_are_combined(feeds, clinic):
    book(clinic, 7, MONDAY, "09:00")
    book(clinic, 8, MONDAY, "09:00", name="Luis")
    book(clinic, 7, date(2030, 1, 21), "09:00", name="Marta")

    assert events(feeds.generate_feed(FeedFilter(specialty_id=3))) == 2
    assert events(feeds.generate_feed(FeedFilter(doctor_id=8))) == 1
    assert events(feeds.generate_feed(FeedFilter(specialty_id=3, date_from=date(2030, 1, 20)))) == 1
    assert events(feeds.generate_feed(FeedFilter(doctor_id=8, specialty_id=3))) == 0
    assert events(feeds.generate_feed(FeedFilter(date_from=MONDAY, date_to=MONDAY))) == 2


def test_reversed_range_is_rejected(feeds):
    with pytest.raises(InvalidInput):
        feeds.generate_feed(FeedFilter(date_from=date(2030, 2, 1), date_to=date(2030, 1, 1)))


def test_doctor_feed_only_has_that_doctor(feeds, clinic):
    book(clinic, 7, MONDAY, "09:00")
    book(clinic, 8, MONDAY, "09:00", name="Luis")

    body = feeds.generate_doctor_feed(8)
    assert events(body) == 1
    assert "X-WR-CALNAME:Dr. Grey - Appointments" in body


def test_unknown_doctor_gets_empty_calendar(feeds, clinic):
    book(clinic, 7, MONDAY, "09:00")

    body = feeds.generate_doctor_feed(999)
    assert body.startswith("BEGIN:VCALENDAR")
    assert events(body) == 0
    assert "Doctor 999" in body


def test_description_is_escaped(feeds, clinic):
    book(clinic, 7, MONDAY, "09:00")
    body = feeds.generate_feed(FeedFilter())

    unfolded = body.replace("\r\n ", "")
    assert "Reason: Chest pain\\, follow-up\\n" in unfolded
    assert "Phone: +34 600 000 000" in unfolded


def test_subscription_urls(feeds):
    urls = feeds.subscription_urls("http://clinic.test/")

    assert urls["all"] == "http://clinic.test/ical/calendar.ics"
    assert urls["date_range_template"] == "http://clinic.test/ical/calendar.ics?from={from}&to={to}"
    assert {d["url"] for d in urls["doctors"]} == {
        "http://clinic.test/ical/doctor/7/calendar.ics",
        "http://clinic.test/ical/doctor/8/calendar.ics",
    }
    assert {s["url"] for s in urls["specialties"]} == {
        "http://clinic.test/ical/calendar.ics?specialtyId=3",
        "http://clinic.test/ical/calendar.ics?specialtyId=4",
    }
