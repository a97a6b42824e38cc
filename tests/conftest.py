import os

# settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ.pop("REDIS_URL", None)

import itertools
import threading
from dataclasses import replace
from datetime import datetime, date, timezone
from types import SimpleNamespace
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from app.application.ports.appointments_repo import AppointmentDto, AppointmentQuery, ACTIVE_STATUSES
from app.application.ports.directory_repo import (
    DoctorDto,
    SpecialtyDto,
    WorkingIntervalDto,
    ScheduleExceptionDto,
    AppointmentDurationDto,
)
from app.application.services.appointments_service import AppointmentsService
from app.application.services.availability_service import AvailabilityService
from app.application.services.booking_policy import BookingPolicy
from app.application.services.calendar_feed_service import CalendarFeedService
from app.exceptions import SlotTaken
from app.utils import parse_hhmm

CLINIC_TZ = ZoneInfo("Atlantic/Canary")
# Monday 7 January 2030, 08:00 at the clinic
FIXED_NOW = datetime(2030, 1, 7, 8, 0, tzinfo=CLINIC_TZ)
MONDAY = date(2030, 1, 14)
TUESDAY = date(2030, 1, 15)


class FakeDirectory:
    def __init__(self):
        self.doctors = {}
        self.specialties = {}
        self.durations = {}
        self.schedules = {}
        self.exceptions = []
        self._ids = itertools.count(1000)

    # helpers for arranging tests
    def add_doctor(self, doctor_id: int, name: str = "Dr. Gregory House", specialty_id: Optional[int] = None,
                   active: bool = True, appointment_minutes: Optional[int] = None) -> DoctorDto:
        doctor = DoctorDto(id=doctor_id, name=name, specialty_id=specialty_id, active=active,
                           appointment_minutes=appointment_minutes)
        self.doctors[doctor_id] = doctor
        return doctor

    def add_specialty(self, specialty_id: int, name: str, duration: Optional[int] = None) -> SpecialtyDto:
        specialty = SpecialtyDto(id=specialty_id, name=name, description=None, active=True)
        self.specialties[specialty_id] = specialty
        if duration:
            self.durations[specialty_id] = duration
        return specialty

    def add_interval(self, doctor_id: int, weekday: int, start: str, end: str) -> None:
        self.schedules.setdefault(doctor_id, []).append(WorkingIntervalDto(weekday=weekday, start_time=start, end_time=end))

    def add_closure(self, doctor_id: int, on: date, start: Optional[str] = None, end: Optional[str] = None, is_available: bool = False):
        exc = ScheduleExceptionDto(id=next(self._ids), doctor_id=doctor_id, exception_date=on, start_time=start,
                                   end_time=end, reason="test", is_available=is_available)
        self.exceptions.append(exc)
        return exc

    # DirectoryRepository
    def get_doctor(self, doctor_id):
        return self.doctors.get(doctor_id)

    def list_doctors(self, include_archived=False, specialty_id=None):
        doctors = [d for d in self.doctors.values() if include_archived or d.active]
        if specialty_id is not None:
            doctors = [d for d in doctors if d.specialty_id == specialty_id]
        return sorted(doctors, key=lambda d: (d.name, d.id))

    def create_doctor(self, fields):
        doctor = DoctorDto(id=next(self._ids), **fields)
        self.doctors[doctor.id] = doctor
        return doctor

    def update_doctor(self, doctor_id, fields):
        if doctor_id not in self.doctors:
            return None
        self.doctors[doctor_id] = replace(self.doctors[doctor_id], **fields)
        return self.doctors[doctor_id]

    def get_specialty(self, specialty_id):
        return self.specialties.get(specialty_id)

    def list_specialties(self, include_inactive=False):
        return [s for s in self.specialties.values() if include_inactive or s.active]

    def create_specialty(self, fields):
        specialty = SpecialtyDto(id=next(self._ids), **fields)
        self.specialties[specialty.id] = specialty
        return specialty

    def update_specialty(self, specialty_id, fields):
        if specialty_id not in self.specialties:
            return None
        self.specialties[specialty_id] = replace(self.specialties[specialty_id], **fields)
        return self.specialties[specialty_id]

    def get_duration(self, specialty_id):
        return self.durations.get(specialty_id)

    def list_durations(self):
        return [AppointmentDurationDto(specialty_id=k, duration=v) for k, v in self.durations.items()]

    def set_duration(self, specialty_id, duration, description):
        self.durations[specialty_id] = duration
        return AppointmentDurationDto(specialty_id=specialty_id, duration=duration, description=description)

    def get_schedule(self, doctor_id):
        return list(self.schedules.get(doctor_id, []))

    def replace_schedule(self, doctor_id, intervals):
        self.schedules[doctor_id] = list(intervals)
        return self.get_schedule(doctor_id)

    def list_exceptions(self, doctor_id, date_from=None, date_to=None):
        return [
            e for e in self.exceptions
            if e.doctor_id == doctor_id
            and (date_from is None or e.exception_date >= date_from)
            and (date_to is None or e.exception_date <= date_to)
        ]

    def add_exception(self, doctor_id, fields):
        exc = ScheduleExceptionDto(id=next(self._ids), doctor_id=doctor_id, **fields)
        self.exceptions.append(exc)
        return exc

    def delete_exception(self, doctor_id, exception_id):
        before = len(self.exceptions)
        self.exceptions = [e for e in self.exceptions if not (e.id == exception_id and e.doctor_id == doctor_id)]
        return len(self.exceptions) < before


class FakeAppointmentsRepo:
    """Holds appointments in memory; create() enforces the active-slot uniqueness like the database index."""

    def __init__(self):
        self.rows = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def create(self, data):
        with self._lock:
            for a in self.rows.values():
                same_slot = (a.doctor_id, a.appointment_date, a.appointment_time) == (
                    data.doctor_id, data.appointment_date, data.appointment_time)
                if same_slot and a.status != "cancelled":
                    raise SlotTaken()
            appt = AppointmentDto(
                id=self._next_id,
                patient_id=data.patient_id,
                patient_name=data.patient_name,
                patient_email=data.patient_email,
                patient_phone=data.patient_phone,
                doctor_id=data.doctor_id,
                specialty_id=data.specialty_id,
                appointment_date=data.appointment_date,
                appointment_time=data.appointment_time,
                reason=data.reason,
                status="pending",
                notes=None,
                created_at=datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc),
            )
            self.rows[appt.id] = appt
            self._next_id += 1
            return replace(appt)

    def get_by_id(self, appointment_id):
        a = self.rows.get(appointment_id)
        return replace(a) if a else None

    def list(self, query: AppointmentQuery):
        out = []
        for a in self.rows.values():
            if query.doctor_id is not None and a.doctor_id != query.doctor_id:
                continue
            if query.specialty_id is not None and a.specialty_id != query.specialty_id:
                continue
            if query.patient_id is not None and a.patient_id != query.patient_id:
                continue
            if query.date_from is not None and a.appointment_date < query.date_from:
                continue
            if query.date_to is not None and a.appointment_date > query.date_to:
                continue
            if query.statuses and a.status not in query.statuses:
                continue
            out.append(replace(a))
        return sorted(out, key=lambda a: (a.appointment_date, a.appointment_time, a.id))

    def booked_times(self, doctor_id, on):
        return {
            a.appointment_time for a in self.rows.values()
            if a.doctor_id == doctor_id and a.appointment_date == on and a.status in ACTIVE_STATUSES
        }

    def transition_status(self, appointment_id, expected, new_status, at):
        with self._lock:
            a = self.rows.get(appointment_id)
            if not a or a.status != expected:
                return False
            a.status = new_status
            a.updated_at = at
            return True

    def update(self, appointment_id, fields, at):
        with self._lock:
            a = self.rows.get(appointment_id)
            if not a:
                return None
            moved = replace(a, **fields)
            for other in self.rows.values():
                same_slot = (other.doctor_id, other.appointment_date, other.appointment_time) == (
                    moved.doctor_id, moved.appointment_date, moved.appointment_time)
                if other.id != a.id and same_slot and other.status != "cancelled":
                    raise SlotTaken()
            moved.updated_at = at
            self.rows[a.id] = moved
            return replace(moved)

    def update_notes(self, appointment_id, notes, at):
        a = self.rows.get(appointment_id)
        if not a:
            return None
        a.notes = notes
        a.updated_at = at
        return replace(a)


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, actor_id, appointment_id=None, success=True, details=None):
        self.entries.append((action, actor_id, appointment_id, success, details or {}))


@pytest.fixture
def policy():
    return BookingPolicy(
        slot_minutes=30,
        min_reason_length=5,
        timezone="Atlantic/Canary",
        working_hours={0: [(parse_hhmm("09:00"), parse_hhmm("10:30"))]},
        clinic_name="Centro Médico Clodina",
        clinic_location="C/ El Socorro, 2, Güímar",
        ical_domain="clinic.test",
        ical_prodid="-//Test Clinic//Appointments//EN",
        base_url="http://clinic.test",
    )


@pytest.fixture
def clinic(policy):
    """Fake repositories wired into real services, with the clock pinned to FIXED_NOW."""
    directory = FakeDirectory()
    repo = FakeAppointmentsRepo()
    audit = RecordingAudit()
    availability = AvailabilityService(directory=directory, appointments=repo, policy=policy, clock=lambda: FIXED_NOW)
    appointments = AppointmentsService(repo=repo, directory=directory, availability=availability, audit=audit, policy=policy)
    feeds = CalendarFeedService(appointments=repo, directory=directory, policy=policy)
    return SimpleNamespace(
        directory=directory,
        repo=repo,
        audit=audit,
        availability=availability,
        appointments=appointments,
        feeds=feeds,
        policy=policy,
    )
