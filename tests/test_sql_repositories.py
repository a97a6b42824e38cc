import threading
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from app.application.ports.appointments_repo import AppointmentQuery, NewAppointment
from app.application.ports.directory_repo import WorkingIntervalDto
from app.database import create_db_and_tables
from app.exceptions import SlotTaken
from app.infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from app.infrastructure.persistence.sqlalchemy.repositories.directory_repository_sql import SqlDirectoryRepository

DAY = date(2030, 1, 14)
STAMP = datetime(2030, 1, 8, 9, 30, tzinfo=timezone.utc)


def new_appt(at="09:00", doctor_id=1, on=DAY, patient_id="p1"):
    return NewAppointment(
        patient_id=patient_id,
        patient_name="Ana Pérez",
        patient_email=None,
        patient_phone=None,
        doctor_id=doctor_id,
        specialty_id=None,
        appointment_date=on,
        appointment_time=at,
        reason="Annual check-up",
    )


@pytest.fixture
def session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(engine)
    with Session(engine) as s:
        SqlDirectoryRepository(s).create_doctor({"name": "Dr. House"})
        yield s


def test_create_and_read_back(session):
    repo = SqlAppointmentsRepository(session)
    a = repo.create(new_appt())

    assert a.id is not None
    assert a.status == "pending"
    assert repo.get_by_id(a.id).appointment_time == "09:00"
    assert repo.get_by_id(12345) is None


def test_unique_active_slot(session):
    repo = SqlAppointmentsRepository(session)
    repo.create(new_appt())

    with pytest.raises(SlotTaken):
        repo.create(new_appt(patient_id="p2"))

    # session is usable after the rollback
    assert len(repo.list(AppointmentQuery())) == 1


def test_cancel_frees_the_slot(session):
    repo = SqlAppointmentsRepository(session)
    first = repo.create(new_appt())
    assert repo.booked_times(1, DAY) == {"09:00"}

    assert repo.transition_status(first.id, "pending", "cancelled", STAMP) is True
    assert repo.booked_times(1, DAY) == set()

    second = repo.create(new_appt(patient_id="p2"))
    assert second.id != first.id
    assert repo.booked_times(1, DAY) == {"09:00"}


def test_transition_is_compare_and_set(session):
    repo = SqlAppointmentsRepository(session)
    a = repo.create(new_appt())

    assert repo.transition_status(a.id, "pending", "confirmed", STAMP) is True
    # a second writer that still believes the row is pending loses
    assert repo.transition_status(a.id, "pending", "cancelled", STAMP) is False

    current = repo.get_by_id(a.id)
    assert current.status == "confirmed"
    assert current.updated_at == STAMP


def test_list_filters_and_order(session):
    SqlDirectoryRepository(session).create_doctor({"name": "Dr. Grey"})
    repo = SqlAppointmentsRepository(session)
    repo.create(new_appt(at="10:00"))
    repo.create(new_appt(at="09:30", patient_id="p2"))
    repo.create(new_appt(at="09:00", on=date(2030, 1, 21)))
    repo.create(new_appt(at="09:00", doctor_id=2))

    times = [(a.appointment_date, a.appointment_time) for a in repo.list(AppointmentQuery(doctor_id=1))]
    assert times == [(DAY, "09:30"), (DAY, "10:00"), (date(2030, 1, 21), "09:00")]

    assert len(repo.list(AppointmentQuery(patient_id="p1"))) == 3
    assert len(repo.list(AppointmentQuery(date_from=date(2030, 1, 20)))) == 1
    assert len(repo.list(AppointmentQuery(statuses=["confirmed"]))) == 0


def test_update_notes(session):
    repo = SqlAppointmentsRepository(session)
    a = repo.create(new_appt())

    assert repo.update_notes(a.id, "fasting", STAMP).notes == "fasting"
    assert repo.update_notes(999, "x", STAMP) is None


def test_timestamps_read_back_timezone_aware(session):
    repo = SqlAppointmentsRepository(session)
    a = repo.create(new_appt())
    assert a.created_at.tzinfo is not None

    repo.transition_status(a.id, "pending", "confirmed", STAMP)
    current = repo.get_by_id(a.id)
    assert current.created_at.tzinfo is not None
    assert current.updated_at == STAMP
    assert current.updated_at.utcoffset().total_seconds() == 0


def test_other_integrity_errors_are_not_slot_conflicts(session):
    repo = SqlAppointmentsRepository(session)
    broken = new_appt()
    broken.patient_name = None

    with pytest.raises(IntegrityError):
        repo.create(broken)

    # the rollback leaves the session usable
    assert repo.create(new_appt()).id is not None


def test_update_moves_the_slot(session):
    repo = SqlAppointmentsRepository(session)
    a = repo.create(new_appt())
    b = repo.create(new_appt(at="09:30", patient_id="p2"))

    with pytest.raises(SlotTaken):
        repo.update(b.id, {"appointment_time": "09:00"}, STAMP)
    assert repo.get_by_id(b.id).appointment_time == "09:30"

    moved = repo.update(a.id, {"appointment_time": "10:00", "reason": "Follow-up"}, STAMP)
    assert (moved.appointment_time, moved.reason, moved.updated_at) == ("10:00", "Follow-up", STAMP)
    assert repo.booked_times(1, DAY) == {"09:30", "10:00"}
    assert repo.update(999, {"reason": "x"}, STAMP) is None


def test_directory_schedule_and_exceptions(session):
    repo = SqlDirectoryRepository(session)
    saved = repo.replace_schedule(1, [
        WorkingIntervalDto(weekday=0, start_time="16:00", end_time="19:00"),
        WorkingIntervalDto(weekday=0, start_time="09:00", end_time="14:00"),
    ])
    assert [(i.start_time, i.end_time) for i in saved] == [("09:00", "14:00"), ("16:00", "19:00")]

    saved = repo.replace_schedule(1, [WorkingIntervalDto(weekday=4, start_time="09:00", end_time="14:00")])
    assert [i.weekday for i in repo.get_schedule(1)] == [4]

    exc = repo.add_exception(1, {
        "exception_date": DAY,
        "start_time": None,
        "end_time": None,
        "reason": "Holiday",
        "is_available": False,
    })
    assert exc.whole_day
    assert [e.id for e in repo.list_exceptions(1, DAY, DAY)] == [exc.id]
    assert repo.list_exceptions(1, date(2030, 2, 1)) == []
    assert repo.delete_exception(1, exc.id) is True
    assert repo.delete_exception(1, exc.id) is False


def test_durations_upsert(session):
    repo = SqlDirectoryRepository(session)
    specialty = repo.create_specialty({"name": "Cardiology"})

    assert repo.get_duration(specialty.id) is None
    repo.set_duration(specialty.id, 45, None)
    repo.set_duration(specialty.id, 40, "shorter")
    assert repo.get_duration(specialty.id) == 40
    assert len(repo.list_durations()) == 1


def test_racing_bookings_on_a_file_database(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
    create_db_and_tables(engine)
    with Session(engine) as s:
        SqlDirectoryRepository(s).create_doctor({"name": "Dr. House"})

    barrier = threading.Barrier(4)
    outcomes = []
    lock = threading.Lock()

    def attempt(n):
        with Session(engine) as s:
            repo = SqlAppointmentsRepository(s)
            barrier.wait()
            try:
                repo.create(new_appt(patient_id=f"p{n}"))
                result = "ok"
            except SlotTaken:
                result = "taken"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("taken") == 3
    engine.dispose()
