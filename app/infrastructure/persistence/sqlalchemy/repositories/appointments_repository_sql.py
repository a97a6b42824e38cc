from typing import Any, Dict, List, Optional, Set
from datetime import date, datetime
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Appointment
from .....db.models.booking.appointment import ACTIVE_SLOT_INDEX
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentQuery,
    NewAppointment,
    ACTIVE_STATUSES,
)
from .....exceptions import SlotTaken
from .....utils import as_utc

logger = logging.getLogger(__name__)

# SQLite reports the indexed columns instead of the index name
SQLITE_SLOT_VIOLATION = "UNIQUE constraint failed: appointments.doctor_id, appointments.appointment_date, appointments.appointment_time"


def is_active_slot_violation(error: IntegrityError) -> bool:
    diag = getattr(error.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint:
        return constraint == ACTIVE_SLOT_INDEX
    message = str(error.orig)
    return ACTIVE_SLOT_INDEX in message or SQLITE_SLOT_VIOLATION in message


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            patient_id=a.patient_id,
            patient_name=a.patient_name,
            patient_email=a.patient_email,
            patient_phone=a.patient_phone,
            doctor_id=a.doctor_id,
            specialty_id=a.specialty_id,
            appointment_date=a.appointment_date,
            appointment_time=a.appointment_time,
            reason=a.reason,
            status=a.status,
            notes=a.notes,
            created_at=as_utc(a.created_at),
            updated_at=as_utc(a.updated_at),
        )

    def _commit_slot(self, doctor_id: int, on: date, at: str) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if not is_active_slot_violation(e):
                raise
            logger.info(f"Active slot already held for doctor {doctor_id} {on} {at}")
            raise SlotTaken()

    def create(self, data: NewAppointment) -> AppointmentDto:
        appt = Appointment(
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
        )
        self.session.add(appt)
        self._commit_slot(data.doctor_id, data.appointment_date, data.appointment_time)
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
        return self._appt_to_dto(a) if a else None

    def list(self, query: AppointmentQuery) -> List[AppointmentDto]:
        stmt = select(Appointment)
        if query.doctor_id is not None:
            stmt = stmt.where(Appointment.doctor_id == query.doctor_id)
        if query.specialty_id is not None:
            stmt = stmt.where(Appointment.specialty_id == query.specialty_id)
        if query.patient_id is not None:
            stmt = stmt.where(Appointment.patient_id == query.patient_id)
        if query.date_from is not None:
            stmt = stmt.where(Appointment.appointment_date >= query.date_from)
        if query.date_to is not None:
            stmt = stmt.where(Appointment.appointment_date <= query.date_to)
        if query.statuses:
            stmt = stmt.where(Appointment.status.in_(query.statuses))
        rows = self.session.exec(
            stmt.order_by(Appointment.appointment_date, Appointment.appointment_time, Appointment.id)
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def booked_times(self, doctor_id: int, on: date) -> Set[str]:
        rows = self.session.exec(
            select(Appointment.appointment_time)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.appointment_date == on)
            .where(Appointment.status.in_(ACTIVE_STATUSES))
        ).all()
        return set(rows)

    def transition_status(self, appointment_id: int, expected: str, new_status: str, at: datetime) -> bool:
        result = self.session.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.status == expected)
            .values(status=new_status, updated_at=at)
        )
        self.session.commit()
        return result.rowcount == 1

    def update(self, appointment_id: int, fields: Dict[str, Any], at: datetime) -> Optional[AppointmentDto]:
        a = self.session.get(Appointment, appointment_id)
        if not a:
            return None
        for key, value in fields.items():
            setattr(a, key, value)
        a.updated_at = at
        self.session.add(a)
        self._commit_slot(a.doctor_id, a.appointment_date, a.appointment_time)
        self.session.refresh(a)
        return self._appt_to_dto(a)

    def update_notes(self, appointment_id: int, notes: Optional[str], at: datetime) -> Optional[AppointmentDto]:
        a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
        if not a:
            return None
        a.notes = notes
        a.updated_at = at
        self.session.add(a)
        self.session.commit()
        self.session.refresh(a)
        return self._appt_to_dto(a)
