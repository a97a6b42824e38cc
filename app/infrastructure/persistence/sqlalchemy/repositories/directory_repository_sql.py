from typing import Any, Dict, List, Optional
from datetime import date

from sqlmodel import Session, select

from .....db.models import Doctor, Specialty, AppointmentDuration, WorkingInterval, ScheduleException
from .....application.ports.directory_repo import (
    DirectoryRepository,
    DoctorDto,
    SpecialtyDto,
    WorkingIntervalDto,
    ScheduleExceptionDto,
    AppointmentDurationDto,
)


class SqlDirectoryRepository(DirectoryRepository):
    def __init__(self, session: Session):
        self.session = session

    def _doctor_to_dto(self, d: Doctor) -> DoctorDto:
        return DoctorDto(
            id=d.id,
            name=d.name,
            specialty_id=d.specialty_id,
            active=d.active,
            email=d.email,
            phone=d.phone,
            bio=d.bio,
            appointment_minutes=d.appointment_minutes,
        )

    def _specialty_to_dto(self, s: Specialty) -> SpecialtyDto:
        return SpecialtyDto(id=s.id, name=s.name, description=s.description, active=s.active)

    def _exception_to_dto(self, e: ScheduleException) -> ScheduleExceptionDto:
        return ScheduleExceptionDto(
            id=e.id,
            doctor_id=e.doctor_id,
            exception_date=e.exception_date,
            start_time=e.start_time,
            end_time=e.end_time,
            reason=e.reason,
            is_available=e.is_available,
        )

    # doctors
    def get_doctor(self, doctor_id: int) -> Optional[DoctorDto]:
        d = self.session.get(Doctor, doctor_id)
        return self._doctor_to_dto(d) if d else None

    def list_doctors(self, include_archived: bool = False, specialty_id: Optional[int] = None) -> List[DoctorDto]:
        stmt = select(Doctor)
        if not include_archived:
            stmt = stmt.where(Doctor.active == True)  # noqa: E712
        if specialty_id is not None:
            stmt = stmt.where(Doctor.specialty_id == specialty_id)
        return [self._doctor_to_dto(d) for d in self.session.exec(stmt.order_by(Doctor.name, Doctor.id)).all()]

    def create_doctor(self, fields: Dict[str, Any]) -> DoctorDto:
        doctor = Doctor(**fields)
        self.session.add(doctor)
        self.session.commit()
        self.session.refresh(doctor)
        return self._doctor_to_dto(doctor)

    def update_doctor(self, doctor_id: int, fields: Dict[str, Any]) -> Optional[DoctorDto]:
        doctor = self.session.get(Doctor, doctor_id)
        if not doctor:
            return None
        for key, value in fields.items():
            setattr(doctor, key, value)
        self.session.add(doctor)
        self.session.commit()
        self.session.refresh(doctor)
        return self._doctor_to_dto(doctor)

    # specialties
    def get_specialty(self, specialty_id: int) -> Optional[SpecialtyDto]:
        s = self.session.get(Specialty, specialty_id)
        return self._specialty_to_dto(s) if s else None

    def list_specialties(self, include_inactive: bool = False) -> List[SpecialtyDto]:
        stmt = select(Specialty)
        if not include_inactive:
            stmt = stmt.where(Specialty.active == True)  # noqa: E712
        return [self._specialty_to_dto(s) for s in self.session.exec(stmt.order_by(Specialty.name, Specialty.id)).all()]

    def create_specialty(self, fields: Dict[str, Any]) -> SpecialtyDto:
        specialty = Specialty(**fields)
        self.session.add(specialty)
        self.session.commit()
        self.session.refresh(specialty)
        return self._specialty_to_dto(specialty)

    def update_specialty(self, specialty_id: int, fields: Dict[str, Any]) -> Optional[SpecialtyDto]:
        specialty = self.session.get(Specialty, specialty_id)
        if not specialty:
            return None
        for key, value in fields.items():
            setattr(specialty, key, value)
        self.session.add(specialty)
        self.session.commit()
        self.session.refresh(specialty)
        return self._specialty_to_dto(specialty)

    # durations
    def get_duration(self, specialty_id: int) -> Optional[int]:
        row = self.session.exec(
            select(AppointmentDuration).where(AppointmentDuration.specialty_id == specialty_id)
        ).first()
        return row.duration if row else None

    def list_durations(self) -> List[AppointmentDurationDto]:
        rows = self.session.exec(select(AppointmentDuration).order_by(AppointmentDuration.specialty_id)).all()
        return [AppointmentDurationDto(specialty_id=r.specialty_id, duration=r.duration, description=r.description) for r in rows]

    def set_duration(self, specialty_id: int, duration: int, description: Optional[str]) -> AppointmentDurationDto:
        row = self.session.exec(
            select(AppointmentDuration).where(AppointmentDuration.specialty_id == specialty_id)
        ).first()
        if not row:
            row = AppointmentDuration(specialty_id=specialty_id)
        row.duration = duration
        row.description = description
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return AppointmentDurationDto(specialty_id=row.specialty_id, duration=row.duration, description=row.description)

    # weekly schedule
    def get_schedule(self, doctor_id: int) -> List[WorkingIntervalDto]:
        rows = self.session.exec(
            select(WorkingInterval)
            .where(WorkingInterval.doctor_id == doctor_id)
            .where(WorkingInterval.active == True)  # noqa: E712
            .order_by(WorkingInterval.weekday, WorkingInterval.start_time)
        ).all()
        return [WorkingIntervalDto(id=r.id, weekday=r.weekday, start_time=r.start_time, end_time=r.end_time) for r in rows]

    def replace_schedule(self, doctor_id: int, intervals: List[WorkingIntervalDto]) -> List[WorkingIntervalDto]:
        existing = self.session.exec(select(WorkingInterval).where(WorkingInterval.doctor_id == doctor_id)).all()
        for row in existing:
            self.session.delete(row)
        for item in intervals:
            self.session.add(WorkingInterval(
                doctor_id=doctor_id,
                weekday=item.weekday,
                start_time=item.start_time,
                end_time=item.end_time,
            ))
        self.session.commit()
        return self.get_schedule(doctor_id)

    # dated exceptions
    def list_exceptions(self, doctor_id: int, date_from: Optional[date] = None, date_to: Optional[date] = None) -> List[ScheduleExceptionDto]:
        stmt = select(ScheduleException).where(ScheduleException.doctor_id == doctor_id)
        if date_from is not None:
            stmt = stmt.where(ScheduleException.exception_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(ScheduleException.exception_date <= date_to)
        rows = self.session.exec(stmt.order_by(ScheduleException.exception_date, ScheduleException.id)).all()
        return [self._exception_to_dto(r) for r in rows]

    def add_exception(self, doctor_id: int, fields: Dict[str, Any]) -> ScheduleExceptionDto:
        row = ScheduleException(doctor_id=doctor_id, **fields)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return self._exception_to_dto(row)

    def delete_exception(self, doctor_id: int, exception_id: int) -> bool:
        row = self.session.exec(
            select(ScheduleException)
            .where(ScheduleException.id == exception_id)
            .where(ScheduleException.doctor_id == doctor_id)
        ).first()
        if not row:
            return False
        self.session.delete(row)
        self.session.commit()
        return True
