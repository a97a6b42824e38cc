from dataclasses import dataclass
from datetime import date
from typing import List, Optional
import logging

from ..ports.directory_repo import (
    DirectoryRepository,
    DoctorDto,
    SpecialtyDto,
    WorkingIntervalDto,
    ScheduleExceptionDto,
    AppointmentDurationDto,
)
from ...exceptions import InvalidInput, NotFound
from ...schemas.doctors.doctor import (
    DoctorCreate,
    DoctorUpdate,
    SpecialtyCreate,
    SpecialtyUpdate,
    DurationUpdate,
    WorkingIntervalIn,
    ScheduleExceptionCreate,
)
from ...utils import parse_date, parse_hhmm, format_hhmm

logger = logging.getLogger(__name__)


def _reject_nulls(fields: dict, required: tuple) -> None:
    """PATCH bodies may omit a column but not blank a NOT NULL one."""
    for key in required:
        if key in fields and fields[key] is None:
            raise InvalidInput(f"{key} cannot be null")


@dataclass
class DirectoryService:
    repo: DirectoryRepository

    # doctors
    def list_doctors(self, include_archived: bool = False, specialty_id: Optional[int] = None) -> List[DoctorDto]:
        return self.repo.list_doctors(include_archived=include_archived, specialty_id=specialty_id)

    def get_doctor(self, doctor_id: int) -> DoctorDto:
        doctor = self.repo.get_doctor(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        return doctor

    def create_doctor(self, data: DoctorCreate) -> DoctorDto:
        self._check_specialty(data.specialty_id)
        doctor = self.repo.create_doctor(data.model_dump())
        logger.info(f"Created doctor {doctor.id} ({doctor.name})")
        return doctor

    def update_doctor(self, doctor_id: int, data: DoctorUpdate) -> DoctorDto:
        fields = data.model_dump(exclude_unset=True)
        _reject_nulls(fields, ("name", "active"))
        if "specialty_id" in fields:
            self._check_specialty(fields["specialty_id"])
        doctor = self.repo.update_doctor(doctor_id, fields)
        if not doctor:
            raise NotFound("Doctor not found")
        return doctor

    def archive_doctor(self, doctor_id: int) -> DoctorDto:
        """Archived doctors keep their history but take no new bookings."""
        doctor = self.repo.update_doctor(doctor_id, {"active": False})
        if not doctor:
            raise NotFound("Doctor not found")
        logger.info(f"Archived doctor {doctor_id}")
        return doctor

    # specialties
    def list_specialties(self, include_inactive: bool = False) -> List[SpecialtyDto]:
        return self.repo.list_specialties(include_inactive=include_inactive)

    def create_specialty(self, data: SpecialtyCreate) -> SpecialtyDto:
        return self.repo.create_specialty(data.model_dump())

    def update_specialty(self, specialty_id: int, data: SpecialtyUpdate) -> SpecialtyDto:
        fields = data.model_dump(exclude_unset=True)
        _reject_nulls(fields, ("name", "active"))
        specialty = self.repo.update_specialty(specialty_id, fields)
        if not specialty:
            raise NotFound("Specialty not found")
        return specialty

    def list_durations(self) -> List[AppointmentDurationDto]:
        return self.repo.list_durations()

    def set_duration(self, specialty_id: int, data: DurationUpdate) -> AppointmentDurationDto:
        self._check_specialty(specialty_id)
        return self.repo.set_duration(specialty_id, data.duration, data.description)

    # weekly schedule
    def get_schedule(self, doctor_id: int) -> List[WorkingIntervalDto]:
        self.get_doctor(doctor_id)
        return self.repo.get_schedule(doctor_id)

    def replace_schedule(self, doctor_id: int, intervals: List[WorkingIntervalIn]) -> List[WorkingIntervalDto]:
        self.get_doctor(doctor_id)
        normalized: List[WorkingIntervalDto] = []
        for item in intervals:
            start = parse_hhmm(item.start_time, "start_time")
            end = parse_hhmm(item.end_time, "end_time")
            if end <= start:
                raise InvalidInput(f"Interval {item.start_time}-{item.end_time} ends before it starts")
            normalized.append(WorkingIntervalDto(weekday=item.weekday, start_time=format_hhmm(start), end_time=format_hhmm(end)))

        normalized.sort(key=lambda i: (i.weekday, i.start_time))
        for previous, current in zip(normalized, normalized[1:]):
            if previous.weekday == current.weekday and current.start_time < previous.end_time:
                raise InvalidInput(
                    f"Overlapping intervals on weekday {current.weekday}: "
                    f"{previous.start_time}-{previous.end_time} and {current.start_time}-{current.end_time}"
                )
        saved = self.repo.replace_schedule(doctor_id, normalized)
        logger.info(f"Replaced weekly schedule of doctor {doctor_id} ({len(saved)} intervals)")
        return saved

    # dated exceptions
    def list_exceptions(self, doctor_id: int, date_from: Optional[date] = None, date_to: Optional[date] = None) -> List[ScheduleExceptionDto]:
        self.get_doctor(doctor_id)
        return self.repo.list_exceptions(doctor_id, date_from, date_to)

    def add_exception(self, doctor_id: int, data: ScheduleExceptionCreate) -> ScheduleExceptionDto:
        self.get_doctor(doctor_id)
        exception_date = parse_date(data.exception_date, "exception date")
        start_time = end_time = None
        if (data.start_time is None) != (data.end_time is None):
            raise InvalidInput("Provide both start_time and end_time, or neither for a whole day")
        if data.start_time is not None:
            start = parse_hhmm(data.start_time, "start_time")
            end = parse_hhmm(data.end_time, "end_time")
            if end <= start:
                raise InvalidInput("Exception ends before it starts")
            start_time, end_time = format_hhmm(start), format_hhmm(end)
        elif data.is_available:
            raise InvalidInput("An extra opening needs start_time and end_time")

        return self.repo.add_exception(doctor_id, {
            "exception_date": exception_date,
            "start_time": start_time,
            "end_time": end_time,
            "reason": data.reason,
            "is_available": data.is_available,
        })

    def delete_exception(self, doctor_id: int, exception_id: int) -> None:
        if not self.repo.delete_exception(doctor_id, exception_id):
            raise NotFound("Schedule exception not found")

    def _check_specialty(self, specialty_id: Optional[int]) -> None:
        if specialty_id is not None and not self.repo.get_specialty(specialty_id):
            raise NotFound("Specialty not found")
