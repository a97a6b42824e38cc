from dataclasses import dataclass
from typing import List, Optional, Protocol, Dict, Any
from datetime import date


@dataclass
class SpecialtyDto:
    id: int
    name: str
    description: Optional[str]
    active: bool


@dataclass
class DoctorDto:
    id: int
    name: str
    specialty_id: Optional[int]
    active: bool
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    appointment_minutes: Optional[int] = None


@dataclass
class WorkingIntervalDto:
    weekday: int  # 0=Monday
    start_time: str
    end_time: str
    id: Optional[int] = None


@dataclass
class ScheduleExceptionDto:
    id: int
    doctor_id: int
    exception_date: date
    start_time: Optional[str]
    end_time: Optional[str]
    reason: Optional[str]
    is_available: bool

    @property
    def whole_day(self) -> bool:
        return not self.start_time or not self.end_time


@dataclass
class AppointmentDurationDto:
    specialty_id: int
    duration: int
    description: Optional[str] = None


class DirectoryRepository(Protocol):
    # doctors
    def get_doctor(self, doctor_id: int) -> Optional[DoctorDto]:
        ...

    def list_doctors(self, include_archived: bool = False, specialty_id: Optional[int] = None) -> List[DoctorDto]:
        ...

    def create_doctor(self, fields: Dict[str, Any]) -> DoctorDto:
        ...

    def update_doctor(self, doctor_id: int, fields: Dict[str, Any]) -> Optional[DoctorDto]:
        ...

    # specialties
    def get_specialty(self, specialty_id: int) -> Optional[SpecialtyDto]:
        ...

    def list_specialties(self, include_inactive: bool = False) -> List[SpecialtyDto]:
        ...

    def create_specialty(self, fields: Dict[str, Any]) -> SpecialtyDto:
        ...

    def update_specialty(self, specialty_id: int, fields: Dict[str, Any]) -> Optional[SpecialtyDto]:
        ...

    # durations
    def get_duration(self, specialty_id: int) -> Optional[int]:
        ...

    def list_durations(self) -> List[AppointmentDurationDto]:
        ...

    def set_duration(self, specialty_id: int, duration: int, description: Optional[str]) -> AppointmentDurationDto:
        ...

    # weekly schedule
    def get_schedule(self, doctor_id: int) -> List[WorkingIntervalDto]:
        """Active intervals only."""
        ...

    def replace_schedule(self, doctor_id: int, intervals: List[WorkingIntervalDto]) -> List[WorkingIntervalDto]:
        ...

    # dated exceptions
    def list_exceptions(self, doctor_id: int, date_from: Optional[date] = None, date_to: Optional[date] = None) -> List[ScheduleExceptionDto]:
        ...

    def add_exception(self, doctor_id: int, fields: Dict[str, Any]) -> ScheduleExceptionDto:
        ...

    def delete_exception(self, doctor_id: int, exception_id: int) -> bool:
        ...
