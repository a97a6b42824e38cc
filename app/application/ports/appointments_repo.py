from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple
from datetime import datetime, date


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES: Tuple[str, ...] = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)

# current status -> statuses it may move to; cancelled is terminal
ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING.value: {AppointmentStatus.CONFIRMED.value, AppointmentStatus.CANCELLED.value},
    AppointmentStatus.CONFIRMED.value: {AppointmentStatus.CANCELLED.value},
    AppointmentStatus.CANCELLED.value: set(),
}


@dataclass
class AppointmentDto:
    id: int
    patient_id: Optional[str]
    patient_name: str
    patient_email: Optional[str]
    patient_phone: Optional[str]
    doctor_id: int
    specialty_id: Optional[int]
    appointment_date: date
    appointment_time: str
    reason: str
    status: str
    notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime] = None


@dataclass
class NewAppointment:
    patient_id: Optional[str]
    patient_name: str
    patient_email: Optional[str]
    patient_phone: Optional[str]
    doctor_id: int
    specialty_id: Optional[int]
    appointment_date: date
    appointment_time: str
    reason: str


@dataclass
class AppointmentQuery:
    doctor_id: Optional[int] = None
    specialty_id: Optional[int] = None
    patient_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    statuses: Optional[List[str]] = field(default=None)


class AppointmentsRepository(Protocol):
    def create(self, data: NewAppointment) -> AppointmentDto:
        """Insert as pending. Raises SlotTaken when the active slot is already held."""
        ...

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        ...

    def list(self, query: AppointmentQuery) -> List[AppointmentDto]:
        """Ordered by date, time, id."""
        ...

    def booked_times(self, doctor_id: int, on: date) -> Set[str]:
        """Times held by non-cancelled appointments for the doctor on that date."""
        ...

    def transition_status(self, appointment_id: int, expected: str, new_status: str, at: datetime) -> bool:
        """Set the status only if it still equals `expected`; False when nothing was updated."""
        ...

    def update(self, appointment_id: int, fields: Dict[str, Any], at: datetime) -> Optional[AppointmentDto]:
        """Apply column changes. Raises SlotTaken when the new slot is already held."""
        ...

    def update_notes(self, appointment_id: int, notes: Optional[str], at: datetime) -> Optional[AppointmentDto]:
        ...
