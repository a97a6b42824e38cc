from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Callable, List, Optional, Tuple, Union
import logging

from ..ports.appointments_repo import AppointmentsRepository
from ..ports.directory_repo import DirectoryRepository, DoctorDto
from .booking_policy import BookingPolicy
from ...exceptions import NotFound
from ...utils import parse_date, parse_hhmm, format_hhmm

logger = logging.getLogger(__name__)

Interval = Tuple[int, int]  # minutes after midnight, [start, end)


@dataclass
class AvailabilityService:
    directory: DirectoryRepository
    appointments: AppointmentsRepository
    policy: BookingPolicy
    clock: Optional[Callable[[], datetime]] = field(default=None)

    def __post_init__(self):
        if self.clock is None:
            self.clock = self.policy.now

    def get_available_slots(self, doctor_id: int, on: Union[str, date], specialty_id: Optional[int] = None) -> List[str]:
        """Free slot start times for a doctor on a date, ascending.

        Unknown doctors or specialties raise NotFound and malformed dates
        raise InvalidInput.
        Archived doctors, past dates and days without working hours yield
        an empty list.
        """
        day = parse_date(on)
        doctor = self.directory.get_doctor(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        if specialty_id is not None and not self.directory.get_specialty(specialty_id):
            raise NotFound("Specialty not found")
        if not doctor.active:
            return []

        now = self.clock()
        if day < now.date():
            return []

        taken = self.appointments.booked_times(doctor.id, day)
        free = [slot for slot in self.candidate_slots(doctor, day, specialty_id) if slot not in taken]
        if day == now.date():
            free = [slot for slot in free if not self.has_started(day, slot, now)]
        logger.debug(f"Doctor {doctor.id} on {day}: {len(free)} free slots, {len(taken)} booked")
        return free

    def candidate_slots(self, doctor: DoctorDto, day: date, specialty_id: Optional[int] = None) -> List[str]:
        """Every slot of the doctor's template for that date, ignoring bookings."""
        step = self.slot_minutes(doctor, specialty_id)
        openings, closings = self._day_template(doctor, day)
        starts = set()
        for start, end in openings:
            current = start
            while current + step <= end:
                if not any(current < c_end and current + step > c_start for c_start, c_end in closings):
                    starts.add(current)
                current += step
        return [format_hhmm(minutes) for minutes in sorted(starts)]

    def slot_minutes(self, doctor: DoctorDto, specialty_id: Optional[int] = None) -> int:
        specialty_id = specialty_id or doctor.specialty_id
        specialty_minutes = self.directory.get_duration(specialty_id) if specialty_id else None
        return self.policy.resolve_duration(doctor.appointment_minutes, specialty_minutes)

    def has_started(self, day: date, slot: str, now: datetime) -> bool:
        if day != now.date():
            return day < now.date()
        return parse_hhmm(slot) <= now.hour * 60 + now.minute

    def _day_template(self, doctor: DoctorDto, day: date) -> Tuple[List[Interval], List[Interval]]:
        schedule = self.directory.get_schedule(doctor.id)
        if schedule:
            openings = [
                (parse_hhmm(i.start_time), parse_hhmm(i.end_time))
                for i in schedule
                if i.weekday == day.weekday()
            ]
        else:
            openings = list(self.policy.working_hours.get(day.weekday(), []))

        closings: List[Interval] = []
        for exc in self.directory.list_exceptions(doctor.id, day, day):
            if exc.is_available:
                if not exc.whole_day:
                    openings.append((parse_hhmm(exc.start_time), parse_hhmm(exc.end_time)))
                continue
            if exc.whole_day:
                return [], []
            closings.append((parse_hhmm(exc.start_time), parse_hhmm(exc.end_time)))
        return openings, closings
