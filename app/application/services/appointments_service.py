from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple
import logging

from ..ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentQuery,
    AppointmentStatus,
    NewAppointment,
    ALLOWED_TRANSITIONS,
)
from ..ports.audit_logger import AuditLogger
from ..ports.directory_repo import DirectoryRepository, DoctorDto
from ..ports.identity import Caller
from .availability_service import AvailabilityService
from .booking_policy import BookingPolicy
from ...exceptions import InvalidInput, InvalidTransition, NotFound, SlotTaken, Unauthorized
from ...schemas.appointments.appointment import AppointmentCreate, AppointmentUpdate
from ...utils import normalize_hhmm, parse_date, utcnow

logger = logging.getLogger(__name__)


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    directory: DirectoryRepository
    availability: AvailabilityService
    audit: AuditLogger
    policy: BookingPolicy
    clock: Optional[Callable[[], datetime]] = field(default=None)

    def __post_init__(self):
        if self.clock is None:
            self.clock = self.availability.clock

    def create_appointment(self, data: AppointmentCreate, caller: Optional[Caller] = None) -> AppointmentDto:
        appointment_date = parse_date(data.appointment_date, "appointment date")
        appointment_time = normalize_hhmm(data.appointment_time, "appointment time")

        reason = data.reason.strip()
        if len(reason) < self.policy.min_reason_length:
            raise InvalidInput(f"Reason must be at least {self.policy.min_reason_length} characters")
        patient_name = data.patient_name.strip()
        if not patient_name:
            raise InvalidInput("Patient name is required")

        doctor, specialty_id = self._check_slot(data.doctor_id, data.specialty_id, appointment_date, appointment_time)

        actor_id = caller.user_id if caller else None
        new = NewAppointment(
            patient_id=actor_id if caller and not caller.is_staff else None,
            patient_name=patient_name,
            patient_email=data.patient_email,
            patient_phone=data.patient_phone,
            doctor_id=doctor.id,
            specialty_id=specialty_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            reason=reason,
        )
        # the unique index on the active slot decides between concurrent bookings
        try:
            appt = self.repo.create(new)
        except SlotTaken:
            logger.info(f"Slot taken: doctor {doctor.id} {appointment_date} {appointment_time}")
            self.audit.log("appointment.create", actor_id, None, success=False, details={
                "doctor_id": doctor.id,
                "date": appointment_date.isoformat(),
                "time": appointment_time,
                "reason": "slot_taken",
            })
            raise

        logger.info(f"Appointment {appt.id} booked with doctor {doctor.id} on {appointment_date} {appointment_time}")
        self.audit.log("appointment.create", actor_id, appt.id, details={"status": appt.status})
        return appt

    def get_appointment(self, appointment_id: int, caller: Optional[Caller]) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        # patients only see their own; others get the same 404 as a missing id
        if not appt or not self._can_view(appt, caller):
            raise NotFound("Appointment not found")
        return appt

    def list_appointments(self, query: AppointmentQuery, caller: Caller) -> List[AppointmentDto]:
        if query.date_from and query.date_to and query.date_from > query.date_to:
            raise InvalidInput("'from' must not be after 'to'")
        if not caller.is_staff:
            query.patient_id = caller.user_id
        return self.repo.list(query)

    def update_status(self, appointment_id: int, new_status: str, caller: Caller) -> AppointmentDto:
        try:
            new_status = AppointmentStatus(new_status).value
        except ValueError:
            raise InvalidInput(f"Invalid status. Must be one of: {[s.value for s in AppointmentStatus]}")

        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")

        if not caller.is_staff:
            if appt.patient_id is None or appt.patient_id != caller.user_id:
                self.audit.log("appointment.status", caller.user_id, appt.id, success=False, details={"requested": new_status})
                raise Unauthorized("Not allowed to modify this appointment")
            if new_status != AppointmentStatus.CANCELLED.value:
                self.audit.log("appointment.status", caller.user_id, appt.id, success=False, details={"requested": new_status})
                raise Unauthorized("Patients can only cancel their appointments")

        if new_status not in ALLOWED_TRANSITIONS[appt.status]:
            raise InvalidTransition(appt.status, new_status)

        if not self.repo.transition_status(appt.id, appt.status, new_status, utcnow()):
            # another request changed the status first
            current = self.repo.get_by_id(appt.id)
            raise InvalidTransition(current.status if current else appt.status, new_status)

        logger.info(f"Appointment {appt.id}: {appt.status} -> {new_status} by {caller.role} {caller.user_id}")
        self.audit.log("appointment.status", caller.user_id, appt.id, details={"from": appt.status, "to": new_status})
        return self.repo.get_by_id(appt.id)

    def update_notes(self, appointment_id: int, notes: Optional[str], caller: Caller) -> AppointmentDto:
        if not caller.is_staff:
            raise Unauthorized("Only staff can edit appointment notes")
        appt = self.repo.update_notes(appointment_id, notes, utcnow())
        if not appt:
            raise NotFound("Appointment not found")
        self.audit.log("appointment.notes", caller.user_id, appt.id)
        return appt

    def update_appointment(self, appointment_id: int, data: AppointmentUpdate, caller: Caller) -> AppointmentDto:
        """Staff reschedule or correction of a booking.

        A new doctor, date or time goes through the same slot checks as a
        fresh booking, and the old slot is released once the row moves.
        """
        if not caller.is_staff:
            self.audit.log("appointment.update", caller.user_id, appointment_id, success=False)
            raise Unauthorized("Only staff can edit appointments")

        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")
        if appt.status == AppointmentStatus.CANCELLED.value:
            raise InvalidInput("Cancelled appointments cannot be edited")

        requested = data.model_dump(exclude_unset=True)
        for key in ("doctor_id", "patient_name", "reason", "appointment_date", "appointment_time"):
            if key in requested and requested[key] is None:
                raise InvalidInput(f"{key} cannot be null")

        fields = {}
        if "reason" in requested:
            reason = requested["reason"].strip()
            if len(reason) < self.policy.min_reason_length:
                raise InvalidInput(f"Reason must be at least {self.policy.min_reason_length} characters")
            fields["reason"] = reason
        if "patient_name" in requested:
            patient_name = requested["patient_name"].strip()
            if not patient_name:
                raise InvalidInput("Patient name is required")
            fields["patient_name"] = patient_name
        for key in ("patient_email", "patient_phone"):
            if key in requested:
                fields[key] = requested[key]

        doctor_id = requested.get("doctor_id", appt.doctor_id)
        appointment_date = parse_date(requested.get("appointment_date", appt.appointment_date), "appointment date")
        appointment_time = normalize_hhmm(requested.get("appointment_time", appt.appointment_time), "appointment time")
        specialty_id = requested.get("specialty_id", appt.specialty_id)
        moved = (doctor_id, appointment_date, appointment_time) != (appt.doctor_id, appt.appointment_date, appt.appointment_time)
        if moved or specialty_id != appt.specialty_id:
            doctor, specialty_id = self._check_slot(doctor_id, specialty_id, appointment_date, appointment_time)
            fields.update(
                doctor_id=doctor.id,
                specialty_id=specialty_id,
                appointment_date=appointment_date,
                appointment_time=appointment_time,
            )

        try:
            updated = self.repo.update(appt.id, fields, utcnow())
        except SlotTaken:
            self.audit.log("appointment.update", caller.user_id, appt.id, success=False, details={
                "doctor_id": doctor_id,
                "date": appointment_date.isoformat(),
                "time": appointment_time,
                "reason": "slot_taken",
            })
            raise
        if not updated:
            raise NotFound("Appointment not found")

        if moved:
            logger.info(f"Appointment {appt.id} moved to doctor {doctor_id} on {appointment_date} {appointment_time}")
        self.audit.log("appointment.update", caller.user_id, appt.id, details={"fields": sorted(fields)})
        return updated

    def _check_slot(self, doctor_id: int, specialty_id: Optional[int], appointment_date: date,
                    appointment_time: str) -> Tuple[DoctorDto, Optional[int]]:
        """Doctor, specialty and slot checks shared by booking and rescheduling."""
        now = self.clock()
        if appointment_date < now.date():
            raise InvalidInput("Appointment date cannot be in the past")

        doctor = self.directory.get_doctor(doctor_id)
        if not doctor:
            raise NotFound("Doctor not found")
        if not doctor.active:
            raise InvalidInput("Doctor is not accepting appointments")

        if specialty_id is not None and not self.directory.get_specialty(specialty_id):
            raise NotFound("Specialty not found")
        specialty_id = specialty_id or doctor.specialty_id

        if appointment_time not in self.availability.candidate_slots(doctor, appointment_date, specialty_id):
            raise InvalidInput(f"{appointment_time} is not a bookable slot for this doctor on {appointment_date}")
        if self.availability.has_started(appointment_date, appointment_time, now):
            raise InvalidInput("This time slot has already started")
        return doctor, specialty_id

    def _can_view(self, appt: AppointmentDto, caller: Optional[Caller]) -> bool:
        if caller is None:
            return False
        return caller.is_staff or (appt.patient_id is not None and appt.patient_id == caller.user_id)
