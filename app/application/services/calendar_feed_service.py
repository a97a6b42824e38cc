from dataclasses import dataclass
from datetime import datetime, date, time, timedelta, timezone
from typing import Dict, List, Optional
import logging

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, AppointmentQuery, AppointmentStatus, ACTIVE_STATUSES
from ..ports.directory_repo import DirectoryRepository, DoctorDto, SpecialtyDto
from .booking_policy import BookingPolicy
from ...exceptions import InvalidInput
from ...infrastructure.calendar.ical_writer import CalendarEvent, render_calendar
from ...utils import parse_hhmm

logger = logging.getLogger(__name__)


@dataclass
class FeedFilter:
    doctor_id: Optional[int] = None
    specialty_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass
class CalendarFeedService:
    appointments: AppointmentsRepository
    directory: DirectoryRepository
    policy: BookingPolicy
    refresh_minutes: int = 60

    def generate_feed(self, feed_filter: FeedFilter, url: Optional[str] = None) -> str:
        """Combined calendar of pending and confirmed appointments matching every filter field."""
        return self._render(
            feed_filter,
            name=f"{self.policy.clinic_name} - Appointments",
            description=f"Appointment calendar of {self.policy.clinic_name}",
            url=url,
        )

    def generate_doctor_feed(self, doctor_id: int, date_from: Optional[date] = None,
                             date_to: Optional[date] = None, url: Optional[str] = None) -> str:
        # an unknown doctor gets an empty calendar rather than an error
        doctor = self.directory.get_doctor(doctor_id)
        label = doctor.name if doctor else f"Doctor {doctor_id}"
        return self._render(
            FeedFilter(doctor_id=doctor_id, date_from=date_from, date_to=date_to),
            name=f"{label} - Appointments",
            description=f"Appointments of {label} at {self.policy.clinic_name}",
            url=url,
        )

    def subscription_urls(self, base_url: str) -> dict:
        base = base_url.rstrip("/")
        return {
            "all": f"{base}/ical/calendar.ics",
            "date_range_template": f"{base}/ical/calendar.ics?from={{from}}&to={{to}}",
            "doctors": [
                {"id": d.id, "name": d.name, "url": f"{base}/ical/doctor/{d.id}/calendar.ics"}
                for d in self.directory.list_doctors()
            ],
            "specialties": [
                {"id": s.id, "name": s.name, "url": f"{base}/ical/calendar.ics?specialtyId={s.id}"}
                for s in self.directory.list_specialties()
            ],
        }

    def _render(self, feed_filter: FeedFilter, name: str, description: str, url: Optional[str]) -> str:
        if feed_filter.date_from and feed_filter.date_to and feed_filter.date_from > feed_filter.date_to:
            raise InvalidInput("'from' must not be after 'to'")
        rows = self.appointments.list(AppointmentQuery(
            doctor_id=feed_filter.doctor_id,
            specialty_id=feed_filter.specialty_id,
            date_from=feed_filter.date_from,
            date_to=feed_filter.date_to,
            statuses=list(ACTIVE_STATUSES),
        ))
        doctors = {d.id: d for d in self.directory.list_doctors(include_archived=True)}
        specialties = {s.id: s for s in self.directory.list_specialties(include_inactive=True)}
        durations = {d.specialty_id: d.duration for d in self.directory.list_durations()}

        events = [self._to_event(a, doctors.get(a.doctor_id), specialties, durations) for a in rows]
        logger.debug(f"Rendering calendar '{name}' with {len(events)} events")
        return render_calendar(
            events,
            name=name,
            prodid=self.policy.ical_prodid,
            description=description,
            timezone_name=self.policy.timezone,
            url=url,
            refresh_minutes=self.refresh_minutes,
        )

    def _to_event(self, appt: AppointmentDto, doctor: Optional[DoctorDto],
                  specialties: Dict[int, SpecialtyDto], durations: Dict[int, int]) -> CalendarEvent:
        specialty_id = appt.specialty_id or (doctor.specialty_id if doctor else None)
        specialty = specialties.get(specialty_id) if specialty_id else None
        minutes = self.policy.resolve_duration(
            doctor.appointment_minutes if doctor else None,
            durations.get(specialty_id) if specialty_id else None,
        )

        start_minutes = parse_hhmm(appt.appointment_time)
        local_start = datetime.combine(
            appt.appointment_date,
            time(start_minutes // 60, start_minutes % 60),
            tzinfo=self.policy.tz,
        )
        start = local_start.astimezone(timezone.utc)
        end = start + timedelta(minutes=minutes)

        summary = f"Appointment: {appt.patient_name}"
        if doctor:
            summary += f" with {doctor.name}"
        if specialty:
            summary += f" - {specialty.name}"

        details: List[str] = [f"Patient: {appt.patient_name}"]
        if appt.patient_email:
            details.append(f"Email: {appt.patient_email}")
        if appt.patient_phone:
            details.append(f"Phone: {appt.patient_phone}")
        details.append(f"Reason: {appt.reason}")
        if doctor:
            details.append(f"Doctor: {doctor.name}")
        if specialty:
            details.append(f"Specialty: {specialty.name}")
        if appt.notes:
            details.append(f"Notes: {appt.notes}")
        details.append(f"Status: {appt.status}")

        return CalendarEvent(
            uid=f"appointment-{appt.id}@{self.policy.ical_domain}",
            start=start,
            end=end,
            summary=summary,
            description="\n".join(details),
            location=f"{self.policy.clinic_name}, {self.policy.clinic_location}" if self.policy.clinic_location else self.policy.clinic_name,
            status="CONFIRMED" if appt.status == AppointmentStatus.CONFIRMED.value else "TENTATIVE",
            created=appt.created_at,
            last_modified=appt.updated_at or appt.created_at,
        )
