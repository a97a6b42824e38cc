from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ...utils import parse_hhmm

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_working_hours(raw: Dict[str, List[str]]) -> Dict[int, List[Tuple[int, int]]]:
    """{"monday": ["09:00-14:00"]} -> {0: [(540, 840)]}"""
    template: Dict[int, List[Tuple[int, int]]] = {}
    for day_name, ranges in (raw or {}).items():
        weekday = WEEKDAYS.index(day_name.strip().lower())
        for item in ranges:
            start, _, end = item.partition("-")
            start_min = parse_hhmm(start, "working hours start")
            end_min = parse_hhmm(end, "working hours end")
            if end_min <= start_min:
                raise ValueError(f"Working hours for {day_name} end before they start: {item}")
            template.setdefault(weekday, []).append((start_min, end_min))
    for intervals in template.values():
        intervals.sort()
    return template


@dataclass(frozen=True)
class BookingPolicy:
    """Booking rules and clinic identity, passed explicitly to the services."""
    slot_minutes: int = 30
    min_reason_length: int = 5
    timezone: str = "Atlantic/Canary"
    working_hours: Dict[int, List[Tuple[int, int]]] = field(default_factory=dict)
    clinic_name: str = "Clinic"
    clinic_location: str = ""
    ical_domain: str = "localhost"
    ical_prodid: str = "-//Clinic//Appointments//EN"
    base_url: str = "http://localhost:8000"

    @classmethod
    def from_settings(cls, settings) -> "BookingPolicy":
        return cls(
            slot_minutes=settings.SLOT_MINUTES,
            min_reason_length=settings.MIN_REASON_LENGTH,
            timezone=settings.CLINIC_TIMEZONE,
            working_hours=parse_working_hours(settings.DEFAULT_WORKING_HOURS),
            clinic_name=settings.CLINIC_NAME,
            clinic_location=settings.CLINIC_LOCATION,
            ical_domain=settings.ICAL_DOMAIN,
            ical_prodid=settings.ICAL_PRODID,
            base_url=settings.BASE_URL.rstrip("/"),
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def now(self) -> datetime:
        """Wall-clock time at the clinic."""
        return datetime.now(self.tz)

    def resolve_duration(self, doctor_minutes: Optional[int], specialty_minutes: Optional[int]) -> int:
        # doctor override, then specialty default, then the clinic default
        return doctor_minutes or specialty_minutes or self.slot_minutes
