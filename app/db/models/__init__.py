# Models package (re-export feature modules for stable imports)
from .directory.specialty import Specialty, AppointmentDuration
from .directory.doctor import Doctor
from .directory.schedule import WorkingInterval, ScheduleException
from .booking.appointment import Appointment

__all__ = [
    "Specialty",
    "AppointmentDuration",
    "Doctor",
    "WorkingInterval",
    "ScheduleException",
    "Appointment",
]
