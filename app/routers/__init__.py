# Routers package
from . import availability_router
from . import appointments_router
from . import ical_router
from . import doctors_router
from . import specialties_router

__all__ = [
    "availability_router",
    "appointments_router",
    "ical_router",
    "doctors_router",
    "specialties_router",
]
