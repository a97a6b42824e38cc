# app/db/models/directory/doctor.py
from typing import Optional, List
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime

from ....utils import utcnow


class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    specialty_id: Optional[int] = Field(default=None, foreign_key="specialties.id")
    bio: Optional[str] = None
    appointment_minutes: Optional[int] = None  # overrides the specialty duration
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    specialty: Optional["Specialty"] = Relationship(back_populates="doctors")
    appointments: List["Appointment"] = Relationship(back_populates="doctor")
