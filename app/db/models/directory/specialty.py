# app/db/models/directory/specialty.py
from typing import Optional, List
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime

from ....utils import utcnow


class Specialty(SQLModel, table=True):
    __tablename__ = "specialties"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)

    # Relationships
    doctors: List["Doctor"] = Relationship(back_populates="specialty")


class AppointmentDuration(SQLModel, table=True):
    __tablename__ = "appointment_durations"
    id: Optional[int] = Field(default=None, primary_key=True)
    specialty_id: int = Field(foreign_key="specialties.id", unique=True)
    duration: int = Field(default=30)  # minutes
    description: Optional[str] = None
