# app/db/models/booking/appointment.py
from typing import Optional
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, date

from ....utils import utcnow

ACTIVE_SLOT_INDEX = "uq_appointments_active_slot"
ACTIVE_SLOT_CLAUSE = "status != 'cancelled'"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    # At most one non-cancelled appointment per doctor, date and time
    __table_args__ = (
        Index(
            ACTIVE_SLOT_INDEX,
            "doctor_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=text(ACTIVE_SLOT_CLAUSE),
            postgresql_where=text(ACTIVE_SLOT_CLAUSE),
        ),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    patient_id: Optional[str] = Field(default=None, index=True)
    patient_name: str
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    specialty_id: Optional[int] = Field(default=None, foreign_key="specialties.id")
    appointment_date: date = Field(index=True)
    appointment_time: str  # "HH:MM"
    reason: str
    status: str = Field(default="pending")
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    # Relationships
    doctor: Optional["Doctor"] = Relationship(back_populates="appointments")
