# app/schemas/appointments/appointment.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date, datetime

from ...application.ports.appointments_repo import AppointmentStatus


class AppointmentBase(BaseModel):
    doctor_id: int = Field(ge=1)
    specialty_id: Optional[int] = Field(default=None, ge=1)
    patient_name: str = Field(min_length=1, max_length=200)
    patient_email: Optional[str] = Field(default=None, max_length=200)
    patient_phone: Optional[str] = Field(default=None, max_length=50)
    reason: str = Field(max_length=2000)


class AppointmentCreate(AppointmentBase):
    appointment_date: str  # YYYY-MM-DD
    appointment_time: str  # HH:MM

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "doctor_id": 7,
            "patient_name": "Ana Pérez",
            "patient_email": "ana@example.com",
            "patient_phone": "+34 600 000 000",
            "reason": "Revisión anual",
            "appointment_date": "2026-11-02",
            "appointment_time": "09:30",
        }
    })


class AppointmentUpdate(BaseModel):
    """Staff edit; omitted fields are left as they are."""
    doctor_id: Optional[int] = Field(default=None, ge=1)
    specialty_id: Optional[int] = Field(default=None, ge=1)
    patient_name: Optional[str] = Field(default=None, max_length=200)
    patient_email: Optional[str] = Field(default=None, max_length=200)
    patient_phone: Optional[str] = Field(default=None, max_length=50)
    reason: Optional[str] = Field(default=None, max_length=2000)
    appointment_date: Optional[str] = None  # YYYY-MM-DD
    appointment_time: Optional[str] = None  # HH:MM


class AppointmentResponse(AppointmentBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: Optional[str] = None
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentNotesUpdate(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=4000)


class AvailabilityResponse(BaseModel):
    doctor_id: int
    date: date
    slots: List[str]
