# app/schemas/doctors/doctor.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date


class DoctorBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    specialty_id: Optional[int] = Field(default=None, ge=1)
    bio: Optional[str] = None
    appointment_minutes: Optional[int] = Field(default=None, ge=5, le=240)


class DoctorCreate(DoctorBase):
    active: bool = True


class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    specialty_id: Optional[int] = Field(default=None, ge=1)
    bio: Optional[str] = None
    appointment_minutes: Optional[int] = Field(default=None, ge=5, le=240)
    active: Optional[bool] = None


class DoctorResponse(DoctorBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    active: bool


class SpecialtyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    active: bool = True


class SpecialtyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    active: Optional[bool] = None


class SpecialtyResponse(SpecialtyCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


class DurationUpdate(BaseModel):
    duration: int = Field(ge=5, le=240)
    description: Optional[str] = None


class DurationResponse(DurationUpdate):
    model_config = ConfigDict(from_attributes=True)

    specialty_id: int


class WorkingIntervalIn(BaseModel):
    weekday: int = Field(ge=0, le=6, description="0=Monday ... 6=Sunday")
    start_time: str  # HH:MM
    end_time: str  # HH:MM


class WorkingIntervalResponse(WorkingIntervalIn):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None


class ScheduleUpdate(BaseModel):
    intervals: List[WorkingIntervalIn]

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "intervals": [
                {"weekday": 0, "start_time": "09:00", "end_time": "14:00"},
                {"weekday": 0, "start_time": "16:00", "end_time": "19:00"},
                {"weekday": 2, "start_time": "09:00", "end_time": "13:00"},
            ]
        }
    })


class ScheduleExceptionCreate(BaseModel):
    exception_date: str  # YYYY-MM-DD
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = Field(default=None, max_length=500)
    is_available: bool = False


class ScheduleExceptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    exception_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None
    is_available: bool
