# app/db/models/directory/schedule.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, date

from ....utils import utcnow


class WorkingInterval(SQLModel, table=True):
    __tablename__ = "doctor_schedules"
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    weekday: int  # 0=Monday ... 6=Sunday
    start_time: str  # "09:00"
    end_time: str  # "17:00"
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)


class ScheduleException(SQLModel, table=True):
    __tablename__ = "doctor_exceptions"
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    exception_date: date = Field(index=True)
    start_time: Optional[str] = None  # null start/end means the whole day
    end_time: Optional[str] = None
    reason: Optional[str] = None
    is_available: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
