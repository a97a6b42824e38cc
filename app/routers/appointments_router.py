from typing import List, Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.ports.appointments_repo import AppointmentQuery
from ..application.ports.identity import Caller
from ..application.services.appointments_service import AppointmentsService
from ..schemas.appointments.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentNotesUpdate,
    AppointmentUpdate,
)
from ..schemas.common.common import ERROR_RESPONSES
from ..utils import parse_optional_date, parse_optional_id
from .deps import get_appointments_service, get_current_caller, get_optional_caller

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"], responses=ERROR_RESPONSES)


@router.post("", response_model=AppointmentResponse, status_code=201)
def book_appointment(
    appointment_data: AppointmentCreate,
    caller: Optional[Caller] = Depends(get_optional_caller),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.create_appointment(appointment_data, caller)
    return AppointmentResponse.model_validate(appt)


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    doctor_id: Optional[str] = Query(None, alias="doctorId"),
    specialty_id: Optional[str] = Query(None, alias="specialtyId"),
    status: Optional[List[str]] = Query(None),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    caller: Caller = Depends(get_current_caller),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    query = AppointmentQuery(
        doctor_id=parse_optional_id(doctor_id, "doctorId"),
        specialty_id=parse_optional_id(specialty_id, "specialtyId"),
        date_from=parse_optional_date(date_from, "from"),
        date_to=parse_optional_date(date_to, "to"),
        statuses=status or None,
    )
    return [AppointmentResponse.model_validate(a) for a in appt_service.list_appointments(query, caller)]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    caller: Caller = Depends(get_current_caller),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.model_validate(appt_service.get_appointment(appointment_id, caller))


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    body: AppointmentUpdate,
    caller: Caller = Depends(get_current_caller),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.model_validate(appt_service.update_appointment(appointment_id, body, caller))


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    body: AppointmentStatusUpdate,
    caller: Caller = Depends(get_current_caller),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.update_status(appointment_id, body.status.value, caller)
    return AppointmentResponse.model_validate(appt)


@router.patch("/{appointment_id}/notes", response_model=AppointmentResponse)
def update_appointment_notes(
    appointment_id: int,
    body: AppointmentNotesUpdate,
    caller: Caller = Depends(get_current_caller),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.model_validate(appt_service.update_notes(appointment_id, body.notes, caller))
