from typing import Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.services.availability_service import AvailabilityService
from ..schemas.appointments.appointment import AvailabilityResponse
from ..schemas.common.common import ERROR_RESPONSES
from ..utils import parse_date
from .deps import get_availability_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Availability"], responses=ERROR_RESPONSES)


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    doctor_id: int = Query(..., alias="doctorId", ge=1),
    date: str = Query(..., description="YYYY-MM-DD"),
    specialty_id: Optional[int] = Query(None, alias="specialtyId", ge=1),
    availability: AvailabilityService = Depends(get_availability_service),
):
    slots = availability.get_available_slots(doctor_id, date, specialty_id)
    return AvailabilityResponse(doctor_id=doctor_id, date=parse_date(date), slots=slots)
