from typing import List, Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.ports.identity import Caller
from ..application.services.directory_service import DirectoryService
from ..exceptions import Unauthorized
from ..schemas.common.common import ERROR_RESPONSES, MessageResponse
from ..schemas.doctors.doctor import (
    DoctorCreate,
    DoctorUpdate,
    DoctorResponse,
    ScheduleUpdate,
    WorkingIntervalResponse,
    ScheduleExceptionCreate,
    ScheduleExceptionResponse,
)
from ..utils import parse_optional_date
from .deps import get_directory_service, get_optional_caller, require_staff

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"], responses=ERROR_RESPONSES)


@router.get("", response_model=List[DoctorResponse])
def list_doctors(
    specialty_id: Optional[int] = Query(None, alias="specialtyId", ge=1),
    include_archived: bool = Query(False, alias="includeArchived"),
    caller: Optional[Caller] = Depends(get_optional_caller),
    directory: DirectoryService = Depends(get_directory_service),
):
    if include_archived and not (caller and caller.is_staff):
        raise Unauthorized("Staff access required")
    return [DoctorResponse.model_validate(d) for d in directory.list_doctors(include_archived, specialty_id)]


@router.post("", response_model=DoctorResponse, status_code=201)
def create_doctor(
    data: DoctorCreate,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return DoctorResponse.model_validate(directory.create_doctor(data))


@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor(doctor_id: int, directory: DirectoryService = Depends(get_directory_service)):
    return DoctorResponse.model_validate(directory.get_doctor(doctor_id))


@router.patch("/{doctor_id}", response_model=DoctorResponse)
def update_doctor(
    doctor_id: int,
    data: DoctorUpdate,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return DoctorResponse.model_validate(directory.update_doctor(doctor_id, data))


@router.delete("/{doctor_id}", response_model=DoctorResponse)
def archive_doctor(
    doctor_id: int,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return DoctorResponse.model_validate(directory.archive_doctor(doctor_id))


@router.get("/{doctor_id}/schedule", response_model=List[WorkingIntervalResponse])
def get_schedule(doctor_id: int, directory: DirectoryService = Depends(get_directory_service)):
    return [WorkingIntervalResponse.model_validate(i) for i in directory.get_schedule(doctor_id)]


@router.put("/{doctor_id}/schedule", response_model=List[WorkingIntervalResponse])
def replace_schedule(
    doctor_id: int,
    data: ScheduleUpdate,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return [WorkingIntervalResponse.model_validate(i) for i in directory.replace_schedule(doctor_id, data.intervals)]


@router.get("/{doctor_id}/exceptions", response_model=List[ScheduleExceptionResponse])
def list_exceptions(
    doctor_id: int,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    directory: DirectoryService = Depends(get_directory_service),
):
    exceptions = directory.list_exceptions(
        doctor_id,
        parse_optional_date(date_from, "from"),
        parse_optional_date(date_to, "to"),
    )
    return [ScheduleExceptionResponse.model_validate(e) for e in exceptions]


@router.post("/{doctor_id}/exceptions", response_model=ScheduleExceptionResponse, status_code=201)
def add_exception(
    doctor_id: int,
    data: ScheduleExceptionCreate,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return ScheduleExceptionResponse.model_validate(directory.add_exception(doctor_id, data))


@router.delete("/{doctor_id}/exceptions/{exception_id}", response_model=MessageResponse)
def delete_exception(
    doctor_id: int,
    exception_id: int,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    directory.delete_exception(doctor_id, exception_id)
    return MessageResponse(message="Schedule exception deleted")
