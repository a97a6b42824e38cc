from typing import List
from fastapi import APIRouter, Depends

from ..application.ports.identity import Caller
from ..application.services.directory_service import DirectoryService
from ..schemas.common.common import ERROR_RESPONSES
from ..schemas.doctors.doctor import (
    SpecialtyCreate,
    SpecialtyUpdate,
    SpecialtyResponse,
    DurationUpdate,
    DurationResponse,
)
from .deps import get_directory_service, require_staff

router = APIRouter(prefix="/specialties", tags=["Specialties"], responses=ERROR_RESPONSES)


@router.get("", response_model=List[SpecialtyResponse])
def list_specialties(directory: DirectoryService = Depends(get_directory_service)):
    return [SpecialtyResponse.model_validate(s) for s in directory.list_specialties()]


@router.post("", response_model=SpecialtyResponse, status_code=201)
def create_specialty(
    data: SpecialtyCreate,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return SpecialtyResponse.model_validate(directory.create_specialty(data))


@router.patch("/{specialty_id}", response_model=SpecialtyResponse)
def update_specialty(
    specialty_id: int,
    data: SpecialtyUpdate,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return SpecialtyResponse.model_validate(directory.update_specialty(specialty_id, data))


@router.get("/durations", response_model=List[DurationResponse])
def list_durations(directory: DirectoryService = Depends(get_directory_service)):
    return [DurationResponse.model_validate(d) for d in directory.list_durations()]


@router.put("/{specialty_id}/duration", response_model=DurationResponse)
def set_duration(
    specialty_id: int,
    data: DurationUpdate,
    staff: Caller = Depends(require_staff),
    directory: DirectoryService = Depends(get_directory_service),
):
    return DurationResponse.model_validate(directory.set_duration(specialty_id, data))
