from functools import lru_cache
from typing import Optional
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..application.ports.identity import Caller
from ..application.services.appointments_service import AppointmentsService
from ..application.services.availability_service import AvailabilityService
from ..application.services.booking_policy import BookingPolicy
from ..application.services.calendar_feed_service import CalendarFeedService
from ..application.services.directory_service import DirectoryService
from ..config import settings
from ..database import get_session
from ..exceptions import Unauthorized
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.directory_repository_sql import SqlDirectoryRepository
from ..services.auth import decode_jwt_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)


# Identity of the caller from JWT (bearer header, falling back to the session cookie)
def get_optional_caller(request: Request, credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> Optional[Caller]:
    token = None
    if credentials and credentials.credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get("access_token")
    if not token:
        return None
    payload = decode_jwt_token(token)
    if not payload:
        logger.warning("JWT token decode failed - invalid or expired token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: missing user ID")
    return Caller(user_id=str(user_id), role=str(payload.get("role") or "patient"))


def get_current_caller(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
    if caller is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return caller


def require_staff(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.is_staff:
        raise Unauthorized("Staff access required")
    return caller


@lru_cache()
def get_booking_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(settings)


@lru_cache()
def get_audit_logger() -> StdAuditLogger:
    return StdAuditLogger()


def get_directory_repository(session: Session = Depends(get_session)) -> SqlDirectoryRepository:
    return SqlDirectoryRepository(session)


def get_appointments_repository(session: Session = Depends(get_session)) -> SqlAppointmentsRepository:
    return SqlAppointmentsRepository(session)


def get_availability_service(
    directory: SqlDirectoryRepository = Depends(get_directory_repository),
    appointments: SqlAppointmentsRepository = Depends(get_appointments_repository),
    policy: BookingPolicy = Depends(get_booking_policy),
) -> AvailabilityService:
    return AvailabilityService(directory=directory, appointments=appointments, policy=policy)


def get_appointments_service(
    repo: SqlAppointmentsRepository = Depends(get_appointments_repository),
    directory: SqlDirectoryRepository = Depends(get_directory_repository),
    availability: AvailabilityService = Depends(get_availability_service),
    audit: StdAuditLogger = Depends(get_audit_logger),
    policy: BookingPolicy = Depends(get_booking_policy),
) -> AppointmentsService:
    return AppointmentsService(repo=repo, directory=directory, availability=availability, audit=audit, policy=policy)


def get_calendar_feed_service(
    appointments: SqlAppointmentsRepository = Depends(get_appointments_repository),
    directory: SqlDirectoryRepository = Depends(get_directory_repository),
    policy: BookingPolicy = Depends(get_booking_policy),
) -> CalendarFeedService:
    return CalendarFeedService(appointments=appointments, directory=directory, policy=policy)


def get_directory_service(directory: SqlDirectoryRepository = Depends(get_directory_repository)) -> DirectoryService:
    return DirectoryService(repo=directory)
