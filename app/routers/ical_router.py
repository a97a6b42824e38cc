from datetime import datetime, timezone
from typing import Optional
import hashlib
import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from ..application.services.calendar_feed_service import CalendarFeedService, FeedFilter
from ..config import settings
from ..schemas.calendar.calendar import SubscriptionUrls
from ..schemas.common.common import ERROR_RESPONSES
from ..utils import parse_optional_date, parse_optional_id
from .deps import get_calendar_feed_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ical", tags=["Calendar"], responses=ERROR_RESPONSES)


def _etag_matches(header: Optional[str], etag: str) -> bool:
    """If-None-Match may list several tags, weak ones included, or be '*'."""
    if not header:
        return False
    for candidate in header.split(","):
        candidate = candidate.strip()
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == "*" or candidate == etag:
            return True
    return False


def _calendar_response(request: Request, body: str, filename: str) -> Response:
    etag = '"' + hashlib.sha256(body.encode("utf-8")).hexdigest() + '"'
    headers = {
        "Cache-Control": f"public, max-age={settings.ICAL_CACHE_MAX_AGE}",
        "ETag": etag,
        "X-Generated-At": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    }
    if _etag_matches(request.headers.get("if-none-match"), etag):
        return Response(status_code=304, headers=headers)
    headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return Response(content=body, media_type="text/calendar; charset=utf-8", headers=headers)


@router.get("/calendar.ics")
def combined_calendar(
    request: Request,
    doctor_id: Optional[str] = Query(None, alias="doctorId"),
    specialty_id: Optional[str] = Query(None, alias="specialtyId"),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    feeds: CalendarFeedService = Depends(get_calendar_feed_service),
):
    feed_filter = FeedFilter(
        doctor_id=parse_optional_id(doctor_id, "doctorId"),
        specialty_id=parse_optional_id(specialty_id, "specialtyId"),
        date_from=parse_optional_date(date_from, "from"),
        date_to=parse_optional_date(date_to, "to"),
    )
    body = feeds.generate_feed(feed_filter, url=f"{settings.BASE_URL.rstrip('/')}/ical/calendar.ics")
    return _calendar_response(request, body, "appointments.ics")


@router.get("/doctor/{doctor_id}/calendar.ics")
def doctor_calendar(
    request: Request,
    doctor_id: int,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    feeds: CalendarFeedService = Depends(get_calendar_feed_service),
):
    body = feeds.generate_doctor_feed(
        doctor_id,
        date_from=parse_optional_date(date_from, "from"),
        date_to=parse_optional_date(date_to, "to"),
        url=f"{settings.BASE_URL.rstrip('/')}/ical/doctor/{doctor_id}/calendar.ics",
    )
    return _calendar_response(request, body, f"doctor-{doctor_id}.ics")


@router.get("/subscription-urls", response_model=SubscriptionUrls)
def subscription_urls(feeds: CalendarFeedService = Depends(get_calendar_feed_service)):
    return feeds.subscription_urls(settings.BASE_URL)
