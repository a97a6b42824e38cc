"""Plain-text iCalendar (RFC 5545) rendering for appointment feeds.

Output is deterministic: the same events in the same order always give
the same bytes, which lets calendar clients and HTTP caches rely on
ETags and UIDs.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

CRLF = "\r\n"
MAX_LINE_OCTETS = 75


@dataclass
class CalendarEvent:
    uid: str
    start: datetime
    end: datetime
    summary: str
    description: str = ""
    location: str = ""
    status: str = "TENTATIVE"  # TENTATIVE | CONFIRMED | CANCELLED
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None


def escape_text(value: str) -> str:
    """Escape a TEXT value: backslash, semicolon, comma and newlines."""
    value = value or ""
    value = value.replace("\\", "\\\\")
    value = value.replace(";", "\\;").replace(",", "\\,")
    value = value.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "\\n")
    return value


def fold_line(line: str, limit: int = MAX_LINE_OCTETS) -> str:
    """Fold a content line to at most `limit` octets per physical line.

    Continuation lines start with a single space. Multi-byte characters are
    never split.
    """
    if len(line.encode("utf-8")) <= limit:
        return line
    parts: List[str] = []
    current = ""
    current_len = 0
    budget = limit
    for char in line:
        size = len(char.encode("utf-8"))
        if current_len + size > budget:
            parts.append(current)
            current, current_len = char, size
            budget = limit - 1  # room for the leading space
        else:
            current += char
            current_len += size
    parts.append(current)
    return (CRLF + " ").join(parts)


def format_utc(value: datetime) -> str:
    """20261102T083000Z; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def event_lines(event: CalendarEvent) -> List[str]:
    stamp = event.last_modified or event.created or event.start
    lines = [
        "BEGIN:VEVENT",
        f"UID:{event.uid}",
        f"DTSTAMP:{format_utc(stamp)}",
        f"DTSTART:{format_utc(event.start)}",
        f"DTEND:{format_utc(event.end)}",
        f"SUMMARY:{escape_text(event.summary)}",
    ]
    if event.description:
        lines.append(f"DESCRIPTION:{escape_text(event.description)}")
    if event.location:
        lines.append(f"LOCATION:{escape_text(event.location)}")
    lines.append(f"STATUS:{event.status}")
    if event.created:
        lines.append(f"CREATED:{format_utc(event.created)}")
    if event.last_modified:
        lines.append(f"LAST-MODIFIED:{format_utc(event.last_modified)}")
    lines.append("END:VEVENT")
    return lines


def render_calendar(
    events: Iterable[CalendarEvent],
    name: str,
    prodid: str,
    description: str = "",
    timezone_name: Optional[str] = None,
    url: Optional[str] = None,
    refresh_minutes: Optional[int] = None,
) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{prodid}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_text(name)}",
    ]
    if description:
        lines.append(f"X-WR-CALDESC:{escape_text(description)}")
    if timezone_name:
        lines.append(f"X-WR-TIMEZONE:{timezone_name}")
    if url:
        lines.append(f"URL:{url}")
    if refresh_minutes:
        lines.append(f"REFRESH-INTERVAL;VALUE=DURATION:PT{refresh_minutes}M")
        lines.append(f"X-PUBLISHED-TTL:PT{refresh_minutes}M")
    for event in events:
        lines.extend(event_lines(event))
    lines.append("END:VCALENDAR")
    return CRLF.join(fold_line(line) for line in lines) + CRLF
