from datetime import datetime, date, timezone
from typing import Optional

from .exceptions import InvalidInput


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp, the form stored in the database."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to timestamps read back without tzinfo (SQLite drops it)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# =========================
# Date / time-of-day parsing
# =========================
def parse_date(value, field: str = "date") -> date:
    """Parse a YYYY-MM-DD string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInput(f"Invalid {field} format. Use YYYY-MM-DD")


def parse_optional_date(value: Optional[str], field: str) -> Optional[date]:
    if value is None or str(value).strip() == "":
        return None
    return parse_date(value, field)


def parse_hhmm(value: str, field: str = "time") -> int:
    """Return minutes after midnight for an HH:MM string."""
    try:
        parsed = datetime.strptime(str(value).strip(), "%H:%M")
    except ValueError:
        raise InvalidInput(f"Invalid {field} format. Use HH:MM")
    return parsed.hour * 60 + parsed.minute


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_hhmm(value: str, field: str = "time") -> str:
    """'9:00' -> '09:00'"""
    return format_hhmm(parse_hhmm(value, field))


def parse_optional_id(value: Optional[str], field: str) -> Optional[int]:
    """Query ids arrive as strings; empty and 'all' mean no filter."""
    if value is None:
        return None
    value = str(value).strip()
    if value == "" or value.lower() == "all":
        return None
    try:
        parsed = int(value)
    except ValueError:
        raise InvalidInput(f"Invalid {field}")
    if parsed < 1:
        raise InvalidInput(f"Invalid {field}")
    return parsed
