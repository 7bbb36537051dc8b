"""
Timezone helpers.

Persisted instants are UTC. Business rules (working hours, day of week,
"is today") are evaluated in the salon's local timezone, so every boundary
between the two goes through this module.
"""

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import BUSINESS_TIMEZONE

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HH_MM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

DAY_NAMES = [
    "Domingo",
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
]


def get_zone(name: Optional[str] = None) -> ZoneInfo:
    """Get a ZoneInfo timezone, falling back to the business timezone"""
    try:
        return ZoneInfo(name or BUSINESS_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"⚠️ Unknown timezone '{name}', using {BUSINESS_TIMEZONE}")
        return ZoneInfo(BUSINESS_TIMEZONE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """Attach ``tz`` (salon local by default) to naive datetimes"""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz or get_zone())
    return value


def to_utc(value: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    return ensure_aware(value, tz).astimezone(timezone.utc)


def to_local(value: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    # Naive values here are UTC instants coming back from storage
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz or get_zone())


def to_db(value: datetime) -> datetime:
    """Convert an aware instant to the naive UTC form stored in the database"""
    return to_utc(value, timezone.utc).replace(tzinfo=None)


def from_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def combine_local(day: date, wall_time: time, tz: ZoneInfo) -> datetime:
    """Local wall-clock time on ``day`` as a UTC instant"""
    return datetime.combine(day, wall_time, tzinfo=tz).astimezone(timezone.utc)


def local_day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """
    UTC instants of local midnight and the following midnight.

    For America/Sao_Paulo, 2025-01-28 maps to 03:00 UTC on the 28th and
    03:00 UTC on the 29th.
    """
    start = combine_local(day, time(0, 0), tz)
    end = combine_local(day + timedelta(days=1), time(0, 0), tz)
    return start, end


def local_date_of(value: datetime, tz: ZoneInfo) -> date:
    return to_local(value, tz).date()


def day_of_week(day: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def day_name(day_index: int) -> str:
    if 0 <= day_index < len(DAY_NAMES):
        return DAY_NAMES[day_index]
    return ""


def parse_hhmm(value: str) -> time:
    """Parse a 24h "HH:MM" string"""
    match = _HH_MM.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def time_to_minutes(value: str) -> int:
    parsed = parse_hhmm(value)
    return parsed.hour * 60 + parsed.minute


def parse_instant(value: Union[str, datetime], tz: ZoneInfo) -> datetime:
    """
    Parse an ISO 8601 value into a UTC instant.

    Values with an offset are honoured, naive values are read as salon local
    time, and a bare date means 09:00 local on that day.
    """
    if isinstance(value, datetime):
        return to_utc(value, tz)

    raw = value.strip()
    if _DATE_ONLY.match(raw):
        return combine_local(date.fromisoformat(raw), time(9, 0), tz)

    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    return to_utc(parsed, tz)


def parse_local_date(value: Union[str, date, datetime], tz: ZoneInfo) -> date:
    """Resolve the salon-local calendar date a request refers to"""
    if isinstance(value, datetime):
        return local_date_of(ensure_aware(value, tz), tz)
    if isinstance(value, date):
        return value

    raw = value.strip()
    if _DATE_ONLY.match(raw):
        return date.fromisoformat(raw)
    return local_date_of(parse_instant(raw, tz), tz)


def format_date(value: Union[date, datetime], tz: Optional[ZoneInfo] = None) -> str:
    if isinstance(value, datetime):
        value = to_local(value, tz)
    return value.strftime(DATE_FORMAT)


def format_time(value: datetime, tz: Optional[ZoneInfo] = None) -> str:
    return to_local(value, tz).strftime(TIME_FORMAT)


def format_datetime(value: datetime, tz: Optional[ZoneInfo] = None) -> str:
    """28/01/2025 às 14:00 in salon local time"""
    return f"{format_date(value, tz)} às {format_time(value, tz)}"


def iso_utc(value: datetime) -> str:
    return to_utc(value, timezone.utc).isoformat().replace("+00:00", "Z")
