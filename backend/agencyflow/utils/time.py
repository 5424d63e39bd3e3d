"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone, timedelta
from typing import Optional
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string

    Args:
        dt: Datetime object

    Returns:
        ISO formatted string with Z suffix for UTC
    """
    if dt.tzinfo is None:
        # Mongo hands back naive UTC datetimes
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted datetime string

    Returns:
        Datetime object in UTC
    """
    dt = date_parser.isoparse(iso_string)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the store"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_day(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the given (or current) day"""
    now = now or utc_now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the most recent Sunday"""
    day = start_of_day(now)
    # isoweekday: Monday=1 .. Sunday=7
    return day - timedelta(days=day.isoweekday() % 7)


def start_of_month(now: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the first day of the month"""
    return start_of_day(now).replace(day=1)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """UTC without tzinfo, the form Mongo stores and compares"""
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)
