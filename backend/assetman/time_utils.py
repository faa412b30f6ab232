from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from dateutil import parser as date_parser


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """
    Server-local calendar date.

    Business date rules (assigned date, installed date, returned date) compare
    calendar days only; the time component never matters.
    """
    return date.today()


def parse_date(value) -> Optional[date]:
    """
    Permissive date parser.

    - None / "" -> None
    - date/datetime instances pass through (datetime is truncated to its date)
    - "2026-10-19", "2026/10/19", "10/19/2026", "2026-10-19T08:00:00Z" ... are accepted

    Raises ValueError when the string cannot be understood as a date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date_parser.parse(s).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Unparseable date: {value!r}") from e


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_display_date(d: Optional[date]) -> str:
    """dd/MM/yyyy, the format list screens show. Empty string for None."""
    if d is None:
        return ""
    return d.strftime("%d/%m/%Y")


def to_iso_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.isoformat()
