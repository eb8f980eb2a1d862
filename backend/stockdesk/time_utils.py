# Overview: Timestamp helpers; everything is stored as naive UTC and served with a trailing 'Z'.

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

_ONE_DAY = timedelta(days=1)
_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into a naive UTC datetime.

    Blank input gives None. A plain date is midnight of that day, offsets
    (including 'Z') are folded into UTC, and naive values are taken as UTC
    already. Malformed input raises ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def is_date_only(value: Optional[str]) -> bool:
    """True for plain calendar dates such as "2024-05-31"."""
    if not value:
        return False
    text = value.strip()
    return len(text) == 10 and "T" not in text and " " not in text


def end_of_day(dt: datetime) -> datetime:
    """Last representable instant of dt's calendar day."""
    midnight = dt.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + _ONE_DAY - _TICK


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 in UTC with a 'Z' suffix; naive input is UTC."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"
