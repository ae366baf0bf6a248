from __future__ import annotations

import time as _time
from datetime import datetime, timezone
from typing import Optional, Union

from dateutil import parser as date_parser

DateLike = Union[str, _time.struct_time, datetime, None]


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive values and convert aware values to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def struct_time_to_utc(value: _time.struct_time) -> datetime:
    # feedparser normalises *_parsed fields to UTC already
    return datetime(*value[:6], tzinfo=timezone.utc)


def parse_to_utc(value: DateLike) -> Optional[datetime]:
    """
    Parse the common feed/HTML date forms into a UTC datetime.

    Accepts datetimes, ``time.struct_time`` values produced by feedparser,
    ISO-8601 strings and anything python-dateutil understands (RFC-822
    included). Returns ``None`` instead of raising on unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, _time.struct_time):
        try:
            return struct_time_to_utc(value)
        except (TypeError, ValueError):
            return None

    text = str(value).strip()
    if not text:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    try:
        return ensure_utc(date_parser.parse(text))
    except (ValueError, OverflowError, TypeError):
        return None


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialise to ISO-8601 with an explicit UTC offset (``None`` passes through)."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


__all__ = [
    "DateLike",
    "ensure_utc",
    "isoformat_utc",
    "parse_to_utc",
    "struct_time_to_utc",
    "utcnow",
]
