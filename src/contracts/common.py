"""Common helpers shared by the record contracts."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from src.utils.datetime_utils import ensure_utc, parse_to_utc


def new_record_id() -> str:
    """Stable opaque identifier for a freshly created record."""
    return uuid.uuid4().hex


def coerce_optional_datetime(value: Any) -> Optional[datetime]:
    """Accept datetimes or stored ISO strings; unparseable values become ``None``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return parse_to_utc(value)


def coerce_required_datetime(value: Any) -> datetime:
    parsed = coerce_optional_datetime(value)
    if parsed is None:
        raise ValueError(f"not a valid timestamp: {value!r}")
    return parsed


def blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
