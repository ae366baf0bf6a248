import time
from datetime import datetime, timedelta, timezone

from src.utils.datetime_utils import (
    ensure_utc,
    isoformat_utc,
    parse_to_utc,
    struct_time_to_utc,
)


def test_parse_various_tz_strings():
    dt = parse_to_utc("Tue, 15 Jan 2019 12:45:26 GMT")
    assert dt == datetime(2019, 1, 15, 12, 45, 26, tzinfo=timezone.utc)

    dt2 = parse_to_utc("2025-09-30T12:00:00-03:00")
    assert dt2 == datetime(2025, 9, 30, 15, 0, tzinfo=timezone.utc)
    assert dt2.tzinfo == timezone.utc

    # Naive -> treated as UTC
    dt3 = parse_to_utc("2024-01-01 00:00:00")
    assert dt3 == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_parse_returns_none_for_garbage():
    assert parse_to_utc(None) is None
    assert parse_to_utc("") is None
    assert parse_to_utc("definitely not a date") is None


def test_struct_time_is_interpreted_as_utc():
    value = time.strptime("2023-06-01 08:30:00", "%Y-%m-%d %H:%M:%S")
    assert struct_time_to_utc(value) == datetime(2023, 6, 1, 8, 30, tzinfo=timezone.utc)
    assert parse_to_utc(value) == datetime(2023, 6, 1, 8, 30, tzinfo=timezone.utc)


def test_ensure_utc_and_isoformat():
    aware = datetime(2024, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_utc(aware).hour == 10
    assert ensure_utc(datetime(2024, 3, 1)).tzinfo == timezone.utc
    assert isoformat_utc(aware) == "2024-03-01T10:00:00+00:00"
    assert isoformat_utc(None) is None
