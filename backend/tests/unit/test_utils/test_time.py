"""Time helper tests"""
from datetime import datetime, timedelta, timezone

import pytest

from agencyflow.utils.time import (
    ensure_utc, format_iso, parse_iso, start_of_day, start_of_month,
    start_of_week, to_naive_utc
)


def test_format_iso_uses_z_suffix():
    dt = datetime(2024, 3, 5, 12, 30, tzinfo=timezone.utc)
    assert format_iso(dt) == "2024-03-05T12:30:00Z"
    assert format_iso(dt.replace(tzinfo=None)) == "2024-03-05T12:30:00Z"


@pytest.mark.parametrize("value", ["2024-03-05T12:30:00Z", "2024-03-05T12:30:00", "2024-03-05T14:30:00+02:00"])
def test_parse_iso(value):
    parsed = parse_iso(value)
    assert parsed.tzinfo is not None
    assert parsed.astimezone(timezone.utc) == datetime(2024, 3, 5, 12, 30, tzinfo=timezone.utc)


def test_parse_iso_rejects_garbage():
    with pytest.raises(ValueError):
        parse_iso("yesterday-ish")


def test_to_naive_utc():
    aware = datetime(2024, 3, 5, 14, 30, tzinfo=timezone(timedelta(hours=2)))
    assert to_naive_utc(aware) == datetime(2024, 3, 5, 12, 30)
    assert to_naive_utc(None) is None
    assert ensure_utc(datetime(2024, 3, 5)).tzinfo == timezone.utc


def test_period_starts():
    # Wednesday
    now = datetime(2024, 3, 6, 15, 45, tzinfo=timezone.utc)
    assert start_of_day(now) == datetime(2024, 3, 6, tzinfo=timezone.utc)
    assert start_of_week(now) == datetime(2024, 3, 3, tzinfo=timezone.utc)
    assert start_of_month(now) == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_week_starts_on_sunday():
    sunday = datetime(2024, 3, 3, 9, 0, tzinfo=timezone.utc)
    assert start_of_week(sunday) == datetime(2024, 3, 3, tzinfo=timezone.utc)
