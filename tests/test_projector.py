from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from sujood.projector import project


def test_naive_instant_is_treated_as_utc() -> None:
    assert project(datetime(2025, 1, 1, 0, 12), 300) == time(5, 12)


def test_aware_instant_is_converted_to_utc_first() -> None:
    karachi = timezone(timedelta(hours=5))
    instant = datetime(2025, 1, 1, 5, 12, tzinfo=karachi)

    assert project(instant, 0) == time(0, 12)


def test_negative_offset_wraps_to_previous_day_time() -> None:
    assert project(datetime(2025, 1, 1, 2, 30, tzinfo=timezone.utc), -240) == time(22, 30)


def test_full_day_offset_does_not_fail() -> None:
    assert project(datetime(2025, 1, 1, 3, 0), 1440) == time(3, 0)
    assert project(datetime(2025, 1, 1, 3, 0), -1440) == time(3, 0)


def test_seconds_are_truncated_to_the_minute() -> None:
    assert project(datetime(2025, 1, 1, 11, 59, 59, 999), 30) == time(12, 29)
