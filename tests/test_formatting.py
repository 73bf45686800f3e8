from __future__ import annotations

from datetime import time

from sujood.formatting import format_duration, format_pages, format_time, progress_bar


def test_format_duration() -> None:
    assert format_duration(0) == "now"
    assert format_duration(-5) == "now"
    assert format_duration(59) == "0m"
    assert format_duration(23400) == "6h 30m"
    assert format_duration(45 * 60) == "45m"


def test_format_time_is_zero_padded() -> None:
    assert format_time(time(5, 7)) == "05:07"


def test_progress_bar() -> None:
    assert progress_bar(0, 0, 4) == "░░░░"
    assert progress_bar(5, 5, 10) == "█" * 10
    assert progress_bar(1, 5, 10) == "██░░░░░░░░"
    assert progress_bar(9, 5, 4) == "████"


def test_format_pages_drops_whole_number_decimals() -> None:
    assert format_pages(3.0) == "3"
    assert format_pages(2.5) == "2.5"
    assert format_pages(1.25) == "1.2"
