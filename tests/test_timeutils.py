"""Tests for HH:MM parsing and interval overlap."""

import pytest

from timetable.domain.errors import InvalidTimeRangeError, MalformedTimeError
from timetable.services.timeutils import (
    check_window,
    format_time,
    format_window,
    is_valid_time,
    overlaps,
    to_minutes,
)


def test_to_minutes_bounds():
    assert to_minutes("00:00") == 0
    assert to_minutes("23:59") == 1439
    assert to_minutes("9:05") == 545
    assert to_minutes("18:30") == 1110


@pytest.mark.parametrize(
    "value", ["24:00", "12:60", "1200", "", "12:5", " 12:00", "12:00\n", "ab:cd", None]
)
def test_to_minutes_rejects_malformed(value):
    with pytest.raises(MalformedTimeError):
        to_minutes(value)


def test_malformed_time_is_a_value_error():
    assert not is_valid_time("7pm")
    with pytest.raises(ValueError):
        to_minutes("7pm")


def test_partial_overlap():
    assert overlaps("18:00", "19:00", "18:30", "19:30") is True


def test_containment_and_identical_windows_overlap():
    assert overlaps("08:00", "12:00", "09:00", "10:00") is True
    assert overlaps("09:00", "10:00", "09:00", "10:00") is True


def test_touching_windows_do_not_overlap():
    """When one window ends exactly as the other starts there is no overlap."""
    assert overlaps("18:00", "19:00", "19:00", "20:00") is False
    assert overlaps("19:00", "20:00", "18:00", "19:00") is False


def test_overlap_is_symmetric():
    windows = [("08:00", "09:00"), ("08:30", "10:00"), ("09:00", "09:45"), ("07:00", "12:00")]
    for a in windows:
        for b in windows:
            assert overlaps(*a, *b) == overlaps(*b, *a)


def test_format_pads_hours():
    assert format_time("9:05") == "09:05"
    assert format_window("9:00", "10:30") == "09:00-10:30"


@pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("11:00", "10:00")])
def test_check_window_rejects_empty_windows(start, end):
    with pytest.raises(InvalidTimeRangeError):
        check_window(start, end)


def test_check_window_rejects_malformed_bound():
    with pytest.raises(MalformedTimeError):
        check_window("10:00", "25:00")
