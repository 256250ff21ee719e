"""Tests for day and time helpers."""

import pytest

from timegrid.extraction.normalizer import TimeBlockData
from timegrid.utils.schedule import (
    DAYS_OF_WEEK,
    calculate_duration,
    day_order,
    format_time,
    normalize_day,
    normalize_time,
    sort_timeblocks,
    time_to_minutes,
)


class TestNormalizeDay:
    """Tests for day label normalization."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("M", "Monday"),
            ("Tu", "Tuesday"),
            ("w", "Wednesday"),
            ("Th", "Thursday"),
            ("F", "Friday"),
            ("wed.", "Wednesday"),
            ("MONDAY", "Monday"),
            (" friday ", "Friday"),
        ],
    )
    def test_known_labels(self, label: str, expected: str) -> None:
        assert normalize_day(label) == expected

    def test_unknown_label_is_title_cased(self) -> None:
        assert normalize_day("every day") == "Every Day"


class TestNormalizeTime:
    """Tests for time normalization to HH:MM."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("9:00", "09:00"),
            ("9.15", "09:15"),
            ("930", "09:30"),
            ("9", "09:00"),
            ("9:00 AM", "09:00"),
            ("1:30pm", "13:30"),
            ("12:15 pm", "12:15"),
            ("12:00 am", "00:00"),
            ("13:05", "13:05"),
        ],
    )
    def test_formats(self, value: str, expected: str) -> None:
        assert normalize_time(value) == expected

    def test_unparseable_returned_stripped(self) -> None:
        assert normalize_time("  after lunch ") == "after lunch"

    def test_out_of_range_not_normalized(self) -> None:
        assert normalize_time("25:00") == "25:00"


class TestDurations:
    """Tests for minute arithmetic."""

    def test_time_to_minutes(self) -> None:
        assert time_to_minutes("08:35") == 515
        assert time_to_minutes("noon") is None

    def test_calculate_duration(self) -> None:
        assert calculate_duration("09:15", "10:45") == 90

    def test_calculate_duration_defaults(self) -> None:
        assert calculate_duration("10:00", "09:00") == 60
        assert calculate_duration("??", "10:00", default=45) == 45


class TestFormatTime:
    """Tests for 12-hour display formatting."""

    def test_afternoon(self) -> None:
        assert format_time("13:05") == "1:05 PM"

    def test_midnight_and_noon(self) -> None:
        assert format_time("00:30") == "12:30 AM"
        assert format_time("12:00") == "12:00 PM"

    @pytest.mark.parametrize("value", [None, "", "9am", "ab:cd"])
    def test_invalid(self, value: str | None) -> None:
        assert format_time(value) == "00:00 AM"


class TestSortTimeblocks:
    """Tests for weekly grid ordering."""

    def test_day_order(self) -> None:
        assert day_order("Monday") == 0
        assert day_order("Sunday") == 6
        assert day_order("Someday") == len(DAYS_OF_WEEK)

    def test_sorts_dataclasses(self, sample_blocks: list[TimeBlockData]) -> None:
        ordered = sort_timeblocks(sample_blocks)
        assert [b.title for b in ordered] == ["Phonics", "Lunch", "Maths"]

    def test_sorts_json_mappings(self) -> None:
        blocks = [
            {"title": "b", "dayOfWeek": "Friday", "startTime": "09:00"},
            {"title": "a", "dayOfWeek": "Monday", "startTime": "13:00"},
            {"title": "c", "dayOfWeek": "Monday", "startTime": "08:35"},
        ]
        assert [b["title"] for b in sort_timeblocks(blocks)] == ["c", "a", "b"]

    def test_unknown_days_last_and_stable(self) -> None:
        blocks = [
            TimeBlockData("x", "09:00", "10:00", "Holiday"),
            TimeBlockData("y", "09:00", "10:00", "Holiday"),
            TimeBlockData("z", "09:00", "10:00", "Sunday"),
        ]
        assert [b.title for b in sort_timeblocks(blocks)] == ["z", "x", "y"]

    def test_normalized_strings_sort_into_grid(self) -> None:
        blocks = [
            TimeBlockData("late", normalize_time("1.30pm"), "14:00", normalize_day("Tu")),
            TimeBlockData("early", normalize_time("930"), "10:00", normalize_day("tue")),
        ]
        assert [b.title for b in sort_timeblocks(blocks)] == ["early", "late"]
