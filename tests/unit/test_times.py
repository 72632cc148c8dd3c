"""
Unit tests for race time parsing and formatting.
"""

import pytest

from meet_import.core.ingestion.times import (
    INVALID_TIME,
    format_time,
    is_valid_time,
    parse_time,
)


# ---------------------------------------------------------------------------
# parse_time
# ---------------------------------------------------------------------------

class TestParseTime:
    """Tests for converting time text to seconds."""

    def test_seconds_only(self):
        """Under-a-minute times have no minutes prefix."""
        assert parse_time("58.21") == 58.21

    def test_minutes_and_seconds(self):
        assert parse_time("1:05.30") == 65.3

    def test_course_letter_is_stripped(self):
        """Timing software appends Y, L or X for the course."""
        assert parse_time("1:45.55Y") == 105.55
        assert parse_time("38.90y") == 38.9
        assert parse_time("2:03.1L") == 123.1

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_time("  58.21 ") == 58.21

    def test_one_decimal_place_is_accepted(self):
        """Decimal precision isn't enforced."""
        assert parse_time("58.2") == 58.2

    @pytest.mark.parametrize("text", ["DQ", "NS", "NT", "SCR", "dnf", ""])
    def test_status_markers_and_blanks_are_invalid(self, text):
        assert parse_time(text) == INVALID_TIME

    def test_none_is_invalid(self):
        assert parse_time(None) == INVALID_TIME

    def test_garbage_is_invalid_not_an_error(self):
        """Unparsable input never raises."""
        assert parse_time("fast") == INVALID_TIME
        assert parse_time("1:2:3") == INVALID_TIME

    def test_sixty_seconds_after_minutes_is_invalid(self):
        assert parse_time("1:60.00") == INVALID_TIME

    def test_zero_is_invalid(self):
        assert parse_time("0.00") == INVALID_TIME

    def test_is_valid_time(self):
        assert is_valid_time("57.90")
        assert not is_valid_time("DQ")
        assert not is_valid_time("")


# ---------------------------------------------------------------------------
# format_time
# ---------------------------------------------------------------------------

class TestFormatTime:
    """Tests for rendering seconds as time text."""

    def test_under_a_minute(self):
        assert format_time(58.21) == "58.21"

    def test_seconds_are_padded_after_minutes(self):
        assert format_time(65.3) == "1:05.30"

    def test_long_events(self):
        assert format_time(601.99) == "10:01.99"

    def test_rounding_carries_into_minutes(self):
        """59.999 is 60.00 seconds, which is 1:00.00, not 60.00."""
        assert format_time(59.999) == "1:00.00"

    def test_invalid_renders_as_dashes(self):
        assert format_time(INVALID_TIME) == "--"
        assert format_time(None) == "--"
        assert format_time(0) == "--"

    @pytest.mark.parametrize("text,canonical", [
        ("58.21", "58.21"),
        ("1:05.30", "1:05.30"),
        ("1:45.55Y", "1:45.55"),
        ("58.2", "58.20"),
        (" 25.00 ", "25.00"),
        ("10:01.99", "10:01.99"),
    ])
    def test_format_reverses_parse(self, text, canonical):
        """Formatting a parsed time gives back its canonical form."""
        assert format_time(parse_time(text)) == canonical
