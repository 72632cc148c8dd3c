"""
Unit tests for date cell parsing.
"""

from datetime import date, datetime

from meet_import.core.ingestion.dates import parse_date, parse_packed_date


class TestParseDate:
    """Tests for the date shapes found in exports."""

    def test_slashed_dates(self):
        assert parse_date("3/1/25") == date(2025, 3, 1)
        assert parse_date("03/01/2025") == date(2025, 3, 1)

    def test_packed_and_iso(self):
        assert parse_date("07282012") == date(2012, 7, 28)
        assert parse_date("2025-03-01") == date(2025, 3, 1)
        assert parse_date("2025-03-01T09:30:00") == date(2025, 3, 1)

    def test_workbook_values(self):
        assert parse_date(datetime(2025, 3, 1, 9, 30)) == date(2025, 3, 1)
        assert parse_date(date(2025, 3, 1)) == date(2025, 3, 1)

    def test_unreadable_values(self):
        assert parse_date(None) is None
        assert parse_date("  ") is None
        assert parse_date("2/30/25") is None
        assert parse_date("soon") is None


class TestParsePackedDate:
    """Tests for the fixed-width MMDDYYYY form."""

    def test_valid(self):
        assert parse_packed_date("06012013") == date(2013, 6, 1)

    def test_impossible_date(self):
        assert parse_packed_date("13452025") is None

    def test_wrong_shape(self):
        assert parse_packed_date("6/1/2013") is None
        assert parse_packed_date("") is None
