"""
Unit tests for the ingestion domain models.

These tests verify the models without touching external services
(no database, no file system).

Testing philosophy:
- Test behavior, not implementation
- Use descriptive names that explain what we're testing
- Prefer real objects over mocks where practical
"""

from datetime import date

import pytest

from meet_import.core.ingestion.models import (
    CanonicalEvent,
    RecordBreakEvent,
    RecordKey,
    Stroke,
    TeamRecord,
)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class TestCanonicalEvent:
    """Tests for the CanonicalEvent value object."""

    def test_key_format(self):
        """Keys are stored with every result, so the format is fixed."""
        assert CanonicalEvent(100, Stroke.FREE).key == "100 Free"
        assert CanonicalEvent(200, Stroke.IM).key == "200 IM"
        assert str(CanonicalEvent(50, Stroke.BREAST)) == "50 Breast"

    def test_rejects_non_positive_distance(self):
        with pytest.raises(ValueError, match="positive"):
            CanonicalEvent(0, Stroke.FLY)

    def test_events_are_hashable_values(self):
        assert CanonicalEvent(100, Stroke.BACK) == CanonicalEvent(100, Stroke.BACK)
        assert len({CanonicalEvent(100, Stroke.BACK), CanonicalEvent(100, Stroke.BACK)}) == 1

    def test_stroke_codes(self):
        assert Stroke.from_code("1") == Stroke.FREE
        assert Stroke.from_code("5") == Stroke.IM
        assert Stroke.from_code("6") is None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class TestRecordBreakEvent:
    """Tests for the proposal object handed to callers."""

    @pytest.fixture
    def record_break(self):
        return RecordBreakEvent(
            swimmer_id="s1",
            swimmer_name="Jane Smith",
            event="100 Free",
            age_group="11/12",
            gender="Female",
            course="SCY",
            new_time_seconds=57.9,
            new_time_display="57.90",
            date=date(2025, 3, 1),
        )

    def test_first_record_has_no_previous(self, record_break):
        assert record_break.is_first_record

        record_break.previous_time_seconds = 58.5
        assert not record_break.is_first_record

    def test_to_team_record_keeps_the_bucket(self, record_break):
        record = record_break.to_team_record()

        assert isinstance(record, TeamRecord)
        assert record.key == record_break.key == RecordKey("100 Free", "11/12", "Female", "SCY")
        assert record.swimmer_id == "s1"
        assert record.time_display == "57.90"
        assert record.date == date(2025, 3, 1)
