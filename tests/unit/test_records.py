"""
Unit tests for the team records engine.

Write-back tests use TeamRecordRepository over the in-memory mock
connection so the conditional upsert is exercised end to end.
"""

from dataclasses import replace
from datetime import date

import pytest

from meet_import.core.ingestion.dedup import signature
from meet_import.core.ingestion.models import (
    Gender,
    RecordKey,
    ResultRecord,
    RosterSwimmer,
    Round,
    TeamRecord,
)
from meet_import.core.ingestion.records import (
    RecordsEngine,
    age_group_for,
    age_on_date,
    normalize_gender,
)
from meet_import.infrastructure.snowflake.repositories import TeamRecordRepository

SWIM_DATE = date(2025, 3, 1)
KEY = RecordKey(event="100 Free", age_group="11/12", gender="Female", course="SCY")


@pytest.fixture
def jane():
    return RosterSwimmer(id="s1", full_name="Jane Smith", date_of_birth=date(2013, 6, 1), gender="Female")


@pytest.fixture
def ann():
    return RosterSwimmer(id="s2", full_name="Ann Park", date_of_birth=date(2013, 9, 9), gender="F")


def result(swimmer_id="s1", seconds=55.4, event="100 Free", meet_date=SWIM_DATE):
    return ResultRecord(
        swimmer_id=swimmer_id,
        event=event,
        time_seconds=seconds,
        time_display=f"{seconds:.2f}",
        meet_date=meet_date,
        round=Round.FINALS,
    )


def stored(seconds, holder="Old Holder"):
    return TeamRecord(
        event=KEY.event,
        age_group=KEY.age_group,
        gender=KEY.gender,
        course=KEY.course,
        swimmer_name=holder,
        time_seconds=seconds,
        time_display=f"{seconds:.2f}",
        date=date(2020, 1, 1),
    )


# ---------------------------------------------------------------------------
# Buckets
# ---------------------------------------------------------------------------

class TestBuckets:
    """Tests for age, age group and gender helpers."""

    def test_age_turns_over_on_the_birthday(self):
        born = date(2012, 1, 15)
        assert age_on_date(born, date(2020, 1, 14)) == 7
        assert age_on_date(born, date(2020, 1, 15)) == 8
        assert age_on_date(born, date(2021, 1, 15)) == 9

    @pytest.mark.parametrize("age,group", [
        (6, "8 & Under"),
        (8, "8 & Under"),
        (9, "9/10"),
        (10, "9/10"),
        (11, "11/12"),
        (12, "11/12"),
        (13, "13/14"),
        (14, "13/14"),
        (15, "15 & Over"),
        (18, "15 & Over"),
    ])
    def test_age_groups(self, age, group):
        assert age_group_for(age) == group

    def test_normalize_gender(self):
        assert normalize_gender("m") == Gender.MALE
        assert normalize_gender(" Male ") == Gender.MALE
        assert normalize_gender("F") == Gender.FEMALE
        assert normalize_gender("FEMALE") == Gender.FEMALE
        assert normalize_gender(Gender.FEMALE) == Gender.FEMALE
        assert normalize_gender("X") is None
        assert normalize_gender(None) is None


# ---------------------------------------------------------------------------
# Single evaluation
# ---------------------------------------------------------------------------

class TestEvaluate:
    """Tests for checking one result against the stored records."""

    def test_empty_bucket_gives_first_record(self, jane):
        record_break = RecordsEngine().evaluate(result(), jane, {})

        assert record_break.key == KEY
        assert record_break.is_first_record
        assert record_break.previous_holder is None
        assert record_break.improvement_seconds is None
        assert record_break.new_time_display == "55.40"
        assert record_break.date == SWIM_DATE

    def test_faster_time_breaks_the_record(self, jane):
        record_break = RecordsEngine().evaluate(result(seconds=55.1), jane, {KEY: stored(55.4)})

        assert record_break.previous_holder == "Old Holder"
        assert record_break.previous_time_seconds == 55.4
        assert record_break.improvement_seconds == 0.3

    def test_tie_and_slower_do_not_break(self, jane):
        engine = RecordsEngine()
        assert engine.evaluate(result(seconds=55.4), jane, {KEY: stored(55.4)}) is None
        assert engine.evaluate(result(seconds=56.0), jane, {KEY: stored(55.4)}) is None

    def test_age_group_uses_age_on_swim_date(self, jane):
        """Jane is 11 in March 2025 and 13 in July 2026."""
        engine = RecordsEngine()
        assert engine.evaluate(result(), jane, {}).age_group == "11/12"
        assert engine.evaluate(result(meet_date=date(2026, 7, 1)), jane, {}).age_group == "13/14"

    def test_course_comes_from_the_engine(self, jane):
        assert RecordsEngine(course="LCM").evaluate(result(), jane, {}).course == "LCM"

    def test_skips_results_that_cannot_be_bucketed(self, jane):
        engine = RecordsEngine()
        no_birth_date = RosterSwimmer(id="s1", full_name="Jane Smith", gender="Female")
        no_gender = RosterSwimmer(id="s1", full_name="Jane Smith", date_of_birth=date(2013, 6, 1))

        assert engine.evaluate(result(seconds=999999.0), jane, {}) is None
        assert engine.evaluate(result(event="200 Medley Relay"), jane, {}) is None
        assert engine.evaluate(result(), no_birth_date, {}) is None
        assert engine.evaluate(result(), no_gender, {}) is None


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------

class TestEvaluateBatch:
    """Tests for one-proposal-per-bucket batch evaluation."""

    def test_fastest_in_batch_wins(self, jane, ann):
        swimmers = {"s1": jane, "s2": ann}
        results = [result("s1", 55.3), result("s2", 55.0), result("s1", 55.2)]

        breaks = RecordsEngine().evaluate_batch(results, swimmers, {KEY: stored(55.4)})

        assert len(breaks) == 1
        assert breaks[0].swimmer_id == "s2"
        assert breaks[0].improvement_seconds == 0.4

    def test_tie_goes_to_the_earlier_row(self, jane, ann):
        swimmers = {"s1": jane, "s2": ann}
        breaks = RecordsEngine().evaluate_batch([result("s2", 55.0), result("s1", 55.0)], swimmers, {})

        assert [b.swimmer_id for b in breaks] == ["s2"]

    def test_separate_buckets_each_get_a_proposal(self, jane):
        results = [result(seconds=55.0), result(seconds=28.0, event="50 Free")]
        breaks = RecordsEngine().evaluate_batch(results, {"s1": jane}, {})
        assert {b.event for b in breaks} == {"100 Free", "50 Free"}

    def test_unknown_swimmers_are_ignored(self, jane):
        assert RecordsEngine().evaluate_batch([result("ghost")], {"s1": jane}, {}) == []


# ---------------------------------------------------------------------------
# Applying
# ---------------------------------------------------------------------------

class TestApply:
    """Tests for writing accepted proposals back."""

    def test_sequence_of_imports(self, connection, jane):
        """55.40 sets the record, 55.10 improves it, 55.40 again does nothing."""
        engine = RecordsEngine()
        repository = TeamRecordRepository(connection)

        first = engine.evaluate(result(seconds=55.4), jane, repository.current_records("SCY"))
        assert first.is_first_record
        assert engine.apply([first], repository).applied == [first]

        second = engine.evaluate(result(seconds=55.1), jane, repository.current_records("SCY"))
        assert second.improvement_seconds == 0.3
        engine.apply([second], repository)

        assert engine.evaluate(result(seconds=55.4), jane, repository.current_records("SCY")) is None
        assert engine.evaluate(result(seconds=55.1), jane, repository.current_records("SCY")) is None

        records = repository.list_records()
        assert len(records) == 1
        assert records[0].time_seconds == 55.1
        assert records[0].swimmer_id == "s1"

    def test_stale_proposal_is_not_written(self, connection, jane, ann):
        """A faster record stored after evaluation makes the proposal stale."""
        engine = RecordsEngine()
        repository = TeamRecordRepository(connection)

        slow = engine.evaluate(result("s1", 55.4), jane, {})
        fast = engine.evaluate(result("s2", 55.0), ann, {})
        engine.apply([fast], repository)

        report = engine.apply([slow], repository)

        assert report.applied == []
        assert report.stale == [slow]
        assert repository.list_records()[0].time_seconds == 55.0
        assert len(connection._rows("record_history")) == 1

    def test_history_row_per_applied_break(self, connection, jane):
        engine = RecordsEngine()
        repository = TeamRecordRepository(connection)

        record_break = engine.evaluate(result(seconds=55.4), jane, {})
        engine.apply([record_break], repository)

        history = connection._rows("record_history")
        assert len(history) == 1
        assert history[0]["swimmer_name"] == "Jane Smith"
        assert history[0]["time_display"] == "55.40"
        assert history[0]["previous_holder"] is None

    def test_history_rows_are_chained(self, connection, jane, ann):
        """Breaking a record closes the old holder's row on the new swim date."""
        engine = RecordsEngine()
        repository = TeamRecordRepository(connection)

        engine.apply([engine.evaluate(result(seconds=57.9), jane, {})], repository)
        later = date(2025, 3, 15)
        engine.apply([engine.evaluate(result("s2", 57.5, meet_date=later), ann, {})], repository)

        history = sorted(connection._rows("record_history"), key=lambda r: r["time_seconds"], reverse=True)
        assert history[0]["swimmer_name"] == "Jane Smith"
        assert history[0]["held_until"] == later
        assert history[1]["swimmer_name"] == "Ann Park"
        assert history[1]["previous_holder"] == "Jane Smith"
        assert history[1]["previous_time_seconds"] == 57.9
        assert history[1]["previous_time_display"] == "57.90"
        assert history[1]["improvement_seconds"] == 0.4
        assert history[1].get("held_until") is None

    def test_previous_holder_is_read_at_apply_time(self, connection, jane, ann):
        """A proposal evaluated against an empty bucket still records who it beat."""
        engine = RecordsEngine()
        repository = TeamRecordRepository(connection)

        fast = engine.evaluate(result("s1", 55.0), jane, {})
        engine.apply([engine.evaluate(result("s2", 55.4), ann, {})], repository)

        report = engine.apply([fast], repository)

        assert report.applied[0].previous_holder == "Ann Park"
        assert report.applied[0].improvement_seconds == 0.4


# ---------------------------------------------------------------------------
# Verification of posted proposals
# ---------------------------------------------------------------------------

class TestVerify:
    """Tests for checking caller-supplied proposals against stored results."""

    def test_proposal_backed_by_a_stored_result(self, jane):
        engine = RecordsEngine()
        proposal = engine.evaluate(result(seconds=55.4), jane, {})

        verified, rejected = engine.verify([proposal], {signature(result(seconds=55.4))}, {"s1": jane})

        assert verified == [proposal]
        assert rejected == []

    def test_fabricated_time_is_rejected(self, jane):
        engine = RecordsEngine()
        proposal = replace(
            engine.evaluate(result(seconds=55.4), jane, {}),
            new_time_seconds=10.0,
            new_time_display="10.00",
        )

        verified, rejected = engine.verify([proposal], {signature(result(seconds=55.4))}, {"s1": jane})

        assert verified == []
        assert rejected == [proposal]

    def test_unknown_swimmer_or_wrong_bucket_is_rejected(self, jane):
        engine = RecordsEngine()
        proposal = engine.evaluate(result(seconds=55.4), jane, {})
        signatures = {signature(result(seconds=55.4))}

        assert engine.verify([proposal], signatures, {})[1] == [proposal]

        moved = replace(proposal, gender="Male")
        assert engine.verify([moved], signatures, {"s1": jane})[1] == [moved]

    def test_caller_fields_are_not_trusted(self, jane):
        """Name and seconds come from the roster and the stored time."""
        engine = RecordsEngine()
        proposal = replace(
            engine.evaluate(result(seconds=55.4), jane, {}),
            swimmer_name="Someone Else",
            new_time_seconds=1.0,
            previous_holder="Nobody",
        )

        verified, _ = engine.verify([proposal], {signature(result(seconds=55.4))}, {"s1": jane})

        assert verified[0].swimmer_name == "Jane Smith"
        assert verified[0].new_time_seconds == 55.4
        assert verified[0].previous_holder is None
