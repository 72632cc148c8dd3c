"""
Unit tests for the Snowflake repositories, run against the mock connection.
"""

from datetime import date

from meet_import.core.ingestion.models import (
    MeetEntryRecord,
    MeetInfo,
    ResultRecord,
    RosterSwimmer,
    Round,
    TeamRecord,
)
from meet_import.infrastructure.snowflake.repositories import (
    EntryRepository,
    ResultRepository,
    RosterRepository,
    TeamRecordRepository,
)


def team_record(seconds, holder="Jane Smith", course="SCY"):
    return TeamRecord(
        event="100 Free",
        age_group="11/12",
        gender="Female",
        course=course,
        swimmer_name=holder,
        time_seconds=seconds,
        time_display=f"{seconds:.2f}",
        date=date(2025, 3, 1),
    )


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

class TestRosterRepository:
    """Tests for reading and extending the roster."""

    def test_list_swimmers(self, connection, jane_id):
        swimmers = RosterRepository(connection).list_swimmers()

        assert len(swimmers) == 1
        assert swimmers[0].id == jane_id
        assert swimmers[0].full_name == "Jane Smith"
        assert swimmers[0].external_id == "ABC123"

    def test_add_swimmers_assigns_ids(self, connection):
        repository = RosterRepository(connection)

        added = repository.add_swimmers([RosterSwimmer(id="", full_name="Tom Lee", gender="Male")])

        assert added[0].id
        assert [s.full_name for s in repository.list_swimmers()] == ["Tom Lee"]

    def test_add_nothing(self, connection):
        assert RosterRepository(connection).add_swimmers([]) == []


# ---------------------------------------------------------------------------
# Results and entries
# ---------------------------------------------------------------------------

class TestResultRepository:
    """Tests for storing results and reading back signatures."""

    def test_saved_results_show_up_as_signatures(self, connection, jane_id):
        repository = ResultRepository(connection)
        saved = repository.save_results([
            ResultRecord(
                swimmer_id=jane_id,
                event="100 Free",
                time_seconds=57.9,
                time_display="57.90",
                meet_date=date(2025, 3, 1),
                round=Round.FINALS,
            ),
        ])

        assert saved == 1
        assert repository.existing_signatures([jane_id]) == {(jane_id, "100 Free", "57.90", "2025-03-01")}
        assert repository.existing_signatures(["someone-else"]) == set()
        assert connection._rows("results")[0]["round"] == "Finals"

    def test_empty_inputs(self, connection):
        repository = ResultRepository(connection)
        assert repository.save_results([]) == 0
        assert repository.existing_signatures([]) == set()


class TestEntryRepository:
    """Tests for meets and seed-time entries."""

    def test_ensure_meet_is_idempotent(self, connection):
        repository = EntryRepository(connection)
        meet = MeetInfo(name="Spring Invitational", start_date=date(2025, 3, 1), end_date=date(2025, 3, 2))

        first = repository.ensure_meet(meet)
        second = repository.ensure_meet(meet)

        assert first == second
        assert len(connection._rows("meets")) == 1

    def test_entries_are_kept_apart_from_results(self, connection, jane_id):
        repository = EntryRepository(connection)
        repository.save_entries([
            MeetEntryRecord(
                swimmer_id=jane_id,
                meet_name="Spring Invitational",
                meet_date=date(2025, 3, 1),
                event="100 Free",
                time_seconds=65.3,
                time_display="1:05.30",
                event_number=3,
                age_group="1112",
            ),
        ])

        assert repository.existing_signatures([jane_id]) == {(jane_id, "100 Free", "1:05.30", "2025-03-01")}
        assert ResultRepository(connection).existing_signatures([jane_id]) == set()


# ---------------------------------------------------------------------------
# Team records
# ---------------------------------------------------------------------------

class TestTeamRecordRepository:
    """Tests for the conditional upsert."""

    def test_first_write_inserts(self, connection):
        repository = TeamRecordRepository(connection)
        assert repository.upsert_if_faster(team_record(55.4)) is True
        assert len(repository.list_records()) == 1

    def test_slower_or_equal_is_refused(self, connection):
        repository = TeamRecordRepository(connection)
        repository.upsert_if_faster(team_record(55.4))

        assert repository.upsert_if_faster(team_record(55.9, holder="Slow")) is False
        assert repository.upsert_if_faster(team_record(55.4, holder="Tied")) is False
        assert repository.list_records()[0].swimmer_name == "Jane Smith"

    def test_faster_replaces(self, connection):
        repository = TeamRecordRepository(connection)
        repository.upsert_if_faster(team_record(55.4))

        assert repository.upsert_if_faster(team_record(55.1, holder="Ann Park")) is True

        records = repository.list_records()
        assert len(records) == 1
        assert records[0].swimmer_name == "Ann Park"
        assert records[0].time_seconds == 55.1

    def test_courses_are_separate_buckets(self, connection):
        repository = TeamRecordRepository(connection)
        repository.upsert_if_faster(team_record(55.4))
        repository.upsert_if_faster(team_record(61.0, course="LCM"))

        assert len(repository.list_records()) == 2
        assert [r.course for r in repository.list_records("LCM")] == ["LCM"]
        assert list(repository.current_records("SCY")) == [team_record(55.4).key]

    def test_get_record_reads_one_bucket(self, connection):
        repository = TeamRecordRepository(connection)
        repository.upsert_if_faster(team_record(55.4))
        repository.upsert_if_faster(team_record(61.0, course="LCM"))

        record = repository.get_record(team_record(0.1).key)

        assert record.course == "SCY"
        assert record.time_seconds == 55.4
        assert repository.get_record(team_record(0.1, course="SCM").key) is None
