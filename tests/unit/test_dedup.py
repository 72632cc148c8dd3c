"""
Unit tests for result de-duplication.
"""

from datetime import date

from meet_import.core.ingestion.dedup import DuplicateFilter, signature
from meet_import.core.ingestion.models import MeetEntryRecord, ResultRecord, Round


def result(swimmer_id="s1", event="100 Free", seconds=57.9, display="57.90",
           meet_date=date(2025, 3, 1), round=Round.FINALS):
    return ResultRecord(
        swimmer_id=swimmer_id,
        event=event,
        time_seconds=seconds,
        time_display=display,
        meet_date=meet_date,
        round=round,
    )


class RecordingStore:
    """Signature store that remembers what it was asked for."""

    def __init__(self, signatures=()):
        self.signatures = set(signatures)
        self.calls = []

    def existing_signatures(self, swimmer_ids):
        self.calls.append(list(swimmer_ids))
        return set(self.signatures)


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------

class TestSignature:
    """Tests for the de-dup signature."""

    def test_signature_fields(self):
        assert signature(result()) == ("s1", "100 Free", "57.90", "2025-03-01")

    def test_round_is_not_part_of_the_signature(self):
        """The same time in prelims and finals on one day is one swim."""
        assert signature(result(round=Round.PRELIM)) == signature(result(round=Round.FINALS))

    def test_entries_share_the_signature_shape(self):
        entry = MeetEntryRecord(
            swimmer_id="s1",
            meet_name="Spring Invitational",
            meet_date=date(2025, 3, 1),
            event="100 Free",
            time_seconds=65.3,
            time_display="1:05.30",
        )
        assert signature(entry) == ("s1", "100 Free", "1:05.30", "2025-03-01")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------

class TestDuplicateFilter:
    """Tests for splitting candidates into new and duplicate."""

    def test_known_signatures_are_duplicates(self):
        existing = result()
        fresh = result(seconds=57.5, display="57.50")

        new, duplicates = DuplicateFilter([signature(existing)]).split([existing, fresh])

        assert new == [fresh]
        assert duplicates == [existing]

    def test_repeats_within_a_batch_are_kept_once(self):
        first = result()
        repeat = result(round=Round.PRELIM)

        new, duplicates = DuplicateFilter().split([first, repeat])

        assert new == [first]
        assert duplicates == [repeat]

    def test_filter_remembers_what_it_let_through(self):
        duplicate_filter = DuplicateFilter()
        duplicate_filter.split([result()])

        new, duplicates = duplicate_filter.split([result()])

        assert new == []
        assert len(duplicates) == 1

    def test_load_asks_once_with_sorted_unique_ids(self):
        store = RecordingStore({signature(result())})

        duplicate_filter = DuplicateFilter.load(store, ["s2", "s1", "s2"])

        assert store.calls == [["s1", "s2"]]
        new, duplicates = duplicate_filter.split([result()])
        assert new == []

    def test_load_skips_the_store_without_ids(self):
        store = RecordingStore()
        DuplicateFilter.load(store, [])
        assert store.calls == []
