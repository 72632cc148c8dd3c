"""
Suppression of results we already have.

A result's signature is (swimmer_id, event, time_display, meet_date).
Re-importing a file, or a file that overlaps an earlier one, must not
create a second copy of any signature.
"""

import logging
from typing import Iterable, Protocol, Sequence, TypeVar, Union

from .models import MeetEntryRecord, ResultRecord

logger = logging.getLogger(__name__)

Signature = tuple[str, str, str, str]

Candidate = TypeVar("Candidate", ResultRecord, MeetEntryRecord)


class SignatureStore(Protocol):
    """Anything that can list the signatures already stored for some swimmers."""

    def existing_signatures(self, swimmer_ids: Sequence[str]) -> set[Signature]:
        ...


def signature(record: Union[ResultRecord, MeetEntryRecord]) -> Signature:
    return (
        record.swimmer_id,
        record.event,
        record.time_display,
        record.meet_date.isoformat(),
    )


class DuplicateFilter:
    """Holds the known signatures for one import."""

    def __init__(self, existing_signatures: Iterable[Signature] = ()):
        self._seen: set[Signature] = set(existing_signatures)

    @classmethod
    def load(cls, store: SignatureStore, swimmer_ids: Iterable[str]) -> "DuplicateFilter":
        """Fetch existing signatures for the affected swimmers in one query."""
        ids = sorted(set(swimmer_ids))
        existing = store.existing_signatures(ids) if ids else set()
        logger.debug(
            "Loaded existing signatures",
            extra={"swimmers": len(ids), "signatures": len(existing)}
        )
        return cls(existing)

    def split(self, candidates: Sequence[Candidate]) -> tuple[list[Candidate], list[Candidate]]:
        """
        Split candidates into (new, duplicates).

        A signature repeated within the batch is kept once; the repeats
        count as duplicates.
        """
        new: list[Candidate] = []
        duplicates: list[Candidate] = []
        for candidate in candidates:
            key = signature(candidate)
            if key in self._seen:
                duplicates.append(candidate)
            else:
                self._seen.add(key)
                new.append(candidate)
        return new, duplicates
