"""
Team records: who holds the fastest time in each bucket.

A bucket is (event, age group, gender, course). Age group comes from the
swimmer's age on the day of the swim, not today. Records only improve:
a proposal is made when a time is strictly faster than the stored one,
never on a tie, and write-back goes through a conditional upsert so a
faster record that landed in the meantime is never overwritten.

Evaluation only proposes. Applying is a separate step the caller takes
once someone has accepted the proposals.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Collection, Mapping, Optional, Protocol, Sequence

from .dedup import Signature, signature
from .events import normalize_event
from .models import (
    Gender,
    RecordBreakEvent,
    RecordKey,
    ResultRecord,
    RosterSwimmer,
    Round,
    TeamRecord,
)
from .times import INVALID_TIME, format_time, parse_time

logger = logging.getLogger(__name__)

DEFAULT_COURSE = "SCY"

AGE_GROUPS = ("8 & Under", "9/10", "11/12", "13/14", "15 & Over")


class TeamRecordStore(Protocol):
    """Write side of the team records table."""

    def get_record(self, key: RecordKey) -> Optional[TeamRecord]:
        ...

    def upsert_if_faster(self, record: TeamRecord) -> bool:
        """Store the record if its bucket is empty or it is strictly faster."""
        ...

    def append_history(self, record_break: RecordBreakEvent) -> None:
        """Close the bucket's open history row and add one for this break."""
        ...


@dataclass
class RecordApplyReport:
    """
    Outcome of applying proposals.

    stale: an equal or faster record was already stored.
    rejected: no stored result backs the proposal.
    """
    applied: list[RecordBreakEvent] = field(default_factory=list)
    stale: list[RecordBreakEvent] = field(default_factory=list)
    rejected: list[RecordBreakEvent] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Bucket helpers
# ---------------------------------------------------------------------------

def age_on_date(date_of_birth: date, on_date: date) -> int:
    """Age in whole years on `on_date`; the birthday itself counts."""
    age = on_date.year - date_of_birth.year
    if (on_date.month, on_date.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def age_group_for(age: int) -> str:
    if age <= 8:
        return "8 & Under"
    if age <= 10:
        return "9/10"
    if age <= 12:
        return "11/12"
    if age <= 14:
        return "13/14"
    return "15 & Over"


def normalize_gender(value: object) -> Optional[Gender]:
    """M/F/Male/Female in any case; anything else is None."""
    if isinstance(value, Gender):
        return value
    text = str(value or "").strip().upper()
    if text in ("M", "MALE"):
        return Gender.MALE
    if text in ("F", "FEMALE"):
        return Gender.FEMALE
    return None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class RecordsEngine:
    """Decides which results set new team records."""

    def __init__(self, course: str = DEFAULT_COURSE):
        self.course = course

    def evaluate(
        self,
        result: ResultRecord,
        swimmer: RosterSwimmer,
        current_records: Mapping[RecordKey, TeamRecord],
    ) -> Optional[RecordBreakEvent]:
        """
        Check one result against the stored records.

        Returns a RecordBreakEvent if the bucket is empty or the time is
        strictly faster, otherwise None. A result we can't place in a
        bucket (no birth date, unknown gender, bad time or event) is
        skipped for record purposes only.
        """
        context = {"swimmer_id": result.swimmer_id, "event": result.event}

        if result.time_seconds <= 0 or result.time_seconds >= INVALID_TIME:
            logger.info("No valid time, skipping record check", extra=context)
            return None

        event = normalize_event(result.event)
        if event is None:
            logger.info("Unrecognised event, skipping record check", extra=context)
            return None

        if swimmer.date_of_birth is None:
            logger.info("Swimmer has no birth date, skipping record check", extra=context)
            return None

        gender = normalize_gender(swimmer.gender)
        if gender is None:
            logger.info(
                "Swimmer gender not recognised, skipping record check",
                extra={**context, "gender": swimmer.gender}
            )
            return None

        age = age_on_date(swimmer.date_of_birth, result.meet_date)
        key = RecordKey(
            event=event.key,
            age_group=age_group_for(age),
            gender=gender.value,
            course=self.course,
        )
        current = current_records.get(key)

        if current is not None and not result.time_seconds < current.time_seconds:
            return None

        record_break = RecordBreakEvent(
            swimmer_id=result.swimmer_id,
            swimmer_name=swimmer.full_name,
            event=key.event,
            age_group=key.age_group,
            gender=key.gender,
            course=key.course,
            new_time_seconds=result.time_seconds,
            new_time_display=format_time(result.time_seconds),
            date=result.meet_date,
        )
        if current is not None:
            record_break.previous_holder = current.swimmer_name
            record_break.previous_time_seconds = current.time_seconds
            record_break.previous_time_display = current.time_display
            record_break.improvement_seconds = round(current.time_seconds - result.time_seconds, 2)

        logger.info(
            "Team record proposed",
            extra={**context, "age_group": key.age_group, "time": record_break.new_time_display}
        )
        return record_break

    def evaluate_batch(
        self,
        results: Sequence[ResultRecord],
        swimmers_by_id: Mapping[str, RosterSwimmer],
        current_records: Mapping[RecordKey, TeamRecord],
    ) -> list[RecordBreakEvent]:
        """
        Evaluate a batch and keep one proposal per bucket.

        Every result is compared with the stored record only. When several
        in the batch beat it, the fastest wins; on an exact tie the one
        earlier in the file wins.
        """
        best: dict[RecordKey, RecordBreakEvent] = {}

        for result in results:
            swimmer = swimmers_by_id.get(result.swimmer_id)
            if swimmer is None:
                continue
            record_break = self.evaluate(result, swimmer, current_records)
            if record_break is None:
                continue
            held = best.get(record_break.key)
            if held is None or record_break.new_time_seconds < held.new_time_seconds:
                best[record_break.key] = record_break

        return list(best.values())

    def verify(
        self,
        record_breaks: Sequence[RecordBreakEvent],
        stored_signatures: Collection[Signature],
        swimmers_by_id: Mapping[str, RosterSwimmer],
    ) -> tuple[list[RecordBreakEvent], list[RecordBreakEvent]]:
        """
        Split proposals into (verified, rejected).

        A proposal is verified only if a stored result has the same
        swimmer, event, time and date, and re-evaluating that result puts
        it in the same bucket. Verified proposals are rebuilt from the
        result, so nothing but the bucket key is taken from the caller.
        """
        verified: list[RecordBreakEvent] = []
        rejected: list[RecordBreakEvent] = []

        for proposal in record_breaks:
            result = ResultRecord(
                swimmer_id=proposal.swimmer_id,
                event=proposal.event,
                time_seconds=parse_time(proposal.new_time_display),
                time_display=proposal.new_time_display,
                meet_date=proposal.date,
                round=Round.FINALS,
            )
            swimmer = swimmers_by_id.get(proposal.swimmer_id)
            rebuilt = None
            if swimmer is not None and signature(result) in stored_signatures:
                rebuilt = self.evaluate(result, swimmer, {})

            if rebuilt is None or rebuilt.key != proposal.key:
                logger.warning(
                    "Record proposal has no matching result",
                    extra={
                        "swimmer_id": proposal.swimmer_id,
                        "event": proposal.event,
                        "time": proposal.new_time_display,
                    }
                )
                rejected.append(proposal)
            else:
                verified.append(rebuilt)

        return verified, rejected

    def apply(
        self,
        record_breaks: Sequence[RecordBreakEvent],
        store: TeamRecordStore,
    ) -> RecordApplyReport:
        """
        Write accepted proposals back.

        Each one is a conditional upsert; if the store already holds an
        equal or faster time the proposal comes back as stale. The
        previous holder written to history is the one stored at apply
        time, not the one seen at evaluation.
        """
        report = RecordApplyReport()

        for proposal in record_breaks:
            record_break = _against_stored(proposal, store.get_record(proposal.key))
            if store.upsert_if_faster(record_break.to_team_record()):
                store.append_history(record_break)
                report.applied.append(record_break)
            else:
                logger.info(
                    "Record proposal is stale",
                    extra={
                        "event": proposal.event,
                        "age_group": proposal.age_group,
                        "gender": proposal.gender,
                        "time": proposal.new_time_display,
                    }
                )
                report.stale.append(proposal)

        logger.info(
            "Applied team records",
            extra={"applied": len(report.applied), "stale": len(report.stale)}
        )
        return report


def _against_stored(record_break: RecordBreakEvent, current: Optional[TeamRecord]) -> RecordBreakEvent:
    """Copy of the proposal with previous-holder fields taken from `current`."""
    if current is None:
        return replace(
            record_break,
            previous_holder=None,
            previous_time_seconds=None,
            previous_time_display=None,
            improvement_seconds=None,
        )
    return replace(
        record_break,
        previous_holder=current.swimmer_name,
        previous_time_seconds=current.time_seconds,
        previous_time_display=current.time_display,
        improvement_seconds=round(current.time_seconds - record_break.new_time_seconds, 2),
    )
