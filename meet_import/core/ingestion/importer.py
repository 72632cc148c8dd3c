"""
Meet file import orchestration.

MeetImporter strings the pieces together for one uploaded file:

    parse -> resolve swimmers -> drop duplicates -> store -> propose records

Everything recoverable (unreadable rows, unknown swimmers, duplicates)
ends up in the returned report. Storage failures are not caught here and
propagate to the caller.

Lookup state for an import (roster index, swimmer map, course, default
meet date) lives in an ImportContext built at the start of that import
and passed along explicitly; nothing is cached between imports.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Protocol, Sequence

from .dedup import DuplicateFilter, Signature
from .delimited import (
    ResultColumns,
    RosterColumns,
    parse_result_rows,
    parse_roster_rows,
    split_rows,
)
from .identity import AMBIGUOUS, IdentityResolver, name_key
from .models import (
    MeetEntryRecord,
    MeetInfo,
    ParsedRow,
    ParseError,
    RecordBreakEvent,
    RecordKey,
    ResultRecord,
    RosterSwimmer,
    TeamInfo,
    TeamRecord,
    UnmatchedRow,
)
from .records import RecordApplyReport, RecordsEngine, TeamRecordStore
from .sd3 import parse_meet_entries, roster_candidates
from .times import INVALID_TIME, format_time
from .workbook import read_workbook_rows

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".csv", ".txt")
WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")
ROSTER_SOURCES = ("sd3", "csv")


class UnsupportedFileError(ValueError):
    """Raised when an upload isn't a file type we know how to import."""
    pass


# ---------------------------------------------------------------------------
# Storage seams
# ---------------------------------------------------------------------------

class RosterStore(Protocol):
    def list_swimmers(self) -> list[RosterSwimmer]:
        ...

    def add_swimmers(self, swimmers: Sequence[RosterSwimmer]) -> list[RosterSwimmer]:
        ...


class ResultStore(Protocol):
    def existing_signatures(self, swimmer_ids: Sequence[str]) -> set[Signature]:
        ...

    def save_results(self, results: Sequence[ResultRecord]) -> int:
        ...


class EntryStore(Protocol):
    def existing_signatures(self, swimmer_ids: Sequence[str]) -> set[Signature]:
        ...

    def ensure_meet(self, meet: MeetInfo) -> str:
        ...

    def save_entries(self, entries: Sequence[MeetEntryRecord]) -> int:
        ...


class TeamRecordReader(TeamRecordStore, Protocol):
    def current_records(self, course: str) -> Mapping[RecordKey, TeamRecord]:
        ...


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@dataclass
class ImportContext:
    """Lookup state for a single import."""
    resolver: IdentityResolver
    swimmers_by_id: dict[str, RosterSwimmer]
    course: str
    default_meet_date: date


@dataclass
class ResultImportReport:
    imported_count: int = 0
    duplicate_count: int = 0
    unmatched: list[UnmatchedRow] = field(default_factory=list)
    parse_errors: list[ParseError] = field(default_factory=list)
    record_breaks: list[RecordBreakEvent] = field(default_factory=list)


@dataclass
class EntryImportReport:
    meet: Optional[MeetInfo] = None
    team: Optional[TeamInfo] = None
    imported_count: int = 0
    duplicate_count: int = 0
    unmatched: list[UnmatchedRow] = field(default_factory=list)
    parse_errors: list[ParseError] = field(default_factory=list)
    unique_swimmers: int = 0


@dataclass
class RosterImportReport:
    added: list[RosterSwimmer] = field(default_factory=list)
    existing_count: int = 0
    parse_errors: list[ParseError] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added)


def decode_upload(data: bytes) -> str:
    """Uploaded exports are UTF-8 (maybe with a BOM) or Windows-1252."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("cp1252", errors="replace")


# ---------------------------------------------------------------------------
# Importer
# ---------------------------------------------------------------------------

class MeetImporter:
    """Imports results, meet entries and roster files."""

    def __init__(
        self,
        roster_repository: RosterStore,
        result_repository: ResultStore,
        entry_repository: EntryStore,
        team_record_repository: TeamRecordReader,
        engine: Optional[RecordsEngine] = None,
        result_columns: ResultColumns = ResultColumns(),
        roster_columns: RosterColumns = RosterColumns(),
    ):
        self.roster = roster_repository
        self.results = result_repository
        self.entries = entry_repository
        self.team_records = team_record_repository
        self.engine = engine or RecordsEngine()
        self.result_columns = result_columns
        self.roster_columns = roster_columns

    def _context(self, default_meet_date: Optional[date] = None) -> ImportContext:
        roster = self.roster.list_swimmers()
        return ImportContext(
            resolver=IdentityResolver(roster),
            swimmers_by_id={swimmer.id: swimmer for swimmer in roster},
            course=self.engine.course,
            default_meet_date=default_meet_date or date.today(),
        )

    # -- results -----------------------------------------------------------

    def import_results_file(
        self,
        filename: str,
        data: bytes,
        default_meet_date: Optional[date] = None,
    ) -> ResultImportReport:
        """Pick the reader from the file extension."""
        suffix = _suffix(filename)
        if suffix in TEXT_SUFFIXES:
            return self.import_results(decode_upload(data), default_meet_date)
        if suffix in WORKBOOK_SUFFIXES:
            return self.import_results_workbook(data, default_meet_date)
        raise UnsupportedFileError(
            f"Unsupported results file type {suffix or '(none)'!r}; "
            f"expected one of {', '.join(TEXT_SUFFIXES + WORKBOOK_SUFFIXES)}"
        )

    def import_results(self, text: str, default_meet_date: Optional[date] = None) -> ResultImportReport:
        return self.import_result_rows(split_rows(text), default_meet_date)

    def import_results_workbook(
        self,
        data: bytes,
        default_meet_date: Optional[date] = None,
    ) -> ResultImportReport:
        return self.import_result_rows(read_workbook_rows(data), default_meet_date)

    def import_result_rows(
        self,
        rows: Sequence[Sequence[str]],
        default_meet_date: Optional[date] = None,
    ) -> ResultImportReport:
        """
        Import already-split results rows (header first).

        Record breaks in the report are proposals; nothing is written to
        the team records table until apply_record_breaks is called.
        """
        context = self._context(default_meet_date)
        parsed = parse_result_rows(rows, context.default_meet_date, self.result_columns)
        report = ResultImportReport(parse_errors=list(parsed.errors))

        candidates: list[ResultRecord] = []
        matched_rows = _resolve_rows(parsed.rows, context, report.unmatched)
        for row, swimmer in matched_rows:
            candidates.append(ResultRecord(
                swimmer_id=swimmer.id,
                event=row.event.key,
                time_seconds=row.time_seconds,
                time_display=format_time(row.time_seconds),
                meet_date=row.meet_date,
                round=row.round,
            ))

        duplicate_filter = DuplicateFilter.load(self.results, [c.swimmer_id for c in candidates])
        new, duplicates = duplicate_filter.split(candidates)
        if new:
            self.results.save_results(new)

        report.imported_count = len(new)
        report.duplicate_count = len(duplicates)

        if new:
            current = self.team_records.current_records(context.course)
            report.record_breaks = self.engine.evaluate_batch(new, context.swimmers_by_id, current)

        logger.info(
            "Imported results",
            extra={
                "imported": report.imported_count,
                "duplicates": report.duplicate_count,
                "unmatched": len(report.unmatched),
                "parse_errors": len(report.parse_errors),
                "record_breaks": len(report.record_breaks),
            }
        )
        return report

    # -- meet entries ------------------------------------------------------

    def import_meet_entries(self, text: str) -> EntryImportReport:
        """
        Import a meet entry file against the roster.

        Seed times are stored as entries for the meet and never count
        toward team records.
        """
        parsed = parse_meet_entries(text)
        report = EntryImportReport(
            meet=parsed.meet,
            team=parsed.team,
            parse_errors=list(parsed.errors),
            unique_swimmers=len(parsed.swimmers),
        )

        meet = parsed.meet
        if meet is None:
            logger.warning("Meet entry file has no meet record")
            report.parse_errors.append(ParseError(line=0, message="File has no meet (B1) record"))
            return report

        meet_date = meet.start_date or date.today()
        context = self._context(meet_date)

        candidates: list[MeetEntryRecord] = []
        for row, swimmer in _resolve_rows(parsed.entries, context, report.unmatched):
            has_time = row.time_seconds < INVALID_TIME
            candidates.append(MeetEntryRecord(
                swimmer_id=swimmer.id,
                meet_name=meet.name,
                meet_date=meet_date,
                event=row.event.key,
                event_number=row.event_number,
                age_group=row.age_group_text,
                is_bonus=row.is_bonus,
                time_seconds=row.time_seconds,
                time_display=format_time(row.time_seconds) if has_time else "NT",
            ))

        duplicate_filter = DuplicateFilter.load(self.entries, [c.swimmer_id for c in candidates])
        new, duplicates = duplicate_filter.split(candidates)
        if new:
            self.entries.ensure_meet(meet)
            self.entries.save_entries(new)

        report.imported_count = len(new)
        report.duplicate_count = len(duplicates)

        logger.info(
            "Imported meet entries",
            extra={
                "meet": meet.name,
                "imported": report.imported_count,
                "duplicates": report.duplicate_count,
                "unmatched": len(report.unmatched),
            }
        )
        return report

    # -- roster ------------------------------------------------------------

    def import_roster(self, text: str, source: str = "sd3") -> RosterImportReport:
        """
        Add swimmers from a meet entry file or roster CSV.

        Swimmers already on the roster (same external id or same name
        key) are counted and left alone.
        """
        if source == "sd3":
            parsed = parse_meet_entries(text)
            candidates, errors = roster_candidates(parsed), list(parsed.errors)
        elif source == "csv":
            candidates, errors = parse_roster_rows(split_rows(text), self.roster_columns)
        else:
            raise UnsupportedFileError(
                f"Unknown roster source {source!r}; expected one of {', '.join(ROSTER_SOURCES)}"
            )

        report = RosterImportReport(parse_errors=errors)
        resolver = IdentityResolver(self.roster.list_swimmers())
        seen: set[str] = set()

        new: list[RosterSwimmer] = []
        for candidate in candidates:
            key = candidate.external_id or name_key(candidate.full_name)
            if key in seen or resolver.knows(candidate.full_name, candidate.external_id):
                report.existing_count += 1
                continue
            seen.add(key)
            new.append(candidate)

        if new:
            report.added = self.roster.add_swimmers(new)

        logger.info(
            "Imported roster",
            extra={"source": source, "added": report.added_count, "existing": report.existing_count}
        )
        return report

    # -- records -----------------------------------------------------------

    def apply_record_breaks(self, record_breaks: Sequence[RecordBreakEvent]) -> RecordApplyReport:
        """
        Write accepted record proposals to the team records table.

        Proposals arrive from the caller, so each is checked against the
        stored results before anything is written. Ones with no backing
        result come back as rejected.
        """
        swimmers_by_id = {s.id: s for s in self.roster.list_swimmers()}
        swimmer_ids = sorted({rb.swimmer_id for rb in record_breaks})
        stored = self.results.existing_signatures(swimmer_ids) if swimmer_ids else set()

        verified, rejected = self.engine.verify(record_breaks, stored, swimmers_by_id)
        report = self.engine.apply(verified, self.team_records)
        report.rejected = rejected
        return report


def _resolve_rows(
    rows: Sequence[ParsedRow],
    context: ImportContext,
    unmatched: list[UnmatchedRow],
) -> list[tuple[ParsedRow, RosterSwimmer]]:
    """Pair rows with roster swimmers; each unknown name is reported once."""
    matched = []
    reported: set[str] = set()

    for row in rows:
        if row.event is None:
            continue
        resolution = context.resolver.resolve(row.swimmer_name_raw, row.external_id)
        if resolution.matched:
            matched.append((row, resolution.swimmer))
            continue
        if row.swimmer_name_raw not in reported:
            reported.add(row.swimmer_name_raw)
            unmatched.append(UnmatchedRow(
                raw_name=row.swimmer_name_raw,
                reason=resolution.status,
                candidate_ids=resolution.candidate_ids,
            ))
            if resolution.status == AMBIGUOUS:
                logger.warning(
                    "Name matches more than one roster swimmer",
                    extra={"swimmer_name": row.swimmer_name_raw, "candidates": resolution.candidate_ids}
                )

    return matched


def _suffix(filename: str) -> str:
    name = (filename or "").lower()
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""
