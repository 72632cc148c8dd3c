"""
Meet file ingestion and team records.

Contains the two export parsers, roster matching, duplicate suppression,
the records engine and the importer that ties them together.
"""

from .models import (
    CanonicalEvent,
    Gender,
    MeetEntryRecord,
    MeetInfo,
    ParsedRow,
    ParseError,
    RecordBreakEvent,
    RecordKey,
    ResultRecord,
    RosterSwimmer,
    Round,
    Stroke,
    TeamInfo,
    TeamRecord,
    UnmatchedRow,
)
from .times import INVALID_TIME, format_time, is_valid_time, parse_time
from .events import event_from_code, event_from_text, normalize_event
from .identity import IdentityResolver, Resolution, name_key
from .dedup import DuplicateFilter, signature
from .records import RecordApplyReport, RecordsEngine, age_group_for, age_on_date
from .importer import (
    EntryImportReport,
    ImportContext,
    MeetImporter,
    ResultImportReport,
    RosterImportReport,
    UnsupportedFileError,
)

__all__ = [
    "CanonicalEvent",
    "Gender",
    "MeetEntryRecord",
    "MeetInfo",
    "ParsedRow",
    "ParseError",
    "RecordBreakEvent",
    "RecordKey",
    "ResultRecord",
    "RosterSwimmer",
    "Round",
    "Stroke",
    "TeamInfo",
    "TeamRecord",
    "UnmatchedRow",
    "INVALID_TIME",
    "format_time",
    "is_valid_time",
    "parse_time",
    "event_from_code",
    "event_from_text",
    "normalize_event",
    "IdentityResolver",
    "Resolution",
    "name_key",
    "DuplicateFilter",
    "signature",
    "RecordApplyReport",
    "RecordsEngine",
    "age_group_for",
    "age_on_date",
    "EntryImportReport",
    "ImportContext",
    "MeetImporter",
    "ResultImportReport",
    "RosterImportReport",
    "UnsupportedFileError",
]
