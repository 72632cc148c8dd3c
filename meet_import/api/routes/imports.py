"""
Meet file import endpoints.

Three kinds of upload:
- results: meet-management results export (.csv/.txt or .xlsx)
- meet-entries: timing software entry file (.sd3/.txt)
- roster: new swimmers from an entry file or a roster CSV

Row-level problems come back in the response body with a 200. Only an
unreadable upload (400/413) or a storage failure (500) is an error.
"""

import logging
from datetime import date
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from ...core.ingestion.importer import (
    EntryImportReport,
    ResultImportReport,
    RosterImportReport,
    UnsupportedFileError,
    decode_upload,
)
from ...core.ingestion.models import ParseError, RecordBreakEvent, UnmatchedRow
from ...core.ingestion.workbook import WorkbookImportError
from ..dependencies import AuthenticatedUser, MeetImporterDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()

ENTRY_SUFFIXES = (".sd3", ".txt")


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ParseErrorItem(BaseModel):
    line: int = Field(description="1-based line or row number in the uploaded file")
    message: str = Field(description="Why the line was skipped")

    @classmethod
    def from_domain(cls, error: ParseError) -> "ParseErrorItem":
        return cls(line=error.line, message=error.message)


class UnmatchedItem(BaseModel):
    raw_name: str = Field(description="Name as written in the file")
    reason: str = Field(description="not_found or ambiguous")
    candidate_ids: list[str] = Field(default_factory=list, description="Roster ids sharing the name")

    @classmethod
    def from_domain(cls, row: UnmatchedRow) -> "UnmatchedItem":
        return cls(raw_name=row.raw_name, reason=row.reason, candidate_ids=list(row.candidate_ids))


class RecordBreakItem(BaseModel):
    """A proposed team record. Post it back to /records/apply to accept it."""
    swimmer_id: str
    swimmer_name: str
    event: str = Field(description='Canonical event, e.g. "100 Free"')
    age_group: str
    gender: str
    course: str
    new_time_seconds: float
    new_time_display: str
    date: date
    previous_holder: Optional[str] = None
    previous_time_seconds: Optional[float] = None
    previous_time_display: Optional[str] = None
    improvement_seconds: Optional[float] = None

    @classmethod
    def from_domain(cls, event: RecordBreakEvent) -> "RecordBreakItem":
        return cls(**vars(event))

    def to_domain(self) -> RecordBreakEvent:
        return RecordBreakEvent(**self.model_dump())


class ResultImportResponse(BaseModel):
    imported_count: int = Field(description="New results stored")
    duplicate_count: int = Field(description="Results already stored, skipped")
    unmatched: list[UnmatchedItem] = Field(description="Names not tied to a roster swimmer")
    parse_errors: list[ParseErrorItem] = Field(description="Rows that could not be read")
    record_breaks: list[RecordBreakItem] = Field(description="Proposed team records, not yet applied")

    @classmethod
    def from_report(cls, report: ResultImportReport) -> "ResultImportResponse":
        return cls(
            imported_count=report.imported_count,
            duplicate_count=report.duplicate_count,
            unmatched=[UnmatchedItem.from_domain(u) for u in report.unmatched],
            parse_errors=[ParseErrorItem.from_domain(e) for e in report.parse_errors],
            record_breaks=[RecordBreakItem.from_domain(r) for r in report.record_breaks],
        )


class EntryImportResponse(BaseModel):
    meet_name: Optional[str] = Field(None, description="Meet name from the file header")
    meet_start_date: Optional[date] = None
    meet_end_date: Optional[date] = None
    team_code: Optional[str] = None
    team_name: Optional[str] = None
    imported_count: int
    duplicate_count: int
    unique_swimmers: int = Field(description="Distinct swimmers entered in the file")
    unmatched: list[UnmatchedItem]
    parse_errors: list[ParseErrorItem]

    @classmethod
    def from_report(cls, report: EntryImportReport) -> "EntryImportResponse":
        return cls(
            meet_name=report.meet.name if report.meet else None,
            meet_start_date=report.meet.start_date if report.meet else None,
            meet_end_date=report.meet.end_date if report.meet else None,
            team_code=report.team.code if report.team else None,
            team_name=report.team.name if report.team else None,
            imported_count=report.imported_count,
            duplicate_count=report.duplicate_count,
            unique_swimmers=report.unique_swimmers,
            unmatched=[UnmatchedItem.from_domain(u) for u in report.unmatched],
            parse_errors=[ParseErrorItem.from_domain(e) for e in report.parse_errors],
        )


class RosterSwimmerItem(BaseModel):
    id: str
    full_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    external_id: Optional[str] = None


class RosterImportResponse(BaseModel):
    added_count: int
    existing_count: int = Field(description="Swimmers already on the roster, left unchanged")
    added: list[RosterSwimmerItem]
    parse_errors: list[ParseErrorItem]

    @classmethod
    def from_report(cls, report: RosterImportReport) -> "RosterImportResponse":
        return cls(
            added_count=report.added_count,
            existing_count=report.existing_count,
            added=[RosterSwimmerItem(**vars(s)) for s in report.added],
            parse_errors=[ParseErrorItem.from_domain(e) for e in report.parse_errors],
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _read_upload(upload: UploadFile, max_bytes: int, max_mb: int) -> bytes:
    data = await upload.read()
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload exceeds {max_mb}MB"
        )
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty"
        )
    return data


def _storage_failure(kind: str, filename: Optional[str], e: Exception) -> HTTPException:
    logger.error(
        "Import failed",
        extra={"kind": kind, "upload_filename": filename, "error": str(e)},
        exc_info=e,
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Import failed while saving. Please try again."
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/results",
    response_model=ResultImportResponse,
    status_code=status.HTTP_200_OK,
    summary="Import a results export",
    description="Upload a meet results export (.csv, .txt or .xlsx). Returns counts and proposed team records.",
)
async def import_results(
    file: Annotated[UploadFile, File(description="Results export")],
    importer: MeetImporterDep,
    settings: SettingsDep,
    api_key: AuthenticatedUser,
    meet_date: Annotated[Optional[date], Form(description="Used for rows without a readable date")] = None,
) -> ResultImportResponse:
    data = await _read_upload(file, settings.max_upload_size_bytes, settings.max_upload_size_mb)

    logger.info(
        "Importing results file",
        extra={"upload_filename": file.filename, "size": len(data)}
    )

    try:
        report = importer.import_results_file(file.filename or "", data, default_meet_date=meet_date)
    except (UnsupportedFileError, WorkbookImportError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise _storage_failure("results", file.filename, e)

    return ResultImportResponse.from_report(report)


@router.post(
    "/meet-entries",
    response_model=EntryImportResponse,
    status_code=status.HTTP_200_OK,
    summary="Import a meet entry file",
    description="Upload a timing software entry file (.sd3 or .txt). Seed times are stored as meet entries.",
)
async def import_meet_entries(
    file: Annotated[UploadFile, File(description="Meet entry file")],
    importer: MeetImporterDep,
    settings: SettingsDep,
    api_key: AuthenticatedUser,
) -> EntryImportResponse:
    filename = (file.filename or "").lower()
    if not filename.endswith(ENTRY_SUFFIXES):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Expected one of {', '.join(ENTRY_SUFFIXES)}"
        )

    data = await _read_upload(file, settings.max_upload_size_bytes, settings.max_upload_size_mb)

    try:
        report = importer.import_meet_entries(decode_upload(data))
    except Exception as e:
        raise _storage_failure("meet-entries", file.filename, e)

    return EntryImportResponse.from_report(report)


@router.post(
    "/roster",
    response_model=RosterImportResponse,
    status_code=status.HTTP_200_OK,
    summary="Import swimmers into the roster",
    description="Add swimmers from a meet entry file (source=sd3) or a roster CSV (source=csv).",
)
async def import_roster(
    file: Annotated[UploadFile, File(description="Entry file or roster CSV")],
    importer: MeetImporterDep,
    settings: SettingsDep,
    api_key: AuthenticatedUser,
    source: Annotated[Literal["sd3", "csv"], Form()] = "sd3",
) -> RosterImportResponse:
    data = await _read_upload(file, settings.max_upload_size_bytes, settings.max_upload_size_mb)

    try:
        report = importer.import_roster(decode_upload(data), source=source)
    except UnsupportedFileError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise _storage_failure("roster", file.filename, e)

    return RosterImportResponse.from_report(report)
