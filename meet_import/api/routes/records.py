"""
Team records endpoints.

Imports only propose record breaks. A coach reviews them and posts the
accepted ones to /apply, which writes them with a conditional upsert.
"""

import logging
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...core.ingestion.models import TeamRecord
from ..dependencies import (
    AuthenticatedUser,
    MeetImporterDep,
    SettingsDep,
    TeamRecordRepositoryDep,
)
from .imports import RecordBreakItem

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class TeamRecordItem(BaseModel):
    event: str
    age_group: str
    gender: str
    course: str
    swimmer_name: str
    swimmer_id: Optional[str] = None
    time_seconds: float
    time_display: str
    record_date: date = Field(description="Date the record was swum")

    @classmethod
    def from_domain(cls, record: TeamRecord) -> "TeamRecordItem":
        return cls(
            event=record.event,
            age_group=record.age_group,
            gender=record.gender,
            course=record.course,
            swimmer_name=record.swimmer_name,
            swimmer_id=record.swimmer_id,
            time_seconds=record.time_seconds,
            time_display=record.time_display,
            record_date=record.date,
        )


class TeamRecordsResponse(BaseModel):
    course: str
    records: list[TeamRecordItem]


class ApplyRecordsRequest(BaseModel):
    record_breaks: list[RecordBreakItem] = Field(
        description="Accepted proposals from an import response",
        min_length=1,
    )


class ApplyRecordsResponse(BaseModel):
    applied: list[RecordBreakItem] = Field(description="Proposals written to the records table")
    stale: list[RecordBreakItem] = Field(
        description="Proposals skipped because an equal or faster record is already stored"
    )
    rejected: list[RecordBreakItem] = Field(
        description="Proposals skipped because no stored result has that swimmer, event, time and date"
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=TeamRecordsResponse,
    status_code=status.HTTP_200_OK,
    summary="List team records",
)
def list_records(
    repository: TeamRecordRepositoryDep,
    settings: SettingsDep,
    api_key: AuthenticatedUser,
    course: Annotated[Optional[str], Query(description="Defaults to the configured record course")] = None,
) -> TeamRecordsResponse:
    course = course or settings.record_course
    records = sorted(
        repository.list_records(course),
        key=lambda r: (r.gender, r.age_group, r.event),
    )
    return TeamRecordsResponse(
        course=course,
        records=[TeamRecordItem.from_domain(r) for r in records],
    )


@router.post(
    "/apply",
    response_model=ApplyRecordsResponse,
    status_code=status.HTTP_200_OK,
    summary="Apply accepted record breaks",
    description=(
        "Writes each proposal only if a stored result backs it and it is "
        "still faster than the stored record."
    ),
)
def apply_records(
    request: ApplyRecordsRequest,
    importer: MeetImporterDep,
    api_key: AuthenticatedUser,
) -> ApplyRecordsResponse:
    try:
        report = importer.apply_record_breaks([item.to_domain() for item in request.record_breaks])
    except Exception as e:
        logger.error("Failed to apply team records", extra={"error": str(e)}, exc_info=e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to apply team records"
        )

    return ApplyRecordsResponse(
        applied=[RecordBreakItem.from_domain(r) for r in report.applied],
        stale=[RecordBreakItem.from_domain(r) for r in report.stale],
        rejected=[RecordBreakItem.from_domain(r) for r in report.rejected],
    )
