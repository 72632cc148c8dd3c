"""
Shared fixtures for the unit tests.

Repository and importer tests run against the in-memory
MockSnowflakeConnection, so nothing here needs a real database.
"""

from datetime import date

import pytest

from meet_import.core.ingestion.importer import MeetImporter
from meet_import.infrastructure.snowflake.client import MockSnowflakeConnection
from meet_import.infrastructure.snowflake.repositories import (
    EntryRepository,
    ResultRepository,
    RosterRepository,
    TeamRecordRepository,
)


# ---------------------------------------------------------------------------
# Fixed-width line builders
# ---------------------------------------------------------------------------

def meet_line(name: str, start: str = "", end: str = "", record_type: str = "B11") -> str:
    """Meet record: name at 11, start date at 121, end date at 129."""
    return record_type + " " * 8 + name.ljust(89) + " " * 21 + start.ljust(8) + end.ljust(8)


def team_line(code: str, name: str) -> str:
    return "C11" + " " * 8 + code.ljust(6) + name.ljust(30)


def entry_line(
    name: str,
    external_id: str = "",
    birth_date: str = "",
    age: str = "",
    gender: str = "F",
    tail: str = "",
) -> str:
    """Individual entry: name 11-38, id 39-50, birth 55-62, age 63-64, gender 65, tail 67+."""
    return (
        "D01" + " " * 8
        + name.ljust(28)
        + external_id.ljust(12)
        + " " * 4
        + birth_date.ljust(8)
        + age.rjust(2)
        + gender
        + " "
        + tail
    )


@pytest.fixture
def meet_entry_file() -> str:
    """A small entry file: one meet, one team, one swimmer in two events."""
    return "\r\n".join([
        "A01V3      02Meet Entries             Hy-Tek, Ltd",
        meet_line("Spring Invitational", "03012025", "03022025"),
        team_line("SST", "Sample Swim Team"),
        entry_line("SMITH, JANE Q", "ABC123", "06012013", "11", "F", "1001 3 1112 1:05.30Y"),
        entry_line("SMITH, JANE Q", "ABC123", "06012013", "11", "F", "502 7 1112B 38.90Y"),
        "Z01Summary",
        "",
    ])


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def connection() -> MockSnowflakeConnection:
    return MockSnowflakeConnection()


@pytest.fixture
def jane_id(connection) -> str:
    """Jane Smith, born 2013-06-01: 11/12 for spring 2025 meets."""
    return connection._add_swimmer(
        "Jane Smith",
        date_of_birth=date(2013, 6, 1),
        gender="Female",
        external_id="ABC123",
    )


@pytest.fixture
def importer(connection) -> MeetImporter:
    return MeetImporter(
        roster_repository=RosterRepository(connection),
        result_repository=ResultRepository(connection),
        entry_repository=EntryRepository(connection),
        team_record_repository=TeamRecordRepository(connection),
    )
