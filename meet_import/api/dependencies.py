"""
FastAPI dependency injection.

Dependencies provide instances of repositories, the importer and
configuration to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Resource lifecycle (connections) is managed in one place

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Generator

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.ingestion.delimited import ResultColumns, RosterColumns
from ..core.ingestion.importer import MeetImporter
from ..core.ingestion.records import RecordsEngine
from ..infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    SnowflakeConfig,
    SnowflakeConnection,
    create_snowflake_connection,
)
from ..infrastructure.snowflake.repositories import (
    EntryRepository,
    ResultRepository,
    RosterRepository,
    TeamRecordRepository,
)

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Global mock connection (shared across requests so data persists in dev)
_mock_snowflake_connection = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8] if api_key else ""}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

def snowflake_config_from_settings(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


def get_connection(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide a Snowflake connection for the request.

    This is a generator function so the connection is closed once the
    response is sent. In mock mode the same in-memory connection is
    reused across requests so that imported data persists.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")
        yield _mock_snowflake_connection
    else:
        with create_snowflake_connection(config=snowflake_config_from_settings(settings)) as conn:
            yield conn


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def build_importer(connection: SnowflakeConnection, settings: Settings) -> MeetImporter:
    """Wire repositories and column layouts into a MeetImporter."""
    return MeetImporter(
        roster_repository=RosterRepository(connection),
        result_repository=ResultRepository(connection),
        entry_repository=EntryRepository(connection),
        team_record_repository=TeamRecordRepository(connection),
        engine=RecordsEngine(course=settings.record_course),
        result_columns=ResultColumns(
            name=settings.results_name_column,
            event=settings.results_event_column,
            prelim=settings.results_prelim_column,
            finals=settings.results_finals_column,
            date=settings.results_date_column,
        ),
        roster_columns=RosterColumns(
            name=settings.roster_name_column,
            date_of_birth=settings.roster_dob_column,
            gender=settings.roster_gender_column,
            external_id=settings.roster_external_id_column,
        ),
    )


def get_meet_importer(
    settings: Annotated[Settings, Depends(get_settings)],
    connection: Annotated[SnowflakeConnection, Depends(get_connection)],
) -> MeetImporter:
    """The importer is cheap to build, so each request gets its own."""
    return build_importer(connection, settings)


def get_team_record_repository(
    connection: Annotated[SnowflakeConnection, Depends(get_connection)],
) -> TeamRecordRepository:
    return TeamRecordRepository(connection)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
MeetImporterDep = Annotated[MeetImporter, Depends(get_meet_importer)]
TeamRecordRepositoryDep = Annotated[TeamRecordRepository, Depends(get_team_record_repository)]
ConnectionDep = Annotated[SnowflakeConnection, Depends(get_connection)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
