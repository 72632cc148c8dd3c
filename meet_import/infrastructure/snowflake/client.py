"""
Snowflake database connection management.

Provides the connection factory plus an in-memory mock for local
development and tests.

Most code never touches this module directly - it goes through the
repositories, which translate between domain models and table rows.
"""

import base64
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, Iterable, Optional, Protocol, Sequence
from uuid import uuid4

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide the mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "SWIMTEAM"
    schema: str = "MEETS"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(pem: bytes) -> bytes:
    """
    Convert a PEM private key to the DER bytes snowflake-connector expects
    for key-pair authentication.
    """
    private_key = serialization.load_pem_private_key(
        pem,
        password=None,  # No password on the key
        backend=default_backend()
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _private_key_pem(config: SnowflakeConfig) -> Optional[bytes]:
    """The PEM key from the file path, or from base64 (container deploys)."""
    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            return key_file.read()
    if config.private_key_base64:
        return base64.b64decode(config.private_key_base64)
    return None


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If a private key (path or base64) is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    import snowflake.connector

    connect_params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
        'client_session_keep_alive': True,
    }

    pem = _private_key_pem(config)
    if pem:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params['private_key'] = _load_private_key(pem)
    elif config.password:
        logger.info("Using password authentication for Snowflake")
        connect_params['password'] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or a private key must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

def _team_record_matches(row: dict, params: tuple) -> bool:
    """No params: every row. One: course filter. Four: a single bucket."""
    if not params:
        return True
    if len(params) == 1:
        return row['course'] == params[0]
    return (row['event'], row['age_group'], row['gender'], row['course']) == tuple(params)


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support the
    repository queries without a real database. Queries are recognised
    by pattern matching on the SQL text.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> 'MockSnowflakeCursor':
        """Execute a query against mock storage."""
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100], "params": params}
        )

        query_upper = " ".join(query.upper().split())
        params = tuple(params or ())
        self._results = []
        self._rowcount = 0

        # MERGE has its own SELECT inside, so check it first
        if 'MERGE INTO TEAM_RECORDS' in query_upper:
            self._merge_team_record(params)

        elif 'INSERT INTO' in query_upper:
            self._handle_insert(query_upper, params)

        elif 'UPDATE RECORD_HISTORY' in query_upper:
            self._close_history(params)

        elif query_upper.startswith('SELECT'):
            self._handle_select(query_upper, params)

        return self

    def executemany(self, query: str, seq_of_params: Iterable[Sequence[Any]]) -> 'MockSnowflakeCursor':
        """Run the same statement for each parameter tuple."""
        total = 0
        for params in seq_of_params:
            self.execute(query, params)
            total += self._rowcount
        self._rowcount = total
        return self

    # -- writes ------------------------------------------------------------

    def _handle_insert(self, query: str, params: tuple) -> None:
        if 'INTO SWIMMERS' in query:
            self._insert('swimmers', params, (
                'swimmer_id', 'full_name', 'date_of_birth', 'gender', 'external_id',
            ))
        elif 'INTO MEET_ENTRIES' in query:
            self._insert('meet_entries', params, (
                'entry_id', 'swimmer_id', 'meet_name', 'meet_date', 'event',
                'event_number', 'age_group', 'is_bonus', 'time_seconds', 'time_display',
            ))
        elif 'INTO MEETS' in query:
            self._insert('meets', params, ('meet_id', 'meet_name', 'start_date', 'end_date'))
        elif 'INTO RESULTS' in query:
            self._insert('results', params, (
                'result_id', 'swimmer_id', 'event', 'time_seconds',
                'time_display', 'meet_date', 'round',
            ))
        elif 'INTO RECORD_HISTORY' in query:
            self._insert('record_history', params, (
                'history_id', 'event', 'age_group', 'gender', 'course', 'swimmer_id',
                'swimmer_name', 'time_seconds', 'time_display', 'record_date',
                'previous_holder', 'previous_time_seconds', 'previous_time_display',
                'improvement_seconds',
            ))

    def _insert(self, table: str, params: tuple, columns: tuple) -> None:
        row = dict(zip(columns, params))
        self._storage[table][str(params[0])] = row
        self._rowcount = 1

    def _merge_team_record(self, params: tuple) -> None:
        """Conditional upsert: insert if absent, update only if strictly faster."""
        row = dict(zip((
            'event', 'age_group', 'gender', 'course', 'swimmer_id',
            'swimmer_name', 'time_seconds', 'time_display', 'record_date',
        ), params))
        key = "|".join(str(row[column]) for column in ('event', 'age_group', 'gender', 'course'))

        current = self._storage['team_records'].get(key)
        if current is None or row['time_seconds'] < current['time_seconds']:
            self._storage['team_records'][key] = row
            self._rowcount = 1

    def _close_history(self, params: tuple) -> None:
        """Set held_until on the bucket's open history rows."""
        held_until, event, age_group, gender, course = params
        for row in self._storage['record_history'].values():
            if (
                row.get('held_until') is None
                and (row['event'], row['age_group'], row['gender'], row['course'])
                == (event, age_group, gender, course)
            ):
                row['held_until'] = held_until
                self._rowcount += 1

    # -- reads -------------------------------------------------------------

    def _handle_select(self, query: str, params: tuple) -> None:
        if 'FROM SWIMMERS' in query:
            self._results = [
                (r['swimmer_id'], r['full_name'], r['date_of_birth'], r['gender'], r['external_id'])
                for r in self._storage['swimmers'].values()
            ]

        elif 'FROM RESULTS' in query or 'FROM MEET_ENTRIES' in query:
            table = 'meet_entries' if 'FROM MEET_ENTRIES' in query else 'results'
            wanted = {str(p) for p in params}
            self._results = [
                (r['swimmer_id'], r['event'], r['time_display'], r['meet_date'])
                for r in self._storage[table].values()
                if str(r['swimmer_id']) in wanted
            ]

        elif 'FROM MEETS' in query:
            name, start_date = params
            self._results = [
                (r['meet_id'],)
                for r in self._storage['meets'].values()
                if r['meet_name'] == name and r['start_date'] == start_date
            ]

        elif 'FROM TEAM_RECORDS' in query:
            self._results = [
                (
                    r['event'], r['age_group'], r['gender'], r['course'], r['swimmer_name'],
                    r['time_seconds'], r['time_display'], r['record_date'], r['swimmer_id'],
                )
                for r in self._storage['team_records'].values()
                if _team_record_matches(r, params)
            ]

        elif query == 'SELECT 1':
            self._results = [(1,)]

    def fetchone(self):
        """Fetch one row from results."""
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return list(self._results)

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        """Return number of rows affected."""
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores data in memory using a simple dictionary structure.
    This enables testing the full API without a real database.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    TABLES = ('swimmers', 'results', 'meets', 'meet_entries', 'team_records', 'record_history')

    def __init__(self) -> None:
        # In-memory storage: {table_name: {id: row_dict}}
        self._storage: dict[str, dict[str, dict]] = {table: {} for table in self.TABLES}

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        """Create a mock cursor."""
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        """Commit transaction (no-op for mock, always auto-commits)."""
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        """Rollback transaction (no-op for mock)."""
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _add_swimmer(self, full_name: str, date_of_birth=None, gender=None, external_id=None) -> str:
        """Add a roster swimmer to mock storage (for test setup)."""
        swimmer_id = str(uuid4())
        self._storage['swimmers'][swimmer_id] = {
            'swimmer_id': swimmer_id,
            'full_name': full_name,
            'date_of_birth': date_of_birth,
            'gender': gender,
            'external_id': external_id,
        }
        return swimmer_id

    def _rows(self, table: str) -> list[dict]:
        """All rows of a table (for test assertions)."""
        return list(self._storage[table].values())


@contextmanager
def get_mock_snowflake_connection() -> Generator[MockSnowflakeConnection, None, None]:
    """
    Provide mock Snowflake connection for local development.

    Returns a connection that stores data in memory.
    """
    conn = MockSnowflakeConnection()
    try:
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, return mock connection for testing

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_mode:
        with get_mock_snowflake_connection() as conn:
            yield conn
    else:
        if config is None:
            raise ValueError("config is required when not in mock mode")

        with get_snowflake_connection(config) as conn:
            yield conn
