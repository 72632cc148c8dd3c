"""
Snowflake repository for swim results.

Results are append-only. The de-dup signature
(swimmer_id, event, time_display, meet_date) is checked by the importer
before anything is written, using one batched lookup per import.
"""

import logging
from datetime import date
from typing import Sequence

from meet_import.core.ingestion.dedup import Signature
from meet_import.core.ingestion.models import ResultRecord

from ..client import SnowflakeConnection

logger = logging.getLogger(__name__)


def _iso(value) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)[:10]


def fetch_signatures(connection: SnowflakeConnection, table: str, swimmer_ids: Sequence[str]) -> set[Signature]:
    """
    Signatures already stored in `table` for the given swimmers.

    Shared by results and meet entries, which use the same signature
    columns.
    """
    if not swimmer_ids:
        return set()

    placeholders = ", ".join(["%s"] * len(swimmer_ids))
    cursor = connection.cursor()

    try:
        cursor.execute(f"""
            SELECT swimmer_id, event, time_display, meet_date
            FROM {table}
            WHERE swimmer_id IN ({placeholders})
        """, tuple(swimmer_ids))
        return {
            (str(row[0]), row[1], row[2], _iso(row[3]))
            for row in cursor.fetchall()
        }
    except Exception as e:
        logger.error(
            "Failed to load existing signatures",
            extra={"table": table, "swimmers": len(swimmer_ids), "error": str(e)}
        )
        raise
    finally:
        cursor.close()


class ResultRepository:
    """Stores imported results."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def existing_signatures(self, swimmer_ids: Sequence[str]) -> set[Signature]:
        return fetch_signatures(self._conn, "results", swimmer_ids)

    def save_results(self, results: Sequence[ResultRecord]) -> int:
        """
        Insert a batch of results in one statement.

        The batch is committed together; on failure nothing from it is
        kept and the error propagates.
        """
        if not results:
            return 0

        cursor = self._conn.cursor()

        try:
            cursor.executemany("""
                INSERT INTO results (
                    result_id, swimmer_id, event, time_seconds,
                    time_display, meet_date, round
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s)
            """, [
                (r.id, r.swimmer_id, r.event, r.time_seconds, r.time_display, r.meet_date, r.round.value)
                for r in results
            ])
            self._conn.commit()

            logger.info("Saved results", extra={"count": len(results)})
            return len(results)

        except Exception as e:
            self._conn.rollback()
            logger.error(
                "Failed to save results",
                extra={"count": len(results), "error": str(e)}
            )
            raise
        finally:
            cursor.close()
