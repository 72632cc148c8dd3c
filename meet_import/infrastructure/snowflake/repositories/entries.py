"""
Snowflake repository for meets and their seed-time entries.
"""

import logging
from typing import Sequence
from uuid import uuid4

from meet_import.core.ingestion.dedup import Signature
from meet_import.core.ingestion.models import MeetEntryRecord, MeetInfo

from ..client import SnowflakeConnection
from .results import fetch_signatures

logger = logging.getLogger(__name__)


class EntryRepository:
    """Stores meets and meet entries."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def existing_signatures(self, swimmer_ids: Sequence[str]) -> set[Signature]:
        return fetch_signatures(self._conn, "meet_entries", swimmer_ids)

    def ensure_meet(self, meet: MeetInfo) -> str:
        """Return the id of the meet with this name and start date, creating it if needed."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT meet_id
                FROM meets
                WHERE meet_name = %s AND start_date = %s
            """, (meet.name, meet.start_date))
            row = cursor.fetchone()
            if row:
                return str(row[0])

            meet_id = str(uuid4())
            cursor.execute("""
                INSERT INTO meets (meet_id, meet_name, start_date, end_date)
                VALUES (%s, %s, %s, %s)
            """, (meet_id, meet.name, meet.start_date, meet.end_date))
            self._conn.commit()

            logger.info("Created meet", extra={"meet_id": meet_id, "meet": meet.name})
            return meet_id

        except Exception as e:
            logger.error("Failed to save meet", extra={"meet": meet.name, "error": str(e)})
            raise
        finally:
            cursor.close()

    def save_entries(self, entries: Sequence[MeetEntryRecord]) -> int:
        if not entries:
            return 0

        cursor = self._conn.cursor()

        try:
            cursor.executemany("""
                INSERT INTO meet_entries (
                    entry_id, swimmer_id, meet_name, meet_date, event,
                    event_number, age_group, is_bonus, time_seconds, time_display
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """, [
                (
                    e.id, e.swimmer_id, e.meet_name, e.meet_date, e.event,
                    e.event_number, e.age_group, e.is_bonus, e.time_seconds, e.time_display,
                )
                for e in entries
            ])
            self._conn.commit()

            logger.info("Saved meet entries", extra={"count": len(entries)})
            return len(entries)

        except Exception as e:
            self._conn.rollback()
            logger.error(
                "Failed to save meet entries",
                extra={"count": len(entries), "error": str(e)}
            )
            raise
        finally:
            cursor.close()
