"""
Snowflake repository for the team roster.

The roster is owned by the team management side of the app; imports only
read it, apart from adding swimmers found in a roster file.
"""

import logging
from dataclasses import replace
from typing import Sequence
from uuid import uuid4

from meet_import.core.ingestion.models import RosterSwimmer

from ..client import SnowflakeConnection

logger = logging.getLogger(__name__)


class RosterRepository:
    """Reads the roster snapshot and adds new swimmers."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def list_swimmers(self) -> list[RosterSwimmer]:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT swimmer_id, full_name, date_of_birth, gender, external_id
                FROM swimmers
            """)
            return [
                RosterSwimmer(
                    id=str(row[0]),
                    full_name=row[1],
                    date_of_birth=row[2],
                    gender=row[3],
                    external_id=row[4],
                )
                for row in cursor.fetchall()
            ]
        except Exception as e:
            logger.error("Failed to load roster", extra={"error": str(e)})
            raise
        finally:
            cursor.close()

    def add_swimmers(self, swimmers: Sequence[RosterSwimmer]) -> list[RosterSwimmer]:
        """Insert swimmers, assigning ids. Returns the stored swimmers."""
        stored = [replace(swimmer, id=swimmer.id or str(uuid4())) for swimmer in swimmers]
        if not stored:
            return []

        cursor = self._conn.cursor()

        try:
            cursor.executemany("""
                INSERT INTO swimmers (swimmer_id, full_name, date_of_birth, gender, external_id)
                VALUES (%s, %s, %s, %s, %s)
            """, [
                (s.id, s.full_name, s.date_of_birth, s.gender, s.external_id)
                for s in stored
            ])
            self._conn.commit()

            logger.info("Added roster swimmers", extra={"count": len(stored)})
            return stored

        except Exception as e:
            self._conn.rollback()
            logger.error(
                "Failed to add roster swimmers",
                extra={"count": len(stored), "error": str(e)}
            )
            raise
        finally:
            cursor.close()
