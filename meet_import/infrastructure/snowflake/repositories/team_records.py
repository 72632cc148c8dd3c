"""
Snowflake repository for team records.

Writes go through a single MERGE that only replaces a stored record when
the new time is strictly faster, so two imports racing on the same
bucket can't put a slower time back.
"""

import logging
from typing import Optional
from uuid import uuid4

from meet_import.core.ingestion.models import RecordBreakEvent, RecordKey, TeamRecord

from ..client import SnowflakeConnection

logger = logging.getLogger(__name__)

_SELECT_RECORDS = """
    SELECT event, age_group, gender, course, swimmer_name,
           time_seconds, time_display, record_date, swimmer_id
    FROM team_records
"""


def _to_record(row) -> TeamRecord:
    return TeamRecord(
        event=row[0],
        age_group=row[1],
        gender=row[2],
        course=row[3],
        swimmer_name=row[4],
        time_seconds=float(row[5]),
        time_display=row[6],
        date=row[7],
        swimmer_id=str(row[8]) if row[8] is not None else None,
    )


class TeamRecordRepository:
    """
    Repository for the team records ledger.

    - current_records: one read per import, keyed by bucket
    - get_record: the stored holder of one bucket, read at apply time
    - upsert_if_faster: the conditional write-back
    - append_history: audit trail of applied record breaks
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def list_records(self, course: Optional[str] = None) -> list[TeamRecord]:
        cursor = self._conn.cursor()

        try:
            if course:
                cursor.execute(_SELECT_RECORDS + " WHERE course = %s", (course,))
            else:
                cursor.execute(_SELECT_RECORDS)

            return [_to_record(row) for row in cursor.fetchall()]
        except Exception as e:
            logger.error("Failed to load team records", extra={"course": course, "error": str(e)})
            raise
        finally:
            cursor.close()

    def current_records(self, course: str) -> dict[RecordKey, TeamRecord]:
        return {record.key: record for record in self.list_records(course)}

    def get_record(self, key: RecordKey) -> Optional[TeamRecord]:
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                _SELECT_RECORDS + " WHERE event = %s AND age_group = %s AND gender = %s AND course = %s",
                (key.event, key.age_group, key.gender, key.course),
            )
            row = cursor.fetchone()
            return _to_record(row) if row else None
        except Exception as e:
            logger.error(
                "Failed to load team record",
                extra={"event": key.event, "age_group": key.age_group, "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def upsert_if_faster(self, record: TeamRecord) -> bool:
        """
        Insert the record, or replace the stored one if strictly faster.

        Returns False when the bucket already holds an equal or faster time.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                MERGE INTO team_records AS target
                USING (
                    SELECT %s AS event, %s AS age_group, %s AS gender, %s AS course,
                           %s AS swimmer_id, %s AS swimmer_name, %s AS time_seconds,
                           %s AS time_display, %s AS record_date
                ) AS source
                ON target.event = source.event
                   AND target.age_group = source.age_group
                   AND target.gender = source.gender
                   AND target.course = source.course
                WHEN MATCHED AND source.time_seconds < target.time_seconds THEN
                    UPDATE SET
                        swimmer_id = source.swimmer_id,
                        swimmer_name = source.swimmer_name,
                        time_seconds = source.time_seconds,
                        time_display = source.time_display,
                        record_date = source.record_date,
                        updated_at = CURRENT_TIMESTAMP()
                WHEN NOT MATCHED THEN
                    INSERT (event, age_group, gender, course, swimmer_id, swimmer_name,
                            time_seconds, time_display, record_date)
                    VALUES (source.event, source.age_group, source.gender, source.course,
                            source.swimmer_id, source.swimmer_name, source.time_seconds,
                            source.time_display, source.record_date)
            """, (
                record.event,
                record.age_group,
                record.gender,
                record.course,
                record.swimmer_id,
                record.swimmer_name,
                record.time_seconds,
                record.time_display,
                record.date,
            ))
            applied = cursor.rowcount > 0
            self._conn.commit()
            return applied

        except Exception as e:
            logger.error(
                "Failed to upsert team record",
                extra={"event": record.event, "age_group": record.age_group, "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def append_history(self, record_break: RecordBreakEvent) -> None:
        """
        Close the bucket's open history row, then add the new holder's.

        The closed row is held until the date the new record was swum.
        The new row stays open (held_until NULL) until it is beaten.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                UPDATE record_history
                SET held_until = %s
                WHERE event = %s
                  AND age_group = %s
                  AND gender = %s
                  AND course = %s
                  AND held_until IS NULL
            """, (
                record_break.date,
                record_break.event,
                record_break.age_group,
                record_break.gender,
                record_break.course,
            ))

            cursor.execute("""
                INSERT INTO record_history (
                    history_id, event, age_group, gender, course, swimmer_id,
                    swimmer_name, time_seconds, time_display, record_date,
                    previous_holder, previous_time_seconds, previous_time_display,
                    improvement_seconds
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                str(uuid4()),
                record_break.event,
                record_break.age_group,
                record_break.gender,
                record_break.course,
                record_break.swimmer_id,
                record_break.swimmer_name,
                record_break.new_time_seconds,
                record_break.new_time_display,
                record_break.date,
                record_break.previous_holder,
                record_break.previous_time_seconds,
                record_break.previous_time_display,
                record_break.improvement_seconds,
            ))
            self._conn.commit()

        except Exception as e:
            self._conn.rollback()
            logger.error(
                "Failed to record history",
                extra={"event": record_break.event, "error": str(e)}
            )
            raise
        finally:
            cursor.close()
