"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .entries import EntryRepository
from .results import ResultRepository
from .roster import RosterRepository
from .team_records import TeamRecordRepository

__all__ = [
    "EntryRepository",
    "ResultRepository",
    "RosterRepository",
    "TeamRecordRepository",
]
