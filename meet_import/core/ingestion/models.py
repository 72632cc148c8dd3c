"""
Domain models for meet file ingestion and team records.

These models describe what the importer works with: roster swimmers,
rows parsed out of third-party exports, the results and entries we persist,
and the team records ledger. They carry no knowledge of Snowflake, FastAPI
or the file formats themselves.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional
from uuid import uuid4


class Stroke(Enum):
    """The five individual strokes, valued by their canonical abbreviation."""
    FREE = "Free"
    BACK = "Back"
    BREAST = "Breast"
    FLY = "Fly"
    IM = "IM"

    @classmethod
    def from_code(cls, digit: str) -> Optional["Stroke"]:
        """Map a timing-software stroke id (1..5) to a stroke."""
        return _STROKE_IDS.get(digit)


_STROKE_IDS = {
    "1": Stroke.FREE,
    "2": Stroke.BACK,
    "3": Stroke.BREAST,
    "4": Stroke.FLY,
    "5": Stroke.IM,
}


class Gender(Enum):
    MALE = "Male"
    FEMALE = "Female"


class Round(Enum):
    """Which swim a time belongs to."""
    PRELIM = "Prelim"
    FINALS = "Finals"
    SEED = "Seed"  # Entry time submitted before the meet


@dataclass(frozen=True)
class CanonicalEvent:
    """
    An individual event reduced to distance and stroke.

    The `key` form ("100 Free") is stored with every result and team
    record, so its casing and spacing must stay exactly as they are.
    """
    distance: int
    stroke: Stroke

    def __post_init__(self) -> None:
        if self.distance <= 0:
            raise ValueError("Event distance must be positive")

    @property
    def key(self) -> str:
        return f"{self.distance} {self.stroke.value}"

    def __str__(self) -> str:
        return self.key


@dataclass
class RosterSwimmer:
    """A swimmer on the team roster. Owned elsewhere; read-only here."""
    id: str
    full_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    external_id: Optional[str] = None


@dataclass
class ParsedRow:
    """
    One time read out of an export file, before it is matched to anyone.

    Both parsers produce these. Fixed-width entries also fill in the
    swimmer details carried on the entry line (birth date, age, gender).
    """
    swimmer_name_raw: str
    event_code_or_text: str
    time_raw: str
    time_seconds: float
    meet_date: Optional[date]
    round: Round
    event: Optional[CanonicalEvent] = None
    external_id: Optional[str] = None
    event_number: Optional[int] = None
    age_group_text: Optional[str] = None
    is_bonus: bool = False
    birth_date: Optional[date] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None
    line: Optional[int] = None


@dataclass
class ResultRecord:
    """
    A swim result as persisted.

    No two results may share (swimmer_id, event, time_display, meet_date);
    that tuple is the de-dup signature.
    """
    swimmer_id: str
    event: str
    time_seconds: float
    time_display: str
    meet_date: date
    round: Round
    id: str = field(default_factory=lambda: str(uuid4()))


@dataclass
class MeetEntryRecord:
    """A seed-time entry for an upcoming meet, as persisted."""
    swimmer_id: str
    meet_name: str
    meet_date: date
    event: str
    time_seconds: float
    time_display: str
    event_number: Optional[int] = None
    age_group: Optional[str] = None
    is_bonus: bool = False
    id: str = field(default_factory=lambda: str(uuid4()))


@dataclass(frozen=True)
class RecordKey:
    """The (event, age group, gender, course) bucket a team record lives in."""
    event: str
    age_group: str
    gender: str
    course: str


@dataclass
class TeamRecord:
    """The best known team time for one bucket."""
    event: str
    age_group: str
    gender: str
    course: str
    swimmer_name: str
    time_seconds: float
    time_display: str
    date: date
    swimmer_id: Optional[str] = None

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.event, self.age_group, self.gender, self.course)


@dataclass
class RecordBreakEvent:
    """
    A proposed team record update.

    Produced by the records engine and handed to the caller, who decides
    whether to apply it. Not persisted as-is.
    """
    swimmer_id: str
    swimmer_name: str
    event: str
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

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.event, self.age_group, self.gender, self.course)

    @property
    def is_first_record(self) -> bool:
        return self.previous_time_seconds is None

    def to_team_record(self) -> TeamRecord:
        return TeamRecord(
            event=self.event,
            age_group=self.age_group,
            gender=self.gender,
            course=self.course,
            swimmer_name=self.swimmer_name,
            swimmer_id=self.swimmer_id,
            time_seconds=self.new_time_seconds,
            time_display=self.new_time_display,
            date=self.date,
        )


@dataclass(frozen=True)
class ParseError:
    """A row or line that could not be read. `line` is 1-based."""
    line: int
    message: str


@dataclass
class MeetInfo:
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class TeamInfo:
    code: str
    name: str


@dataclass
class ParsedSwimmer:
    """A distinct swimmer seen in a meet entry file."""
    name_raw: str
    external_id: Optional[str] = None
    birth_date: Optional[date] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None
    entry_count: int = 0


@dataclass
class UnmatchedRow:
    """
    A parsed name we could not tie to exactly one roster swimmer.

    reason is "not_found" or "ambiguous"; for ambiguous rows the
    candidate roster ids are listed so someone can link by hand.
    """
    raw_name: str
    reason: str = "not_found"
    candidate_ids: list[str] = field(default_factory=list)
