"""
Fixed-width meet entry parser (SD3 files from swim-timing software).

Each line starts with a 3-character record type. We read:
- B11/B12: meet name and dates
- C11/C12: team code and name
- D01: one individual entry (swimmer + event + seed time)

Everything else (A01 file header, D3x extra swimmer info, E0x relays,
Z01 summary) is skipped so newer files with extra record types still load.

Fields sit at fixed offsets except for the tail of a D01 line, where the
event code, event number, age group and seed time have widths that vary
with their values. That tail is read as whitespace-separated tokens.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .dates import parse_packed_date
from .events import RELAY_STROKE_CODES, STANDARD_DISTANCES, event_from_code
from .models import (
    CanonicalEvent,
    Gender,
    MeetInfo,
    ParsedRow,
    ParsedSwimmer,
    ParseError,
    Round,
    RosterSwimmer,
    TeamInfo,
)
from .times import INVALID_TIME, parse_time

logger = logging.getLogger(__name__)

MEET_RECORDS = frozenset({"B11", "B12"})
TEAM_RECORDS = frozenset({"C11", "C12"})
ENTRY_RECORD = "D01"

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f\ufeff]")

_LINE_BREAK_RE = re.compile(r"\r\n|\n|\r")
_SEED_TIME_RE = re.compile(r"^(?:NT|(?:\d+:)?\d+\.\d+[YLX]?)$", re.IGNORECASE)
_AGE_GROUP_RE = re.compile(r"(UN\d{1,2}|\d{1,2}OV|\d{4})(B?)$", re.IGNORECASE)
_EVENT_BLOCK_RE = re.compile(r"^\d+[AB]?$", re.IGNORECASE)


class EntryLineError(ValueError):
    """Raised for a D01 line whose event block can't be read."""
    pass


@dataclass
class MeetEntryParseResult:
    """Everything read out of one meet entry file."""
    meet: Optional[MeetInfo] = None
    team: Optional[TeamInfo] = None
    entries: list[ParsedRow] = field(default_factory=list)
    swimmers: list[ParsedSwimmer] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Entry tail tokens
# ---------------------------------------------------------------------------

class _TailTokens:
    """
    Whitespace tokens from the end of a D01 line, consumed from the right.

    Seed time and age group are optional; whatever is left over is the
    event block.
    """

    def __init__(self, text: str) -> None:
        self._tokens = text.split()

    def take_seed_time(self) -> Optional[str]:
        if self._tokens and _SEED_TIME_RE.match(self._tokens[-1]):
            return self._tokens.pop()
        return None

    def take_age_group(self) -> tuple[Optional[str], bool]:
        """
        Take the age group label, which may be glued onto the event block
        ("504110AUN10"). Returns (label without bonus marker, is_bonus).
        """
        if not self._tokens:
            return None, False

        last = self._tokens[-1]
        match = _AGE_GROUP_RE.search(last)
        if not match:
            return None, False

        prefix = last[:match.start()]
        if not prefix and len(self._tokens) == 1:
            # Only the event code is left
            return None, False

        self._tokens.pop()
        if prefix:
            self._tokens.append(prefix)
        label, bonus = match.group(1), match.group(2)
        return label.upper(), bool(bonus)

    def remaining(self) -> list[str]:
        return list(self._tokens)


def _split_event_block(tokens: list[str]) -> tuple[str, Optional[int]]:
    """
    Separate event code from event number.

    Spaced form: "2005 12" or "5001 2A". Compact form: "50240A" (code 502,
    event 40), tried against code lengths 3..5 and standard distances.
    """
    if not tokens or not all(_EVENT_BLOCK_RE.match(t) for t in tokens):
        raise EntryLineError(f"Unreadable event block: {' '.join(tokens)!r}")

    digits = [t.rstrip("ABab") for t in tokens]

    if len(digits) >= 2:
        code, number = digits[0], "".join(digits[1:])
        return code, int(number) if number else None

    combined = digits[0]
    for length in range(3, min(5, len(combined)) + 1):
        candidate = combined[:length]
        if int(candidate[:-1]) in STANDARD_DISTANCES and candidate[-1] in "1234567":
            number = combined[length:]
            return candidate, int(number) if number else None

    raise EntryLineError(f"Unreadable event code: {combined!r}")


# ---------------------------------------------------------------------------
# Record parsers
# ---------------------------------------------------------------------------

def _parse_meet(line: str) -> MeetInfo:
    name = line[11:100].strip()
    if not name:
        raise ValueError("Meet record has no meet name")

    dates: list[Optional[date]] = []
    for raw in (line[121:129].strip(), line[129:137].strip()):
        if not raw:
            dates.append(None)
            continue
        parsed = parse_packed_date(raw)
        if parsed is None:
            raise ValueError(f"Meet record has an invalid date: {raw!r}")
        dates.append(parsed)

    return MeetInfo(name=name, start_date=dates[0], end_date=dates[1])


def _parse_team(line: str) -> TeamInfo:
    code = line[11:17].strip()
    name = line[17:47].strip()
    if not code and not name:
        raise ValueError("Team record has no team code or name")
    return TeamInfo(code=code, name=name)


def _parse_gender(letter: str) -> Optional[Gender]:
    return {"M": Gender.MALE, "F": Gender.FEMALE}.get(letter.upper())


def _parse_entry(line: str, line_number: int) -> Optional[ParsedRow]:
    """
    Read one D01 line. Returns None for relay-coded entries.

    Raises ValueError (EntryLineError) when the line can't be read.
    """
    name = line[11:39].strip()
    if not name:
        raise ValueError("Entry record has no swimmer name")

    age_text = line[63:65].strip()
    tokens = _TailTokens(line[67:])
    seed_token = tokens.take_seed_time()
    age_group, is_bonus = tokens.take_age_group()
    code, event_number = _split_event_block(tokens.remaining())

    if code[-1] in RELAY_STROKE_CODES:
        logger.debug("Skipping relay-coded entry", extra={"line": line_number, "code": code})
        return None

    event: Optional[CanonicalEvent] = event_from_code(code)
    if event is None:
        raise EntryLineError(f"Unknown event code: {code!r}")

    time_raw = seed_token or ""
    return ParsedRow(
        swimmer_name_raw=name,
        external_id=line[39:51].strip() or None,
        birth_date=parse_packed_date(line[55:63]),
        age=int(age_text) if age_text.isdigit() else None,
        gender=_parse_gender(line[65:66]),
        event_code_or_text=code,
        event=event,
        event_number=event_number,
        age_group_text=age_group,
        is_bonus=is_bonus,
        time_raw=time_raw,
        time_seconds=parse_time(time_raw) if time_raw else INVALID_TIME,
        meet_date=None,
        round=Round.SEED,
        line=line_number,
    )


# ---------------------------------------------------------------------------
# File parser
# ---------------------------------------------------------------------------

def parse_meet_entries(text: str) -> MeetEntryParseResult:
    """
    Parse a whole meet entry file.

    Lines that can't be read are logged and reported in `errors`; they
    never stop the rest of the file from loading.
    """
    result = MeetEntryParseResult()
    swimmers: dict[str, ParsedSwimmer] = {}

    for line_number, raw_line in enumerate(_LINE_BREAK_RE.split(text), start=1):
        line = _CONTROL_RE.sub("", raw_line)
        if len(line) < 3:
            continue

        record_type = line[:3]
        try:
            if record_type in MEET_RECORDS:
                result.meet = _parse_meet(line)
            elif record_type in TEAM_RECORDS:
                result.team = _parse_team(line)
            elif record_type == ENTRY_RECORD:
                entry = _parse_entry(line, line_number)
                if entry is not None:
                    result.entries.append(entry)
                    _track_swimmer(swimmers, entry)
        except ValueError as e:
            logger.warning(
                "Skipping unreadable meet file line",
                extra={"line": line_number, "record_type": record_type, "error": str(e)}
            )
            result.errors.append(ParseError(line=line_number, message=str(e)))

    meet_date = result.meet.start_date if result.meet else None
    for entry in result.entries:
        entry.meet_date = meet_date

    result.swimmers = list(swimmers.values())

    logger.info(
        "Parsed meet entry file",
        extra={
            "entries": len(result.entries),
            "swimmers": len(result.swimmers),
            "errors": len(result.errors),
        }
    )
    return result


def _track_swimmer(swimmers: dict[str, ParsedSwimmer], entry: ParsedRow) -> None:
    key = entry.external_id or entry.swimmer_name_raw.lower()
    swimmer = swimmers.get(key)
    if swimmer is None:
        swimmer = ParsedSwimmer(
            name_raw=entry.swimmer_name_raw,
            external_id=entry.external_id,
            birth_date=entry.birth_date,
            age=entry.age,
            gender=entry.gender,
        )
        swimmers[key] = swimmer
    swimmer.entry_count += 1


def roster_candidates(result: MeetEntryParseResult) -> list[RosterSwimmer]:
    """
    Turn the distinct swimmers of an entry file into new roster rows.

    Names go from "Last, First M" to title-cased "First M Last". The id
    is left blank for the roster store to assign.
    """
    candidates = []
    for swimmer in result.swimmers:
        candidates.append(RosterSwimmer(
            id="",
            full_name=_roster_name(swimmer.name_raw),
            date_of_birth=swimmer.birth_date,
            gender=swimmer.gender.value if swimmer.gender else None,
            external_id=swimmer.external_id,
        ))
    return candidates


def _roster_name(name_raw: str) -> str:
    name = name_raw.strip()
    if "," in name:
        last, first = name.split(",", 1)
        name = f"{first.strip()} {last.strip()}"
    return " ".join(word.capitalize() for word in name.split())
