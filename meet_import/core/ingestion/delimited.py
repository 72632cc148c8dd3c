"""
Delimited (CSV) export parsing.

Meet-management exports put the swimmer's name and an opaque id in the
same quoted cell, separated by a newline, and event names can wrap too:

    "Smith, Jane Q
    ABC123","Female (11/12) 100 Free",...

so rows can't be found by splitting on newlines and cells can't be found
by splitting on commas. `split_rows` walks the text once, tracking whether
it is inside quotes.

Column positions are fixed per exporting tool; the export has a header
row but it isn't used to locate columns.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Sequence

from .dates import parse_date
from .events import normalize_event
from .models import ParsedRow, ParseError, Round, RosterSwimmer
from .times import is_valid_time, parse_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResultColumns:
    """Zero-based column positions in a results export."""
    name: int = 1
    event: int = 2
    prelim: int = 4
    finals: int = 5
    date: int = 10


@dataclass(frozen=True)
class RosterColumns:
    """Zero-based column positions in a roster export."""
    name: int = 0
    date_of_birth: int = 1
    gender: int = 2
    external_id: int = 3


@dataclass
class DelimitedParseResult:
    rows: list[ParsedRow] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------

def split_rows(text: str) -> list[list[str]]:
    """
    Split delimited text into rows of trimmed cells.

    - `"` toggles quoting; `""` inside quotes is a literal quote
    - an unquoted `,` ends a cell
    - an unquoted CR, LF or CRLF ends a row (CRLF counts once)
    - blank lines produce no row
    """
    rows: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False

    if text.startswith("\ufeff"):
        text = text[1:]

    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if char == '"':
            if in_quotes and next_char == '"':
                cell.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            row.append("".join(cell).strip())
            cell = []
        elif char in "\r\n" and not in_quotes:
            if cell or row:
                row.append("".join(cell).strip())
                rows.append(row)
                row, cell = [], []
            if char == "\r" and next_char == "\n":
                i += 1
        else:
            cell.append(char)
        i += 1

    if cell or row:
        row.append("".join(cell).strip())
        rows.append(row)

    return rows


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def name_line(cell: str) -> str:
    """The first line of a name cell, with stray double quotes removed."""
    first = cell.replace("\r", "\n").split("\n", 1)[0]
    return first.replace('"', "").strip()


def display_name(raw: str) -> str:
    """
    "Last, First Middle" -> "First Last".

    Only the first token after the comma is kept. Names without a comma
    come back unchanged.
    """
    if "," not in raw:
        return " ".join(raw.split())
    last, rest = raw.split(",", 1)
    first_tokens = rest.split()
    first = first_tokens[0] if first_tokens else ""
    return f"{first} {last.strip()}".strip()


def _cell(row: Sequence[str], index: int) -> str:
    return row[index] if 0 <= index < len(row) else ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def parse_result_rows(
    rows: Sequence[Sequence[str]],
    default_meet_date: date,
    columns: ResultColumns = ResultColumns(),
) -> DelimitedParseResult:
    """
    Map export rows to ParsedRows, one per valid Prelim or Finals time.

    The first row is a header. Rows with fewer than five cells or no name
    are not results (section titles, blank padding) and are skipped
    quietly. Rows whose event can't be read are reported as errors.
    """
    result = DelimitedParseResult()

    for index, row in enumerate(rows[1:], start=2):
        if len(row) < 5:
            continue

        raw_name = name_line(_cell(row, columns.name))
        if not raw_name:
            continue

        event_text = " ".join(_cell(row, columns.event).split())
        event = normalize_event(event_text)
        if event is None:
            message = f"Unrecognised event: {event_text!r}"
            logger.warning(
                "Skipping results row",
                extra={"line": index, "error": message}
            )
            result.errors.append(ParseError(line=index, message=message))
            continue

        meet_date = _row_date(_cell(row, columns.date), default_meet_date, index)

        for round_, column in ((Round.PRELIM, columns.prelim), (Round.FINALS, columns.finals)):
            time_raw = _cell(row, column).strip()
            if not is_valid_time(time_raw):
                continue
            result.rows.append(ParsedRow(
                swimmer_name_raw=raw_name,
                event_code_or_text=event_text,
                event=event,
                time_raw=time_raw,
                time_seconds=parse_time(time_raw),
                meet_date=meet_date,
                round=round_,
                line=index,
            ))

    logger.info(
        "Parsed results rows",
        extra={"rows": len(rows), "times": len(result.rows), "errors": len(result.errors)}
    )
    return result


def _row_date(value: str, default: date, line: int) -> date:
    parsed = parse_date(value)
    if parsed is None:
        if value.strip():
            logger.warning(
                "Unreadable results date, using meet default",
                extra={"line": line, "value": value, "default": default.isoformat()}
            )
        return default
    return parsed


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

def parse_roster_rows(
    rows: Sequence[Sequence[str]],
    columns: RosterColumns = RosterColumns(),
) -> tuple[list[RosterSwimmer], list[ParseError]]:
    """
    Map roster export rows to new RosterSwimmers (ids left blank).

    Date of birth, gender and external id are optional; a row without a
    name is an error.
    """
    swimmers: list[RosterSwimmer] = []
    errors: list[ParseError] = []

    for index, row in enumerate(rows[1:], start=2):
        if not any(cell.strip() for cell in row):
            continue

        raw_name = name_line(_cell(row, columns.name))
        if not raw_name:
            errors.append(ParseError(line=index, message="Roster row has no name"))
            continue

        gender = _cell(row, columns.gender).strip().upper()
        swimmers.append(RosterSwimmer(
            id="",
            full_name=display_name(raw_name) if "," in raw_name else raw_name,
            date_of_birth=parse_date(_cell(row, columns.date_of_birth)),
            gender={"M": "Male", "MALE": "Male", "F": "Female", "FEMALE": "Female"}.get(gender),
            external_id=_cell(row, columns.external_id).strip() or None,
        ))

    return swimmers, errors
