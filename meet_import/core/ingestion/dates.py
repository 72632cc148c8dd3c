"""Date cell parsing shared by both export formats."""

import re
from datetime import date, datetime
from typing import Optional

_SLASHED_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
_PACKED_RE = re.compile(r"^(\d{2})(\d{2})(\d{4})$")


def parse_packed_date(text: Optional[str]) -> Optional[date]:
    """Parse the fixed-width MMDDYYYY form. Returns None if it isn't one."""
    match = _PACKED_RE.match((text or "").strip())
    if not match:
        return None
    month, day, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: object) -> Optional[date]:
    """
    Parse a date cell from an export.

    Accepts date/datetime objects (workbook cells), ISO "YYYY-MM-DD",
    "M/D/YY" (read as 20YY), "M/D/YYYY" and packed "MMDDYYYY".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    slashed = _SLASHED_RE.match(text)
    if slashed:
        month, day, year = slashed.groups()
        full_year = int(year) + 2000 if len(year) == 2 else int(year)
        try:
            return date(full_year, int(month), int(day))
        except ValueError:
            return None

    packed = parse_packed_date(text)
    if packed:
        return packed

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
