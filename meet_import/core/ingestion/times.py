"""
Race time parsing and formatting.

Times arrive as text in a handful of shapes ("58.21", "1:45.55Y",
" 2:03.1L ") and are compared as float seconds. Parsing never raises:
anything unreadable becomes INVALID_TIME, which callers treat as
"no usable time on this row".
"""

import re
from typing import Optional

INVALID_TIME = 999999.0

# Result markers that mean "no time", not "bad data"
STATUS_MARKERS = frozenset({"DQ", "NS", "NT", "SCR", "DNF", "DFS", "DNS"})

TIME_RE = re.compile(
    r"^(?:(?P<minutes>\d+):)?(?P<seconds>\d+(?:\.\d*)?|\.\d+)(?P<course>[YLX])?$",
    re.IGNORECASE,
)


def parse_time(text: Optional[str]) -> float:
    """
    Convert "SS.ss" or "M:SS.ss" (optional Y/L/X course letter) to seconds.

    Returns INVALID_TIME for blank input, status markers, malformed text,
    non-positive times, and seconds >= 60 when a minutes prefix is present.
    """
    if text is None:
        return INVALID_TIME

    clean = str(text).strip().replace(" ", "")
    if not clean or clean.upper() in STATUS_MARKERS:
        return INVALID_TIME

    match = TIME_RE.match(clean)
    if not match:
        return INVALID_TIME

    seconds = float(match.group("seconds"))
    minutes = match.group("minutes")
    if minutes is not None:
        if seconds >= 60:
            return INVALID_TIME
        seconds += int(minutes) * 60

    if seconds <= 0:
        return INVALID_TIME
    return round(seconds, 2)


def is_valid_time(text: Optional[str]) -> bool:
    return parse_time(text) < INVALID_TIME


def format_time(seconds: Optional[float]) -> str:
    """
    Render seconds as "SS.ss" under a minute, "M:SS.ss" otherwise.

    Works in whole hundredths so 59.999 becomes "1:00.00", not "60.00".
    """
    if seconds is None or seconds <= 0 or seconds >= INVALID_TIME:
        return "--"

    hundredths = int(round(seconds * 100))
    minutes, rest = divmod(hundredths, 6000)
    whole, fraction = divmod(rest, 100)

    if minutes:
        return f"{minutes}:{whole:02d}.{fraction:02d}"
    return f"{whole}.{fraction:02d}"
