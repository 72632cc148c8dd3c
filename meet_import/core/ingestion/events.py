"""
Event descriptor normalization.

Timing software writes events as numeric codes ("1001" = 100 Free);
meet-management exports write free text ("Female (11/12) 100 Free
(Finals)"). Both reduce to the same CanonicalEvent, and so to the same
"100 Free" key used for de-duplication and record buckets.
"""

import logging
import re
from typing import Optional

from .models import CanonicalEvent, Stroke

logger = logging.getLogger(__name__)

RELAY_STROKE_CODES = frozenset({"6", "7"})

STANDARD_DISTANCES = frozenset({25, 50, 100, 200, 400, 500, 800, 1000, 1500, 1650})

_ROUND_RE = re.compile(r"\(\s*(?:timed\s+)?(?:finals?|prelims?)\s*\)", re.IGNORECASE)

_QUALIFIER_RE = re.compile(
    r"^\s*(?:female|male|girls|boys|women|men|mixed)\s*(?:\([^)]*\)|\d+\s*&\s*(?:under|over)|\d+\s*-\s*\d+)?\s*",
    re.IGNORECASE,
)

_RELAY_RE = re.compile(r"\brelay\b", re.IGNORECASE)

_EVENT_RE = re.compile(
    r"(?P<distance>\d+)\s*(?:SCY|SCM|LCM|Yards?|Meters?|Y|M)?\s*"
    r"(?P<stroke>Freestyle|Free|FR|Backstroke|Back|BK|Breaststroke|Breast|BR|"
    r"Butterfly|Fly|FL|Individual\s*Medley|Ind\.?\s*Medley|IM)\b",
    re.IGNORECASE,
)

_STROKE_SYNONYMS = {
    "freestyle": Stroke.FREE,
    "free": Stroke.FREE,
    "fr": Stroke.FREE,
    "backstroke": Stroke.BACK,
    "back": Stroke.BACK,
    "bk": Stroke.BACK,
    "breaststroke": Stroke.BREAST,
    "breast": Stroke.BREAST,
    "br": Stroke.BREAST,
    "butterfly": Stroke.FLY,
    "fly": Stroke.FLY,
    "fl": Stroke.FLY,
    "individualmedley": Stroke.IM,
    "indmedley": Stroke.IM,
    "im": Stroke.IM,
}


def event_from_code(code: Optional[str]) -> Optional[CanonicalEvent]:
    """
    Decode a numeric event code: last digit is the stroke id, the rest
    is the distance. Relay codes (6, 7) and malformed codes give None.
    """
    code = (code or "").strip()
    if len(code) < 2 or not code.isdigit():
        return None

    distance, stroke_digit = int(code[:-1]), code[-1]
    if stroke_digit in RELAY_STROKE_CODES or distance <= 0:
        return None

    stroke = Stroke.from_code(stroke_digit)
    if stroke is None:
        return None
    return CanonicalEvent(distance=distance, stroke=stroke)


def event_from_text(text: Optional[str]) -> Optional[CanonicalEvent]:
    """Pull distance and stroke out of a free-text event description."""
    clean = " ".join((text or "").split())
    if not clean or _RELAY_RE.search(clean):
        return None

    clean = _ROUND_RE.sub("", clean)
    clean = _QUALIFIER_RE.sub("", clean)

    match = _EVENT_RE.search(clean)
    if not match:
        return None

    synonym = re.sub(r"[\s.]", "", match.group("stroke")).lower()
    distance = int(match.group("distance"))
    if distance <= 0:
        return None
    return CanonicalEvent(distance=distance, stroke=_STROKE_SYNONYMS[synonym])


def normalize_event(value: Optional[str]) -> Optional[CanonicalEvent]:
    """Normalize either a numeric code or a text description."""
    value = (value or "").strip()
    if value.isdigit():
        return event_from_code(value)
    event = event_from_text(value)
    if event is None:
        logger.debug("Unrecognised event descriptor", extra={"event": value})
    return event
