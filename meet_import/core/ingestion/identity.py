"""
Matching parsed names to roster swimmers.

Exports write names as "Last, First Middle"; the roster stores
"First Middle Last". Both reduce to the same case-folded "last, first"
key. Matching is exact on that key: no fuzzy or edit-distance matching,
since a wrong auto-match silently credits a time to the wrong swimmer.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .models import RosterSwimmer

logger = logging.getLogger(__name__)

MATCHED = "matched"
NOT_FOUND = "not_found"
AMBIGUOUS = "ambiguous"


def name_key(name: Optional[str]) -> str:
    """
    Reduce a name to "last, first".

    "Smith, Jane Q" and "Jane Quinn Smith" both give "smith, jane".
    A single-word name is its own key.
    """
    clean = (name or "").replace('"', "").replace("'", "")
    clean = " ".join(clean.split()).casefold()
    if not clean:
        return ""

    if "," in clean:
        last, rest = clean.split(",", 1)
        first_tokens = rest.split()
        first = first_tokens[0] if first_tokens else ""
        return f"{last.strip()}, {first}".rstrip(", ").strip()

    tokens = clean.split()
    if len(tokens) == 1:
        return tokens[0]
    return f"{tokens[-1]}, {tokens[0]}"


@dataclass
class Resolution:
    """Outcome of looking up one parsed name."""
    status: str
    swimmer: Optional[RosterSwimmer] = None
    candidate_ids: list[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.status == MATCHED


class IdentityResolver:
    """
    Lookup over a roster snapshot, built once per import.

    External ids win over names when both sides carry one. A name key
    shared by more than one roster swimmer is reported as ambiguous
    rather than resolved to whichever came first.
    """

    def __init__(self, roster: Sequence[RosterSwimmer]):
        self._by_name: dict[str, list[RosterSwimmer]] = {}
        self._by_external_id: dict[str, RosterSwimmer] = {}

        for swimmer in roster:
            key = name_key(swimmer.full_name)
            if key:
                self._by_name.setdefault(key, []).append(swimmer)
            if swimmer.external_id:
                self._by_external_id.setdefault(swimmer.external_id.strip(), swimmer)

        logger.debug(
            "Built roster index",
            extra={"swimmers": len(roster), "external_ids": len(self._by_external_id)}
        )

    def resolve(self, name_raw: str, external_id: Optional[str] = None) -> Resolution:
        if external_id:
            swimmer = self._by_external_id.get(external_id.strip())
            if swimmer is not None:
                return Resolution(status=MATCHED, swimmer=swimmer)

        candidates = self._by_name.get(name_key(name_raw), [])
        if len(candidates) == 1:
            return Resolution(status=MATCHED, swimmer=candidates[0])
        if len(candidates) > 1:
            return Resolution(
                status=AMBIGUOUS,
                candidate_ids=[swimmer.id for swimmer in candidates],
            )
        return Resolution(status=NOT_FOUND)

    def knows(self, name_raw: str, external_id: Optional[str] = None) -> bool:
        """True if the name or id is already on the roster (even ambiguously)."""
        if external_id and external_id.strip() in self._by_external_id:
            return True
        return name_key(name_raw) in self._by_name
