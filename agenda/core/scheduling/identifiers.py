# agenda/core/scheduling/identifiers.py
"""
Event identifiers as seen by clients.

A listed item is either a stored event (``RealEventId``) or a virtual
occurrence of a recurring series (``OccurrenceId``). Occurrences are
rendered as ``"<anchor id>_<epoch milliseconds>"``; every write path goes
through :func:`resolve_event_id` so a mutation aimed at one occurrence
lands on the series anchor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

from agenda.db.types import as_utc

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_SEPARATOR = "_"


@dataclass(frozen=True)
class RealEventId:
    id: str

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class OccurrenceId:
    anchor_id: str
    instant: datetime

    @property
    def epoch_millis(self) -> int:
        return (as_utc(self.instant) - _EPOCH) // timedelta(milliseconds=1)

    def __str__(self) -> str:
        return f"{self.anchor_id}{_SEPARATOR}{self.epoch_millis}"


EventRef = Union[RealEventId, OccurrenceId]


_MILLIS_RE = re.compile(r"-?[0-9]+")


def parse_event_ref(raw: str) -> EventRef:
    """
    "3f2b..."                → RealEventId("3f2b...")
    "3f2b..._1704099600000"  → OccurrenceId("3f2b...", 2024-01-01T09:00Z)
    """
    anchor_id, sep, millis = raw.rpartition(_SEPARATOR)
    if sep and anchor_id and _MILLIS_RE.fullmatch(millis):
        try:
            return OccurrenceId(anchor_id, _EPOCH + timedelta(milliseconds=int(millis)))
        except (OverflowError, ValueError):
            # outside the datetime range; no stored event can carry such an id
            pass
    return RealEventId(raw)


def resolve_event_id(ref: EventRef | str) -> str:
    """Stored event id a write should act on: the anchor for occurrences."""
    if isinstance(ref, str):
        ref = parse_event_ref(ref)
    if isinstance(ref, OccurrenceId):
        return ref.anchor_id
    return ref.id


__all__ = [
    "RealEventId",
    "OccurrenceId",
    "EventRef",
    "parse_event_ref",
    "resolve_event_id",
]
