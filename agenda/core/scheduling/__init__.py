"""
Scheduling core: event store gateway, conflict detector and the service
that composes them with the recurrence expander.
"""
from __future__ import annotations

from .conflicts import ConflictDetector, intervals_overlap
from .errors import SchedulingError
from .identifiers import OccurrenceId, RealEventId, parse_event_ref, resolve_event_id
from .service import SchedulingService
from .store import EventStore

__all__: list[str] = [
    "ConflictDetector",
    "EventStore",
    "OccurrenceId",
    "RealEventId",
    "SchedulingError",
    "SchedulingService",
    "intervals_overlap",
    "parse_event_ref",
    "resolve_event_id",
]
