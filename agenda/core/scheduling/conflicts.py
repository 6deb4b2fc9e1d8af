# agenda/core/scheduling/conflicts.py

"""Detection of double-booked time for a single user."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.config import settings
from agenda.core.calendars.models import Calendar, Event
from agenda.core.recurrence import BaseRuleEngine, expand_series, get_rule_engine

log = logging.getLogger(__name__)


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """
    Half-open overlap test for ``[start_a, end_a)`` and ``[start_b, end_b)``.

    Back-to-back intervals (``end_a == start_b``) do not overlap.
    """
    return start_a < end_b and end_a > start_b


class ConflictDetector:
    """
    Answers whether a candidate interval collides with a user's bookings.

    Stored events are compared by their stored interval, series anchors
    included. With ``check_occurrences`` the expanded occurrences of the
    user's recurring series are compared too; a broken rule on one series
    only removes that series from the check.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        rule_engine: BaseRuleEngine | None = None,
        check_occurrences: bool | None = None,
    ) -> None:
        self.db: AsyncSession = db_session
        self.engine: BaseRuleEngine = rule_engine or get_rule_engine()
        self.check_occurrences: bool = (
            settings.CONFLICT_CHECK_OCCURRENCES if check_occurrences is None else check_occurrences
        )

    async def has_conflict(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_event_id: str | None = None,
    ) -> bool:
        log.debug(
            "Checking conflicts for user %s in [%s, %s) excluding %s",
            user_id, start.isoformat(), end.isoformat(), exclude_event_id,
        )
        stmt = (
            select(func.count(Event.id))
            .join(Calendar, Event.calendar_id == Calendar.id)
            .where(Calendar.user_id == user_id)
            .where(Event.start_time < end)
            .where(Event.end_time > start)
        )
        if exclude_event_id is not None:
            stmt = stmt.where(Event.id != exclude_event_id)
        stored_hits = await self.db.scalar(stmt)
        if stored_hits:
            log.info("Conflict for user %s: %d stored event(s) overlap", user_id, stored_hits)
            return True

        if self.check_occurrences and await self._occurrence_conflict(user_id, start, end, exclude_event_id):
            return True
        return False

    async def _occurrence_conflict(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        exclude_event_id: str | None,
    ) -> bool:
        stmt = (
            select(Event)
            .join(Calendar, Event.calendar_id == Calendar.id)
            .where(Calendar.user_id == user_id)
            .where(Event.recurrence_rule.is_not(None))
            .where(Event.start_time < end)
        )
        if exclude_event_id is not None:
            stmt = stmt.where(Event.id != exclude_event_id)
        anchors = (await self.db.scalars(stmt)).all()

        for anchor in anchors:
            # An occurrence reaches the candidate only if it starts after start - duration.
            occurrences = expand_series(
                self.engine,
                anchor.id,
                anchor.start_time,
                anchor.end_time,
                anchor.recurrence_rule,
                start - anchor.duration,
                end,
            )
            for occ in occurrences:
                if intervals_overlap(occ.start, occ.end, start, end):
                    log.info(
                        "Conflict for user %s: occurrence %s of series %s overlaps",
                        user_id, occ.start.isoformat(), anchor.id,
                    )
                    return True
        return False


__all__ = ["ConflictDetector", "intervals_overlap"]
