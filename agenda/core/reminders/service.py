# agenda/core/reminders/service.py

"""Service-layer for Reminders."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, TypedDict

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.calendars.models import Calendar, Event
from agenda.core.recurrence import BaseRuleEngine, expand_series, get_rule_engine
from agenda.core.scheduling.identifiers import OccurrenceId

from .models import Reminder

log = logging.getLogger(__name__)


class ReminderNotice(TypedDict):
    """One reminder that should fire now, handed to the delivery collaborator."""
    user_id: str
    event_id: str  # occurrence id for series occurrences
    original_event_id: Optional[str]
    title: str
    start_time: datetime
    minutes_before: int
    fire_at: datetime


class RemindersService:
    """
    Async service answering "which reminders are due".

    Reminders are never marked as sent here: the poller asks for a window
    that matches its own interval, and delivery bookkeeping belongs to the
    notification collaborator.
    """

    def __init__(self, db_session: AsyncSession, rule_engine: BaseRuleEngine | None = None) -> None:
        """
        Args:
            db_session (AsyncSession): Active SQLAlchemy async session.
            rule_engine (BaseRuleEngine | None): Engine used to expand series.
        """
        self.db: AsyncSession = db_session
        self.engine: BaseRuleEngine = rule_engine or get_rule_engine()

    async def list_due(self, now: datetime, window: timedelta) -> List[ReminderNotice]:
        """
        Reminders whose fire instant ``start - minutes_before`` lies in ``(now - window, now]``.

        Recurring series are expanded so each occurrence gets its own notice
        for each reminder of the anchor.

        Args:
            now (datetime): Aware current instant.
            window (timedelta): Length of the polling window.

        Returns:
            List[ReminderNotice]: Due notices ordered by fire instant.
        """
        max_offset = await self.db.scalar(select(func.max(Reminder.minutes_before)))
        if max_offset is None:
            log.debug("No reminders stored")
            return []

        window_start = now - window
        horizon_end = now + timedelta(minutes=max_offset)
        stmt = (
            select(Event, Calendar.user_id)
            .join(Calendar, Event.calendar_id == Calendar.id)
            .where(Event.reminders.any())
            .where(
                or_(
                    and_(
                        Event.recurrence_rule.is_(None),
                        Event.start_time > window_start,
                        Event.start_time <= horizon_end,
                    ),
                    and_(
                        Event.recurrence_rule.is_not(None),
                        Event.start_time <= horizon_end,
                    ),
                )
            )
        )
        rows = (await self.db.execute(stmt)).all()

        notices: List[ReminderNotice] = []
        for event, user_id in rows:
            if event.is_recurring:
                starts = [
                    (str(OccurrenceId(event.id, occ.start)), event.id, occ.start)
                    for occ in expand_series(
                        self.engine, event.id, event.start_time, event.end_time,
                        event.recurrence_rule, window_start, horizon_end,
                    )
                ]
            else:
                starts = [(event.id, None, event.start_time)]

            for item_id, original_id, start in starts:
                for reminder in event.reminders:
                    fire_at = start - timedelta(minutes=reminder.minutes_before)
                    if window_start < fire_at <= now:
                        notices.append(ReminderNotice(
                            user_id=user_id,
                            event_id=item_id,
                            original_event_id=original_id,
                            title=event.title,
                            start_time=start,
                            minutes_before=reminder.minutes_before,
                            fire_at=fire_at,
                        ))

        notices.sort(key=lambda n: (n["fire_at"], n["event_id"], n["minutes_before"]))
        log.info("Found %d due reminders in (%s, %s]", len(notices), window_start.isoformat(), now.isoformat())
        return notices
