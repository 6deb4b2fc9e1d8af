# agenda/core/scheduling/store.py

"""Persistence-facing operations on calendars, events and reminders."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.config import settings
from agenda.core.calendars.models import Calendar, Event
from agenda.core.calendars.schemas import EventIn, EventOut
from agenda.core.recurrence import BaseRuleEngine, RecurrenceRuleError, expand_series, get_rule_engine
from agenda.core.reminders.models import Reminder
from agenda.core.users.models import User

from .conflicts import ConflictDetector
from .errors import (
    DefaultCalendarProtected,
    InvalidCalendar,
    InvalidInterval,
    InvalidRecurrenceRule,
    NoDefaultCalendar,
    NotFoundOrForbidden,
    OverlapConflict,
)
from .identifiers import EventRef, OccurrenceId, resolve_event_id

log = logging.getLogger(__name__)


class EventStore:
    """
    Gateway over the relational store.

    Every query is scoped by the owning user through ``calendars.user_id``.
    Methods only ``flush``; the caller owns the transaction, so a conflict
    check and the write that follows it commit or roll back together.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        rule_engine: BaseRuleEngine | None = None,
        conflicts: ConflictDetector | None = None,
    ) -> None:
        """
        Args:
            db_session (AsyncSession): Active SQLAlchemy async session.
            rule_engine (BaseRuleEngine | None): Engine for rule validation and expansion.
            conflicts (ConflictDetector | None): Detector sharing the same session.
        """
        self.db: AsyncSession = db_session
        self.engine: BaseRuleEngine = rule_engine or get_rule_engine()
        self.conflicts: ConflictDetector = conflicts or ConflictDetector(db_session, self.engine)

    # ------------------------------------------------------------------ #
    #                      Lookups & validation helpers                  #
    # ------------------------------------------------------------------ #

    async def get_owned_event(self, user_id: str, event_id: str) -> Event:
        stmt = (
            select(Event)
            .join(Calendar, Event.calendar_id == Calendar.id)
            .where(Event.id == event_id, Calendar.user_id == user_id)
        )
        event = (await self.db.scalars(stmt)).one_or_none()
        if event is None:
            log.warning("Event %s not found for user %s", event_id, user_id)
            raise NotFoundOrForbidden()
        return event

    async def get_owned_calendar(self, user_id: str, calendar_id: str) -> Calendar | None:
        stmt = select(Calendar).where(Calendar.id == calendar_id, Calendar.user_id == user_id)
        return (await self.db.scalars(stmt)).one_or_none()

    async def get_default_calendar(self, user_id: str) -> Calendar | None:
        stmt = select(Calendar).where(Calendar.user_id == user_id, Calendar.is_default.is_(True))
        return (await self.db.scalars(stmt)).one_or_none()

    async def _resolve_calendar(self, user_id: str, calendar_id: str | None) -> Calendar:
        if calendar_id is None:
            calendar = await self.get_default_calendar(user_id)
            if calendar is None:
                log.error("Invariant violation: user %s has no default calendar", user_id)
                raise NoDefaultCalendar()
            return calendar
        calendar = await self.get_owned_calendar(user_id, calendar_id)
        if calendar is None:
            log.warning("Calendar %s does not belong to user %s", calendar_id, user_id)
            raise InvalidCalendar()
        return calendar

    async def _lock_user(self, user_id: str) -> None:
        # Serializes concurrent writers of one user; SQLite omits FOR UPDATE.
        await self.db.execute(select(User.id).where(User.id == user_id).with_for_update())

    @staticmethod
    def _validate_interval(start: datetime, end: datetime) -> None:
        if start >= end:
            raise InvalidInterval()

    def _validate_rule(self, rule_text: str | None, start: datetime) -> None:
        if rule_text is None:
            return
        try:
            self.engine.validate(rule_text, start)
        except RecurrenceRuleError as exc:
            raise InvalidRecurrenceRule(str(exc)) from exc

    async def _ensure_free(self, user_id: str, start: datetime, end: datetime, exclude_event_id: str | None = None) -> None:
        await self._lock_user(user_id)
        if await self.conflicts.has_conflict(user_id, start, end, exclude_event_id=exclude_event_id):
            log.warning("Rejecting booking for user %s: [%s, %s) overlaps", user_id, start.isoformat(), end.isoformat())
            raise OverlapConflict()

    # ------------------------------------------------------------------ #
    #                                Reads                               #
    # ------------------------------------------------------------------ #

    async def list_range(self, user_id: str, window_start: datetime, window_end: datetime) -> List[EventOut]:
        """
        Agenda of a user between two instants.

        Single events must lie entirely inside the window; recurring series
        contribute every occurrence whose start falls inside it. The result
        is sorted by effective start.
        """
        log.debug("Listing events for user %s between %s and %s", user_id, window_start, window_end)
        singles_stmt = (
            select(Event)
            .join(Calendar, Event.calendar_id == Calendar.id)
            .where(Calendar.user_id == user_id)
            .where(Event.recurrence_rule.is_(None))
            .where(Event.start_time >= window_start)
            .where(Event.end_time <= window_end)
            .order_by(Event.start_time, Event.id)
        )
        anchors_stmt = (
            select(Event)
            .join(Calendar, Event.calendar_id == Calendar.id)
            .where(Calendar.user_id == user_id)
            .where(Event.recurrence_rule.is_not(None))
            .where(Event.start_time <= window_end)
            .order_by(Event.start_time, Event.id)
        )
        singles = (await self.db.scalars(singles_stmt)).all()
        anchors = (await self.db.scalars(anchors_stmt)).all()

        items: List[EventOut] = [EventOut.from_event(event) for event in singles]
        for anchor in anchors:
            for occ in expand_series(
                self.engine, anchor.id, anchor.start_time, anchor.end_time,
                anchor.recurrence_rule, window_start, window_end,
            ):
                items.append(
                    EventOut.from_occurrence(anchor, str(OccurrenceId(anchor.id, occ.start)), occ.start, occ.end)
                )

        items.sort(key=lambda item: (item.start_time, item.id))
        log.debug(
            "Found %d items for user %s (%d single, %d series)",
            len(items), user_id, len(singles), len(anchors),
        )
        return items

    # ------------------------------------------------------------------ #
    #                             Event writes                           #
    # ------------------------------------------------------------------ #

    async def create(self, user_id: str, payload: EventIn) -> Event:
        calendar = await self._resolve_calendar(user_id, payload.calendar_id)
        self._validate_interval(payload.start_time, payload.end_time)
        self._validate_rule(payload.recurrence_rule, payload.start_time)
        await self._ensure_free(user_id, payload.start_time, payload.end_time)

        event = Event(
            calendar_id=calendar.id,
            title=payload.title,
            description=payload.description,
            start_time=payload.start_time,
            end_time=payload.end_time,
            recurrence_rule=payload.recurrence_rule,
            reminders=[Reminder(minutes_before=m) for m in payload.reminders or []],
        )
        self.db.add(event)
        await self.db.flush()
        log.info("Created event %s in calendar %s for user %s", event.id, calendar.id, user_id)
        return event

    async def update(self, user_id: str, event_ref: EventRef | str, payload: EventIn) -> Event:
        """
        Replace an event's schedule and details.

        ``description`` and ``recurrence_rule`` change only when the payload
        carries them; ``reminders`` replaces the whole set when given.
        """
        event = await self.get_owned_event(user_id, resolve_event_id(event_ref))
        fields = payload.model_fields_set
        self._validate_interval(payload.start_time, payload.end_time)
        rule = payload.recurrence_rule if "recurrence_rule" in fields else event.recurrence_rule
        self._validate_rule(rule, payload.start_time)

        calendar_id = event.calendar_id
        if payload.calendar_id is not None and payload.calendar_id != event.calendar_id:
            calendar_id = (await self._resolve_calendar(user_id, payload.calendar_id)).id

        await self._ensure_free(user_id, payload.start_time, payload.end_time, exclude_event_id=event.id)

        event.title = payload.title
        event.start_time = payload.start_time
        event.end_time = payload.end_time
        event.recurrence_rule = rule
        event.calendar_id = calendar_id
        if "description" in fields:
            event.description = payload.description
        if payload.reminders is not None:
            # delete-orphan cascade removes the previous rows on flush
            event.reminders = [Reminder(minutes_before=m) for m in payload.reminders]
        await self.db.flush()
        log.info("Updated event %s for user %s", event.id, user_id)
        return event

    async def delete(self, user_id: str, event_ref: EventRef | str) -> None:
        event = await self.get_owned_event(user_id, resolve_event_id(event_ref))
        await self.db.delete(event)
        await self.db.flush()
        log.info("Deleted event %s (recurring=%s) for user %s", event.id, event.is_recurring, user_id)

    # ------------------------------------------------------------------ #
    #                               Calendars                            #
    # ------------------------------------------------------------------ #

    async def create_default_calendar(self, user_id: str) -> Calendar:
        calendar = Calendar(user_id=user_id, name=settings.DEFAULT_CALENDAR_NAME, is_default=True)
        self.db.add(calendar)
        await self.db.flush()
        log.info("Created default calendar %s for user %s", calendar.id, user_id)
        return calendar

    async def list_calendars(self, user_id: str) -> Sequence[Calendar]:
        stmt = (
            select(Calendar)
            .where(Calendar.user_id == user_id)
            .order_by(Calendar.is_default.desc(), Calendar.created_at, Calendar.id)
        )
        return (await self.db.scalars(stmt)).all()

    async def create_calendar(self, user_id: str, name: str) -> Calendar:
        calendar = Calendar(user_id=user_id, name=name, is_default=False)
        self.db.add(calendar)
        await self.db.flush()
        log.info("Created calendar %s for user %s", calendar.id, user_id)
        return calendar

    async def delete_calendar(self, user_id: str, calendar_id: str) -> None:
        calendar = await self.db.get(Calendar, calendar_id)
        if calendar is None or calendar.user_id != user_id:
            log.warning("Calendar %s not found for user %s", calendar_id, user_id)
            raise NotFoundOrForbidden()
        if calendar.is_default:
            log.warning("User %s tried to delete default calendar %s", user_id, calendar_id)
            raise DefaultCalendarProtected()
        await self.db.delete(calendar)
        await self.db.flush()
        log.info("Deleted calendar %s with its events for user %s", calendar_id, user_id)


__all__ = ["EventStore"]
