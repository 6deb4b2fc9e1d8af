# agenda/core/scheduling/service.py

"""Service layer the API calls for every calendar and event operation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, List, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.calendars.schemas import CalendarOut, EventIn, EventOut
from agenda.core.recurrence import BaseRuleEngine, get_rule_engine

from .errors import SchedulingError, StoreFailure
from .store import EventStore

log = logging.getLogger(__name__)

T = TypeVar("T")


class SchedulingService:
    """
    Orchestrates the event store, conflict detector and recurrence expander.

    Every method takes the acting ``user_id``, which callers must take from
    the authenticated session and never from request input. Each write runs
    in one transaction: committed when the store call succeeds, rolled back
    on any failure.
    """

    def __init__(self, db_session: AsyncSession, rule_engine: BaseRuleEngine | None = None) -> None:
        """
        Args:
            db_session (AsyncSession): Active SQLAlchemy async session.
            rule_engine (BaseRuleEngine | None): Overrides the configured rule engine.
        """
        self.db: AsyncSession = db_session
        self.store = EventStore(db_session, rule_engine or get_rule_engine())

    async def _read(self, op: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except SQLAlchemyError as exc:
            log.exception("Store failure during %s", op)
            raise StoreFailure() from exc

    async def _write(self, op: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            result = await call()
            await self.db.commit()
            return result
        except SchedulingError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            log.exception("Store failure during %s, rolling back", op)
            await self.db.rollback()
            raise StoreFailure() from exc

    # ------------------------------------------------------------------ #
    #                                Events                              #
    # ------------------------------------------------------------------ #

    async def list_events(self, user_id: str, window_start: datetime, window_end: datetime) -> List[EventOut]:
        return await self._read(
            "list_events", lambda: self.store.list_range(user_id, window_start, window_end)
        )

    async def create_event(self, user_id: str, payload: EventIn) -> EventOut:
        log.info("User %s creating event '%s'", user_id, payload.title)
        event = await self._write("create_event", lambda: self.store.create(user_id, payload))
        return EventOut.from_event(event)

    async def update_event(self, user_id: str, event_id: str, payload: EventIn) -> EventOut:
        log.info("User %s updating event %s", user_id, event_id)
        event = await self._write("update_event", lambda: self.store.update(user_id, event_id, payload))
        return EventOut.from_event(event)

    async def delete_event(self, user_id: str, event_id: str) -> None:
        log.info("User %s deleting event %s", user_id, event_id)
        await self._write("delete_event", lambda: self.store.delete(user_id, event_id))

    # ------------------------------------------------------------------ #
    #                               Calendars                            #
    # ------------------------------------------------------------------ #

    async def list_calendars(self, user_id: str) -> List[CalendarOut]:
        calendars = await self._read("list_calendars", lambda: self.store.list_calendars(user_id))
        return [CalendarOut.model_validate(c) for c in calendars]

    async def create_calendar(self, user_id: str, name: str) -> CalendarOut:
        log.info("User %s creating calendar '%s'", user_id, name)
        calendar = await self._write("create_calendar", lambda: self.store.create_calendar(user_id, name))
        return CalendarOut.model_validate(calendar)

    async def delete_calendar(self, user_id: str, calendar_id: str) -> None:
        log.info("User %s deleting calendar %s", user_id, calendar_id)
        await self._write("delete_calendar", lambda: self.store.delete_calendar(user_id, calendar_id))


__all__ = ["SchedulingService"]
