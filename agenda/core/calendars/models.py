# agenda/core/calendars/models.py
"""
ORM models for calendars and the events they hold.

A calendar belongs to exactly one user; an event belongs to exactly one
calendar. Every user owns exactly one calendar with ``is_default`` set,
which the partial unique index below backs up at the database level.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agenda.db.base import Base
from agenda.db.types import UTCDateTime, utcnow
from agenda.core.reminders.models import Reminder


def _new_id() -> str:
    return str(uuid.uuid4())


class Calendar(Base):
    __tablename__ = 'calendars'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey('users.id', ondelete='CASCADE', name='fk_calendars_user_id'),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    # Loaded on demand by AsyncSession.delete() so the ORM cascade reaches reminders.
    events: Mapped[List["Event"]] = relationship(cascade="all, delete-orphan")

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Calendar id={self.id!r} user_id={self.user_id!r} default={self.is_default}>"


Index(
    'uq_calendars_one_default_per_user',
    Calendar.user_id,
    unique=True,
    sqlite_where=Calendar.is_default,
    postgresql_where=Calendar.is_default,
)


class Event(Base):
    __tablename__ = 'events'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    calendar_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('calendars.id', ondelete='CASCADE', name='fk_events_calendar_id'),
        nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    # RRULE text; a non-null value makes this event a series anchor.
    recurrence_rule: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    reminders: Mapped[List[Reminder]] = relationship(
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=Reminder.minutes_before,
    )

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_rule is not None

    @property
    def duration(self):
        return self.end_time - self.start_time

    def __repr__(self) -> str:  # pragma: no cover
        start_str = self.start_time.strftime('%Y-%m-%dT%H:%M:%S')
        return f"<Event id={self.id!r} calendar_id={self.calendar_id!r} start='{start_str}' recurring={self.is_recurring}>"
