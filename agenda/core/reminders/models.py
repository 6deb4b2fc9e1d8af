# agenda/core/reminders/models.py

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.base import Base


class Reminder(Base):
    """
    ORM model for event reminders.

    A reminder only records how many minutes before the event start a
    notification should fire. For a series anchor the same offset applies
    to every expanded occurrence.
    """
    __tablename__ = 'reminders'

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True
    )
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey('events.id', ondelete='CASCADE', name='fk_reminders_event_id'),
        index=True, nullable=False,
    )
    minutes_before: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint('minutes_before >= 0', name='ck_reminders_minutes_before_non_negative'),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Reminder id={self.id} event_id={self.event_id!r} minutes_before={self.minutes_before}>"
