# agenda/core/calendars/schemas.py
"""
Pydantic schemas for calendars and events.

Used in:
    * agenda/api/v1/events.py       ― request/response bodies
    * agenda/api/v1/calendars.py    ― request/response bodies
    * agenda/core/scheduling/*      ― service input and listing output

Field names are snake_case in Python and camelCase on the wire; both
spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from agenda.db.types import as_utc


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class EventIn(_CamelModel):
    """Create/update payload for an event."""

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    start_time: datetime = Field(..., description="Start instant (ISO 8601; naive values are UTC)")
    end_time: datetime = Field(..., description="End instant (ISO 8601; naive values are UTC)")
    description: str | None = Field(None, description="Free-form description")
    recurrence_rule: str | None = Field(
        None, description="Repeat rule, e.g. FREQ=DAILY, FREQ=WEEKLY or FREQ=MONTHLY"
    )
    calendar_id: str | None = Field(None, description="Target calendar; the default calendar when omitted")
    reminders: List[Annotated[int, Field(ge=0)]] | None = Field(
        None, description="Reminder offsets in minutes before the start"
    )

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_utc(cls, value: datetime) -> datetime:
        # Recurrence instants have second precision.
        return as_utc(value).replace(microsecond=0)

    @field_validator("recurrence_rule")
    @classmethod
    def _blank_rule_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class ReminderOut(_CamelModel):
    id: int
    minutes_before: int


class EventOut(_CamelModel):
    """A stored event or a virtual occurrence of a recurring series."""

    id: str = Field(..., description="Event id, or '<anchorId>_<epochMillis>' for an occurrence")
    calendar_id: str
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    recurrence_rule: str | None = None
    original_event_id: str | None = Field(None, description="Series anchor id for occurrences")
    reminders: List[ReminderOut] = Field(default_factory=list)

    @classmethod
    def from_event(cls, event) -> "EventOut":
        return cls(
            id=event.id,
            calendar_id=event.calendar_id,
            title=event.title,
            description=event.description,
            start_time=event.start_time,
            end_time=event.end_time,
            recurrence_rule=event.recurrence_rule,
            reminders=[ReminderOut.model_validate(r) for r in event.reminders],
        )

    @classmethod
    def from_occurrence(cls, event, occurrence_id: str, start: datetime, end: datetime) -> "EventOut":
        out = cls.from_event(event)
        out.id = occurrence_id
        out.start_time = start
        out.end_time = end
        out.original_event_id = event.id
        return out


class CalendarIn(_CamelModel):
    name: str = Field(..., min_length=1, max_length=128, description="Calendar display name")


class CalendarOut(_CamelModel):
    id: str
    name: str
    is_default: bool


__all__: list[str] = ["EventIn", "EventOut", "ReminderOut", "CalendarIn", "CalendarOut"]
