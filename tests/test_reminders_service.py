from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.calendars.schemas import EventIn
from agenda.core.reminders.service import RemindersService
from agenda.core.scheduling import OccurrenceId, SchedulingService
from agenda.core.users.service import UsersService

UTC = timezone.utc
MINUTE = timedelta(minutes=1)


@pytest_asyncio.fixture
async def scheduled(db_session: AsyncSession):
    await UsersService(db_session).register_user("u1")
    await db_session.commit()
    svc = SchedulingService(db_session)
    single = await svc.create_event("u1", EventIn(
        title="Dentist",
        start_time=datetime(2024, 1, 1, 10, 0, tzinfo=UTC),
        end_time=datetime(2024, 1, 1, 11, 0, tzinfo=UTC),
        reminders=[15],
    ))
    series = await svc.create_event("u1", EventIn(
        title="Gym",
        start_time=datetime(2024, 1, 1, 7, 0, tzinfo=UTC),
        end_time=datetime(2024, 1, 1, 8, 0, tzinfo=UTC),
        recurrence_rule="FREQ=DAILY",
        reminders=[10, 60],
    ))
    await svc.create_event("u1", EventIn(
        title="No reminders",
        start_time=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
        end_time=datetime(2024, 1, 1, 13, 0, tzinfo=UTC),
    ))
    return single, series


@pytest.mark.asyncio
async def test_single_event_reminder_is_due(db_session: AsyncSession, scheduled):
    single, _ = scheduled
    now = datetime(2024, 1, 1, 9, 45, 30, tzinfo=UTC)

    due = await RemindersService(db_session).list_due(now, MINUTE)

    assert len(due) == 1
    assert due[0]["event_id"] == single.id
    assert due[0]["original_event_id"] is None
    assert due[0]["fire_at"] == datetime(2024, 1, 1, 9, 45, tzinfo=UTC)


@pytest.mark.asyncio
async def test_nothing_due_outside_window(db_session: AsyncSession, scheduled):
    now = datetime(2024, 1, 1, 9, 47, tzinfo=UTC)
    assert await RemindersService(db_session).list_due(now, MINUTE) == []


@pytest.mark.asyncio
async def test_series_occurrence_reminders(db_session: AsyncSession, scheduled):
    _, series = scheduled
    occurrence_start = datetime(2024, 1, 3, 7, 0, tzinfo=UTC)

    due = await RemindersService(db_session).list_due(datetime(2024, 1, 3, 6, 50, tzinfo=UTC), MINUTE)
    assert [(n["event_id"], n["minutes_before"]) for n in due] == [
        (str(OccurrenceId(series.id, occurrence_start)), 10),
    ]
    assert due[0]["original_event_id"] == series.id
    assert due[0]["start_time"] == occurrence_start

    due = await RemindersService(db_session).list_due(datetime(2024, 1, 3, 6, 0, tzinfo=UTC), MINUTE)
    assert [n["minutes_before"] for n in due] == [60]


@pytest.mark.asyncio
async def test_no_reminders_stored(db_session: AsyncSession):
    now = datetime(2024, 1, 1, tzinfo=UTC)
    assert await RemindersService(db_session).list_due(now, MINUTE) == []
