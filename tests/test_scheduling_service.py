from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.calendars.models import Calendar, Event
from agenda.core.calendars.schemas import EventIn
from agenda.core.reminders.models import Reminder
from agenda.core.scheduling import OccurrenceId, SchedulingService
from agenda.core.scheduling.errors import (
    DefaultCalendarProtected,
    InvalidCalendar,
    InvalidInterval,
    InvalidRecurrenceRule,
    NotFoundOrForbidden,
    OverlapConflict,
)
from agenda.core.users.service import UsersService
from agenda.db.base import async_session_context

UTC = timezone.utc
JAN_1 = datetime(2024, 1, 1, tzinfo=UTC)
JAN_22 = datetime(2024, 1, 22, tzinfo=UTC)


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


def event_in(title: str, start: datetime, end: datetime, **extra) -> EventIn:
    return EventIn(title=title, start_time=start, end_time=end, **extra)


@pytest_asyncio.fixture
async def svc(db_session: AsyncSession) -> SchedulingService:
    users = UsersService(db_session)
    await users.register_user("u1")
    await users.register_user("u2")
    await db_session.commit()
    return SchedulingService(db_session)


# ---- listing & recurrence ----

@pytest.mark.asyncio
async def test_weekly_series_lists_three_occurrences(svc: SchedulingService):
    anchor = await svc.create_event("u1", event_in("Sync", at(1, 9), at(1, 10), recurrence_rule="FREQ=WEEKLY"))

    items = await svc.list_events("u1", JAN_1, JAN_22)

    assert [i.start_time for i in items] == [at(1, 9), at(8, 9), at(15, 9)]
    assert all(i.end_time - i.start_time == timedelta(hours=1) for i in items)
    assert all(i.original_event_id == anchor.id for i in items)
    assert items[1].id == str(OccurrenceId(anchor.id, at(8, 9)))


@pytest.mark.asyncio
async def test_listing_merges_and_sorts(svc: SchedulingService):
    await svc.create_event("u1", event_in("Daily", at(1, 8), at(1, 8, 30), recurrence_rule="FREQ=DAILY"))
    single = await svc.create_event("u1", event_in("Lunch", at(2, 12), at(2, 13)))
    # partly outside the window
    await svc.create_event("u1", event_in("Late", at(3, 23), at(4, 1)))

    items = await svc.list_events("u1", at(2, 0), at(3, 23, 59))

    assert [i.title for i in items] == ["Daily", "Lunch", "Daily"]
    assert items[1].id == single.id
    assert items[1].original_event_id is None


@pytest.mark.asyncio
async def test_listing_is_scoped_to_user(svc: SchedulingService):
    await svc.create_event("u2", event_in("Secret", at(1, 9), at(1, 10)))
    assert await svc.list_events("u1", JAN_1, JAN_22) == []


@pytest.mark.asyncio
async def test_listing_skips_broken_series(svc: SchedulingService, db_session: AsyncSession):
    calendars = await svc.list_calendars("u1")
    db_session.add(Event(
        calendar_id=calendars[0].id, title="Broken", start_time=at(1, 7), end_time=at(1, 8),
        recurrence_rule="FREQ=FORTNIGHTLY",
    ))
    await db_session.commit()
    await svc.create_event("u1", event_in("Fine", at(2, 9), at(2, 10)))

    items = await svc.list_events("u1", JAN_1, JAN_22)
    assert [i.title for i in items] == ["Fine"]


# ---- create ----

@pytest.mark.asyncio
async def test_create_uses_default_calendar_and_reminders(svc: SchedulingService):
    default = (await svc.list_calendars("u1"))[0]
    created = await svc.create_event("u1", event_in("Call", at(1, 9), at(1, 10), reminders=[10, 5]))

    assert created.calendar_id == default.id
    assert sorted(r.minutes_before for r in created.reminders) == [5, 10]


@pytest.mark.asyncio
async def test_create_rejects_overlap(svc: SchedulingService):
    await svc.create_event("u1", event_in("Standup", at(1, 9), at(1, 10)))
    with pytest.raises(OverlapConflict):
        await svc.create_event("u1", event_in("Clash", at(1, 9, 30), at(1, 9, 45)))

    items = await svc.list_events("u1", JAN_1, JAN_22)
    assert [i.title for i in items] == ["Standup"]


@pytest.mark.asyncio
async def test_create_allows_back_to_back(svc: SchedulingService):
    await svc.create_event("u1", event_in("First", at(1, 9), at(1, 10)))
    await svc.create_event("u1", event_in("Second", at(1, 10), at(1, 11)))
    assert len(await svc.list_events("u1", JAN_1, JAN_22)) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("end", [at(1, 9), at(1, 8)])
async def test_create_rejects_empty_or_inverted_interval(svc: SchedulingService, end):
    with pytest.raises(InvalidInterval):
        await svc.create_event("u1", event_in("Bad", at(1, 9), end))


@pytest.mark.asyncio
async def test_create_rejects_unsupported_rule(svc: SchedulingService):
    with pytest.raises(InvalidRecurrenceRule):
        await svc.create_event("u1", event_in("Yearly", at(1, 9), at(1, 10), recurrence_rule="FREQ=YEARLY"))


@pytest.mark.asyncio
async def test_create_in_foreign_calendar_is_rejected(svc: SchedulingService):
    foreign = (await svc.list_calendars("u2"))[0]
    with pytest.raises(InvalidCalendar):
        await svc.create_event("u1", event_in("Sneaky", at(1, 9), at(1, 10), calendar_id=foreign.id))


# ---- update ----

@pytest.mark.asyncio
async def test_update_replaces_reminders(svc: SchedulingService):
    created = await svc.create_event("u1", event_in("Call", at(1, 9), at(1, 10), reminders=[10]))

    updated = await svc.update_event("u1", created.id, event_in("Call", at(1, 9), at(1, 10), reminders=[30, 60]))

    assert [r.minutes_before for r in updated.reminders] == [30, 60]
    async with async_session_context() as check:
        rows = (await check.scalars(select(Reminder.minutes_before).order_by(Reminder.minutes_before))).all()
    assert rows == [30, 60]


@pytest.mark.asyncio
async def test_update_keeps_omitted_fields(svc: SchedulingService):
    created = await svc.create_event(
        "u1", event_in("Call", at(1, 9), at(1, 10), description="notes", reminders=[10])
    )

    updated = await svc.update_event("u1", created.id, event_in("Call later", at(1, 11), at(1, 12)))

    assert updated.title == "Call later"
    assert updated.start_time == at(1, 11)
    assert updated.description == "notes"
    assert [r.minutes_before for r in updated.reminders] == [10]


@pytest.mark.asyncio
async def test_update_via_occurrence_id_changes_series(svc: SchedulingService):
    anchor = await svc.create_event("u1", event_in("Sync", at(1, 9), at(1, 10), recurrence_rule="FREQ=WEEKLY"))
    occurrence_id = str(OccurrenceId(anchor.id, at(8, 9)))

    updated = await svc.update_event("u1", occurrence_id, event_in("Sync v2", at(1, 9), at(1, 10)))

    assert updated.id == anchor.id
    assert updated.recurrence_rule == "FREQ=WEEKLY"
    items = await svc.list_events("u1", JAN_1, JAN_22)
    assert {i.title for i in items} == {"Sync v2"}


@pytest.mark.asyncio
async def test_update_rejects_overlap_and_keeps_event(svc: SchedulingService):
    await svc.create_event("u1", event_in("A", at(1, 9), at(1, 10)))
    b = await svc.create_event("u1", event_in("B", at(1, 11), at(1, 12)))

    with pytest.raises(OverlapConflict):
        await svc.update_event("u1", b.id, event_in("B", at(1, 9, 30), at(1, 10, 30)))

    async with async_session_context() as check:
        stored = await check.get(Event, b.id)
        assert stored.start_time == at(1, 11)


@pytest.mark.asyncio
async def test_update_to_foreign_calendar_is_rejected(svc: SchedulingService):
    created = await svc.create_event("u1", event_in("Call", at(1, 9), at(1, 10)))
    foreign = (await svc.list_calendars("u2"))[0]

    with pytest.raises(InvalidCalendar):
        await svc.update_event("u1", created.id, event_in("Call", at(1, 9), at(1, 10), calendar_id=foreign.id))


@pytest.mark.asyncio
async def test_update_moves_event_between_own_calendars(svc: SchedulingService):
    created = await svc.create_event("u1", event_in("Call", at(1, 9), at(1, 10)))
    work = await svc.create_calendar("u1", "Work")

    updated = await svc.update_event("u1", created.id, event_in("Call", at(1, 9), at(1, 10), calendar_id=work.id))
    assert updated.calendar_id == work.id


@pytest.mark.asyncio
async def test_update_of_foreign_event_is_not_found(svc: SchedulingService):
    theirs = await svc.create_event("u2", event_in("Theirs", at(1, 9), at(1, 10)))
    with pytest.raises(NotFoundOrForbidden):
        await svc.update_event("u1", theirs.id, event_in("Mine now", at(1, 9), at(1, 10)))


# ---- delete ----

@pytest.mark.asyncio
async def test_delete_via_occurrence_id_removes_series(svc: SchedulingService):
    anchor = await svc.create_event(
        "u1", event_in("Sync", at(1, 9), at(1, 10), recurrence_rule="FREQ=WEEKLY", reminders=[5])
    )
    items = await svc.list_events("u1", JAN_1, JAN_22)
    assert len(items) == 3

    await svc.delete_event("u1", items[2].id)

    assert await svc.list_events("u1", JAN_1, JAN_22) == []
    async with async_session_context() as check:
        assert await check.get(Event, anchor.id) is None
        assert await check.scalar(select(func.count(Reminder.id))) == 0


@pytest.mark.asyncio
async def test_delete_of_foreign_or_missing_event(svc: SchedulingService):
    theirs = await svc.create_event("u2", event_in("Theirs", at(1, 9), at(1, 10)))
    with pytest.raises(NotFoundOrForbidden):
        await svc.delete_event("u1", theirs.id)
    with pytest.raises(NotFoundOrForbidden):
        await svc.delete_event("u1", "does-not-exist")
    for raw in ("abc_1000000000000000", "abc_99999999999999999999", "abc_²"):
        with pytest.raises(NotFoundOrForbidden):
            await svc.delete_event("u1", raw)
        with pytest.raises(NotFoundOrForbidden):
            await svc.update_event("u1", raw, event_in("Ghost", at(1, 9), at(1, 10)))
    assert len(await svc.list_events("u2", JAN_1, JAN_22)) == 1


# ---- calendars ----

@pytest.mark.asyncio
async def test_calendars_list_default_first(svc: SchedulingService):
    await svc.create_calendar("u1", "Work")
    calendars = await svc.list_calendars("u1")

    assert [c.is_default for c in calendars] == [True, False]
    assert calendars[0].name == "My Calendar"
    assert calendars[1].name == "Work"


@pytest.mark.asyncio
async def test_default_calendar_cannot_be_deleted(svc: SchedulingService):
    default = (await svc.list_calendars("u1"))[0]
    with pytest.raises(DefaultCalendarProtected):
        await svc.delete_calendar("u1", default.id)


@pytest.mark.asyncio
async def test_foreign_calendar_cannot_be_deleted(svc: SchedulingService):
    theirs = await svc.create_calendar("u2", "Theirs")
    with pytest.raises(NotFoundOrForbidden):
        await svc.delete_calendar("u1", theirs.id)
    with pytest.raises(NotFoundOrForbidden):
        await svc.delete_calendar("u1", "missing")


@pytest.mark.asyncio
async def test_deleting_calendar_removes_its_events(svc: SchedulingService):
    work = await svc.create_calendar("u1", "Work")
    await svc.create_event("u1", event_in("In work", at(1, 9), at(1, 10), calendar_id=work.id, reminders=[15]))
    await svc.create_event("u1", event_in("In default", at(1, 11), at(1, 12)))

    await svc.delete_calendar("u1", work.id)

    items = await svc.list_events("u1", JAN_1, JAN_22)
    assert [i.title for i in items] == ["In default"]
    async with async_session_context() as check:
        assert await check.get(Calendar, work.id) is None
        assert await check.scalar(select(func.count(Reminder.id))) == 0


@pytest.mark.asyncio
async def test_listing_shows_anchor_skipped_by_byday(svc: SchedulingService):
    # Monday anchor, Tuesday rule: the booked Monday slot stays visible
    anchor = await svc.create_event(
        "u1", event_in("Class", at(1, 9), at(1, 10), recurrence_rule="FREQ=WEEKLY;BYDAY=TU")
    )

    items = await svc.list_events("u1", JAN_1, at(10, 0))

    assert [i.start_time for i in items] == [at(1, 9), at(2, 9), at(9, 9)]
    assert items[0].id == str(OccurrenceId(anchor.id, at(1, 9)))
    with pytest.raises(OverlapConflict):
        await svc.create_event("u1", event_in("Clash", at(1, 9, 30), at(1, 9, 45)))
