from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.calendars.schemas import EventIn
from agenda.core.scheduling import ConflictDetector, SchedulingService, intervals_overlap
from agenda.core.users.service import UsersService

UTC = timezone.utc


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


@pytest_asyncio.fixture
async def booked(db_session: AsyncSession):
    """u1 has 09:00-10:00 on Jan 1 and a weekly 14:00-15:00 series from Jan 1."""
    users = UsersService(db_session)
    await users.register_user("u1")
    await users.register_user("u2")
    await db_session.commit()

    svc = SchedulingService(db_session)
    single = await svc.create_event("u1", EventIn(title="Standup", start_time=at(1, 9), end_time=at(1, 10)))
    series = await svc.create_event(
        "u1", EventIn(title="Review", start_time=at(1, 14), end_time=at(1, 15), recurrence_rule="FREQ=WEEKLY")
    )
    return single, series


def test_intervals_overlap_is_half_open():
    assert intervals_overlap(at(1, 9), at(1, 10), at(1, 9, 30), at(1, 9, 45))
    assert intervals_overlap(at(1, 9), at(1, 10), at(1, 8), at(1, 11))
    assert not intervals_overlap(at(1, 9), at(1, 10), at(1, 10), at(1, 11))
    assert not intervals_overlap(at(1, 9), at(1, 10), at(1, 8), at(1, 9))


@pytest.mark.asyncio
async def test_overlap_with_stored_event(db_session: AsyncSession, booked):
    detector = ConflictDetector(db_session)
    assert await detector.has_conflict("u1", at(1, 9, 30), at(1, 9, 45))
    assert await detector.has_conflict("u1", at(1, 8, 30), at(1, 9, 1))


@pytest.mark.asyncio
async def test_back_to_back_is_free(db_session: AsyncSession, booked):
    detector = ConflictDetector(db_session)
    assert not await detector.has_conflict("u1", at(1, 10), at(1, 11))
    assert not await detector.has_conflict("u1", at(1, 8), at(1, 9))


@pytest.mark.asyncio
async def test_excluded_event_is_ignored(db_session: AsyncSession, booked):
    single, _ = booked
    detector = ConflictDetector(db_session)
    assert not await detector.has_conflict("u1", at(1, 9, 30), at(1, 9, 45), exclude_event_id=single.id)


@pytest.mark.asyncio
async def test_other_users_bookings_do_not_conflict(db_session: AsyncSession, booked):
    detector = ConflictDetector(db_session)
    assert not await detector.has_conflict("u2", at(1, 9, 30), at(1, 9, 45))


@pytest.mark.asyncio
async def test_series_occurrence_conflicts(db_session: AsyncSession, booked):
    detector = ConflictDetector(db_session)
    # Jan 15 14:30 is the third occurrence of the weekly series
    assert await detector.has_conflict("u1", at(15, 14, 30), at(15, 16))
    assert not await detector.has_conflict("u1", at(15, 15), at(15, 16))
    assert not await detector.has_conflict("u1", at(16, 14, 30), at(16, 16))


@pytest.mark.asyncio
async def test_occurrence_check_can_be_disabled(db_session: AsyncSession, booked):
    detector = ConflictDetector(db_session, check_occurrences=False)
    assert not await detector.has_conflict("u1", at(15, 14, 30), at(15, 16))
    # the anchor's own stored interval still counts
    assert await detector.has_conflict("u1", at(1, 14, 30), at(1, 16))
