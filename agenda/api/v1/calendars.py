# agenda/api/v1/calendars.py

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Response, status

from agenda.api.deps import get_scheduling_service, http_error
from agenda.core.auth.security import get_current_user, get_current_user_id
from agenda.core.calendars.schemas import CalendarIn, CalendarOut
from agenda.core.scheduling import SchedulingService

router = APIRouter(
    prefix="/v1/calendars",
    tags=["calendars"],
    dependencies=[Depends(get_current_user)],
)
log = logging.getLogger(__name__)


@router.get("", response_model=List[CalendarOut], summary="List my calendars")
async def list_calendars(
    user_id: str = Depends(get_current_user_id),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> List[CalendarOut]:
    try:
        return await svc.list_calendars(user_id)
    except Exception as e:
        raise http_error(e, "fetch_calendars") from e


@router.post("", response_model=CalendarOut, status_code=status.HTTP_201_CREATED, summary="Create a calendar")
async def create_calendar(
    payload: CalendarIn = Body(...),
    user_id: str = Depends(get_current_user_id),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> CalendarOut:
    try:
        return await svc.create_calendar(user_id, payload.name)
    except Exception as e:
        raise http_error(e, "create_calendar") from e


@router.delete(
    "/{calendar_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a non-default calendar with its events",
)
async def delete_calendar(
    calendar_id: str,
    user_id: str = Depends(get_current_user_id),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> Response:
    try:
        await svc.delete_calendar(user_id, calendar_id)
    except Exception as e:
        raise http_error(e, "delete_calendar") from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
