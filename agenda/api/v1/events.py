# agenda/api/v1/events.py

from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Body, Depends, Query, Response, status

from agenda.api.deps import get_scheduling_service, http_error
from agenda.core.auth.security import get_current_user, get_current_user_id
from agenda.core.calendars.schemas import EventIn, EventOut
from agenda.core.scheduling import SchedulingService
from agenda.db.types import as_utc

router = APIRouter(
    prefix="/v1/events",
    tags=["events"],
    dependencies=[Depends(get_current_user)],
)
log = logging.getLogger(__name__)


@router.get(
    "",
    response_model=List[EventOut],
    summary="List my agenda",
    description="Single events inside the window plus every occurrence of recurring series starting inside it, sorted by start.",
)
async def list_events(
    start: datetime = Query(..., description="Window start (ISO 8601)"),
    end: datetime = Query(..., description="Window end (ISO 8601, inclusive)"),
    user_id: str = Depends(get_current_user_id),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> List[EventOut]:
    log.info("API: user '%s' listing events %s .. %s", user_id, start, end)
    try:
        return await svc.list_events(user_id, as_utc(start), as_utc(end))
    except Exception as e:
        raise http_error(e, "fetch_events") from e


@router.post(
    "",
    response_model=EventOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
    responses={409: {"description": "Scheduling conflict"}},
)
async def create_event(
    payload: EventIn = Body(...),
    user_id: str = Depends(get_current_user_id),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> EventOut:
    try:
        return await svc.create_event(user_id, payload)
    except Exception as e:
        raise http_error(e, "create_event") from e


@router.put(
    "/{event_id}",
    response_model=EventOut,
    summary="Update an event or a whole series",
    description="An occurrence id ('<anchorId>_<epochMillis>') updates the series anchor.",
    responses={409: {"description": "Scheduling conflict"}},
)
async def update_event(
    event_id: str,
    payload: EventIn = Body(...),
    user_id: str = Depends(get_current_user_id),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> EventOut:
    try:
        return await svc.update_event(user_id, event_id, payload)
    except Exception as e:
        raise http_error(e, "update_event") from e


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an event or a whole series",
)
async def delete_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    svc: SchedulingService = Depends(get_scheduling_service),
) -> Response:
    try:
        await svc.delete_event(user_id, event_id)
    except Exception as e:
        raise http_error(e, "delete_event") from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
