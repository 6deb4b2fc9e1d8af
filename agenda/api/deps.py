# agenda/api/deps.py

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.scheduling import SchedulingError, SchedulingService
from agenda.db.base import get_async_db_session

log = logging.getLogger(__name__)


def get_scheduling_service(db: AsyncSession = Depends(get_async_db_session)) -> SchedulingService:
    return SchedulingService(db)


def http_error(exc: Exception, op: str) -> HTTPException:
    """
    Translate a failure of ``op`` into the HTTP error reported to the client.

    Domain errors keep their own status and message; anything else is
    logged with its traceback and reported as a generic 500.
    """
    if isinstance(exc, SchedulingError):
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            log.error("API: %s failed: %s", op, exc.detail)
        return HTTPException(status_code=exc.status_code, detail=exc.detail)
    log.exception("API: unexpected error during %s", op, exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {op.replace('_', ' ')}",
    )
