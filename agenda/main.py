from __future__ import annotations
import contextlib
import logging
from typing import AsyncIterator

from fastapi import FastAPI

from agenda.api.v1.auth import router as auth_router
from agenda.api.v1.calendars import router as calendars_router
from agenda.api.v1.events import router as events_router
from agenda.api.v1.health import router as health_router
from agenda.config import settings
from agenda.db.base import engine

logging.basicConfig(level=settings.LOG_LEVEL)
log = logging.getLogger(__name__)

description = """
Personal agenda backend: calendars, single and recurring events,
reminders and overlap checking for a single user's schedule.

Occurrences of a recurring series are virtual. They are listed with the
id `<anchorId>_<epochMillis>`; updating or deleting such an id acts on
the whole series.
"""
tags_metadata = [
    {"name": "Authentication", "description": "User registration and development login."},
    {"name": "events", "description": "Agenda listing and event CRUD with conflict checking."},
    {"name": "calendars", "description": "Calendar management. The default calendar is protected."},
    {"name": "infra", "description": "Liveness of the database and the broker."},
]


@contextlib.asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    log.info("\U0001F680 FastAPI application startup complete.")
    yield
    await engine.dispose()
    log.info("\U0001F44B FastAPI application shutdown.")


app = FastAPI(
    title="Agenda API",
    description=description,
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(auth_router)
app.include_router(events_router)
app.include_router(calendars_router)
app.include_router(health_router)

log.info("\U0001F331 FastAPI application configured. Environment: %s", settings.ENVIRONMENT)

