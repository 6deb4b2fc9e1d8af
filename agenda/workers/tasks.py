# agenda/workers/tasks.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from celery import Celery
from celery.utils.log import get_task_logger
from sqlalchemy.exc import SQLAlchemyError

from agenda.config import settings
from agenda.core.reminders.service import ReminderNotice, RemindersService
from agenda.db.base import async_session_context

log = get_task_logger(__name__)

celery_app = Celery(
    "agenda",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=['agenda.workers.tasks'],
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
)
celery_app.conf.update(
    task_track_started=True,
    timezone='UTC',
    enable_utc=True,
    broker_connection_retry_on_startup=True,
)
celery_app.conf.beat_schedule = {
    "dispatch-due-reminders": {
        "task": "agenda.workers.tasks.dispatch_due_reminders",
        "schedule": float(settings.REMINDER_POLL_INTERVAL_SECONDS),
    },
}


def _serialize(notice: ReminderNotice) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(notice)
    out["start_time"] = notice["start_time"].isoformat()
    out["fire_at"] = notice["fire_at"].isoformat()
    return out


async def _run_dispatch_logic(now: datetime, window: timedelta) -> List[Dict[str, Any]]:
    async with async_session_context() as session:
        notices = await RemindersService(session).list_due(now, window)

    for notice in notices:
        log.info(
            "Reminder due: user=%s event=%s '%s' starts %s (%d min before)",
            notice["user_id"], notice["event_id"], notice["title"],
            notice["start_time"].isoformat(), notice["minutes_before"],
        )
    return [_serialize(n) for n in notices]


@celery_app.task(
    name="agenda.workers.tasks.dispatch_due_reminders",
    ignore_result=False,
    autoretry_for=(SQLAlchemyError,),
    retry_backoff=True,
    max_retries=3,
)
def dispatch_due_reminders(now_iso: str | None = None, window_seconds: int | None = None) -> List[Dict[str, Any]]:
    """
    Collect reminders whose fire instant fell inside the last polling window.

    Args:
        now_iso (str | None): Override for the current instant (ISO 8601), used for replays.
        window_seconds (int | None): Window length; defaults to the beat interval.

    Returns:
        List[Dict[str, Any]]: JSON-serializable notices for the delivery collaborator.
    """
    now = datetime.fromisoformat(now_iso) if now_iso else datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window = timedelta(seconds=window_seconds or settings.REMINDER_POLL_INTERVAL_SECONDS)
    log.info("Dispatching reminders due in the %ss before %s", int(window.total_seconds()), now.isoformat())
    return asyncio.run(_run_dispatch_logic(now, window))
