# agenda/core/scheduling/errors.py
"""
Domain failures of the scheduling core.

Each error carries the HTTP status it maps to and a client-safe ``detail``;
routers turn them into ``HTTPException`` without inspecting storage errors.
"""

from __future__ import annotations

from fastapi import status


class SchedulingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Scheduling request rejected"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidInterval(SchedulingError):
    detail = "Start time must be before end time"


class InvalidRecurrenceRule(SchedulingError):
    detail = "Recurrence rule is invalid"


class OverlapConflict(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Event overlaps with an existing event"


class NoDefaultCalendar(SchedulingError):
    # Unreachable while the one-default-calendar invariant holds.
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "User has no default calendar"


class InvalidCalendar(SchedulingError):
    detail = "Invalid calendar"


class DefaultCalendarProtected(SchedulingError):
    detail = "Cannot delete default calendar"


class NotFoundOrForbidden(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found or access denied"


class StoreFailure(SchedulingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Storage is unavailable"


class UserAlreadyExists(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    detail = "User already exists"


__all__ = [
    "SchedulingError",
    "InvalidInterval",
    "InvalidRecurrenceRule",
    "OverlapConflict",
    "NoDefaultCalendar",
    "InvalidCalendar",
    "DefaultCalendarProtected",
    "NotFoundOrForbidden",
    "StoreFailure",
    "UserAlreadyExists",
]
