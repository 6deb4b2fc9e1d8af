# agenda/core/recurrence/dateutil_engine.py

from __future__ import annotations

import logging
from datetime import datetime
from itertools import takewhile
from typing import Iterator

from dateutil.rrule import rruleset, rrulestr

from .base import SUPPORTED_FREQUENCIES, BaseRuleEngine, RecurrenceRuleError

log = logging.getLogger(__name__)

_RRULE_PREFIX = "RRULE:"


def _rule_body(text: str) -> str:
    body = text.strip().upper()
    if body.startswith(_RRULE_PREFIX):
        body = body[len(_RRULE_PREFIX):]
    return body


def _frequency(body: str) -> str | None:
    for part in body.split(";"):
        name, sep, value = part.partition("=")
        if sep and name.strip() == "FREQ":
            return value.strip()
    return None


class DateutilRuleEngine(BaseRuleEngine):
    """
    RFC 5545 RRULE engine backed by ``python-dateutil``.

    Only DAILY, WEEKLY and MONTHLY frequencies are accepted; any other rule
    part dateutil understands (INTERVAL, COUNT, UNTIL, BYDAY, ...) is honored.
    The anchor start is always the first instant, even when BYDAY or
    BYMONTHDAY would skip it; COUNT then applies to the rule instants only.
    """

    name: str = "dateutil"

    def parse(self, text: str, dtstart: datetime) -> rruleset:
        if not text or not text.strip():
            raise RecurrenceRuleError("Recurrence rule is empty")
        body = _rule_body(text)
        freq = _frequency(body)
        if freq not in SUPPORTED_FREQUENCIES:
            raise RecurrenceRuleError(
                f"Unsupported recurrence frequency: {freq!r} (expected one of {sorted(SUPPORTED_FREQUENCIES)})"
            )
        try:
            parsed = rrulestr(body, dtstart=dtstart, cache=False)
        except (ValueError, TypeError, KeyError) as exc:
            raise RecurrenceRuleError(f"Malformed recurrence rule {text!r}: {exc}") from exc
        series = rruleset(cache=False)
        series.rrule(parsed)
        series.rdate(dtstart)
        log.debug("Parsed recurrence rule %r seeded at %s", body, dtstart.isoformat())
        return series

    def between(self, rule: rruleset, window_start: datetime, window_end: datetime) -> Iterator[datetime]:
        return takewhile(lambda dt: dt <= window_end, rule.xafter(window_start, inc=True))


__all__ = ["DateutilRuleEngine"]
