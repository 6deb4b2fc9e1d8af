# agenda/core/recurrence/base.py
"""
Abstract rule-engine interface and the window expansion built on it.

A rule engine only knows how to parse rule text and walk its instants.
Everything the scheduler needs on top of that (anchoring, fixed duration,
inclusive window bounds) lives in :meth:`BaseRuleEngine.expand`, so each
engine stays small and swappable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterator, NamedTuple

from agenda.db.types import as_utc

SUPPORTED_FREQUENCIES: frozenset[str] = frozenset({"DAILY", "WEEKLY", "MONTHLY"})


class RecurrenceRuleError(ValueError):
    """Rule text could not be parsed or uses an unsupported frequency."""


class Occurrence(NamedTuple):
    start: datetime
    end: datetime


class BaseRuleEngine(ABC):
    """
    Recurrence rule grammar behind a two-method interface.
    """

    name: str

    @abstractmethod
    def parse(self, text: str, dtstart: datetime) -> Any:
        """
        Parse rule text seeded at ``dtstart``.

        Args:
            text (str): Rule text, e.g. ``"FREQ=WEEKLY"`` or ``"RRULE:FREQ=DAILY;COUNT=5"``.
            dtstart (datetime): Aware UTC start of the first occurrence.

        Returns:
            Any: Engine-specific rule object, only ever handed back to :meth:`between`.

        Raises:
            RecurrenceRuleError: Unparseable text or unsupported frequency.
        """
        ...

    @abstractmethod
    def between(self, rule: Any, window_start: datetime, window_end: datetime) -> Iterator[datetime]:
        """
        Lazily yield rule instants in ``[window_start, window_end]``, ascending.
        """
        ...

    def validate(self, text: str, dtstart: datetime) -> None:
        self.parse(text, as_utc(dtstart))

    def expand(
        self,
        anchor_start: datetime,
        anchor_end: datetime,
        rule_text: str,
        window_start: datetime,
        window_end: datetime,
    ) -> Iterator[Occurrence]:
        """
        Occurrences of a series whose start lies in the inclusive window.

        The first occurrence is the anchor itself and every occurrence keeps
        the anchor's duration. The rule is parsed before the first ``next()``
        so parse errors surface to the caller instead of mid-iteration.
        """
        anchor_start = as_utc(anchor_start)
        duration = as_utc(anchor_end) - anchor_start
        rule = self.parse(rule_text, anchor_start)
        return self._occurrences(rule, duration, as_utc(window_start), as_utc(window_end))

    def _occurrences(self, rule, duration, window_start, window_end) -> Iterator[Occurrence]:
        if window_start > window_end:
            return
        for start in self.between(rule, window_start, window_end):
            yield Occurrence(start, start + duration)


__all__ = [
    "SUPPORTED_FREQUENCIES",
    "RecurrenceRuleError",
    "Occurrence",
    "BaseRuleEngine",
]
