"""
Recurrence subsystem package.

• ``BaseRuleEngine`` – abstract rule grammar (``parse`` / ``between``) plus
  window expansion (see base.py).
• ``get_rule_engine()`` – factory returning the engine named explicitly or
  by ``settings.RECURRENCE_ENGINE``.
• ``expand_series()`` – fail-soft expansion of one stored series: a broken
  rule is logged and yields no occurrences instead of failing the caller.
"""
from __future__ import annotations

import importlib
import logging
from datetime import datetime
from typing import Dict, List, Type

from agenda.config import settings
from .base import (  # noqa: F401 (re-exported in __all__)
    SUPPORTED_FREQUENCIES,
    BaseRuleEngine,
    Occurrence,
    RecurrenceRuleError,
)

log = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
#                       helpers: lazy-import specific engine                  #
# --------------------------------------------------------------------------- #
def _lazy_import(module_suffix: str, class_name: str) -> Type[BaseRuleEngine]:
    """
    _lazy_import(".dateutil_engine", "DateutilRuleEngine")  →  <class DateutilRuleEngine>
    """
    module = importlib.import_module(f"{__name__}{module_suffix}", package=__name__)
    return getattr(module, class_name)


_ENGINE_CLASSES: Dict[str, Type[BaseRuleEngine]] = {
    "dateutil": _lazy_import(".dateutil_engine", "DateutilRuleEngine"),
}


# --------------------------------------------------------------------------- #
#                                 public API                                  #
# --------------------------------------------------------------------------- #
def get_rule_engine(name: str | None = None) -> BaseRuleEngine:
    """
    Return a rule engine instance.

    • ``name`` – explicit engine name (case-insensitive).
    • Otherwise ``settings.RECURRENCE_ENGINE`` is used.
    """
    engine_key = (name or settings.RECURRENCE_ENGINE).lower()
    try:
        engine_cls = _ENGINE_CLASSES[engine_key]
    except KeyError as exc:
        raise ValueError(f"Unknown recurrence engine: {engine_key}") from exc
    return engine_cls()


def expand_series(
    engine: BaseRuleEngine,
    anchor_id: str,
    anchor_start: datetime,
    anchor_end: datetime,
    rule_text: str,
    window_start: datetime,
    window_end: datetime,
) -> List[Occurrence]:
    """
    Materialize one series inside the window, isolating rule failures.

    Returns an empty list when the stored rule cannot be parsed or expanded;
    the failure is logged with the anchor id so it can be fixed at the source.
    """
    try:
        return list(engine.expand(anchor_start, anchor_end, rule_text, window_start, window_end))
    except (RecurrenceRuleError, ValueError, TypeError) as exc:
        log.warning(
            "Skipping series %s: recurrence rule %r could not be expanded (%s)",
            anchor_id, rule_text, exc,
        )
        return []


__all__: list[str] = [
    "SUPPORTED_FREQUENCIES",
    "BaseRuleEngine",
    "Occurrence",
    "RecurrenceRuleError",
    "get_rule_engine",
    "expand_series",
]
