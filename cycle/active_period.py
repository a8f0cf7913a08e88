"""
Pick the period record that "now" belongs to.
"""
from __future__ import annotations

import os
from datetime import datetime
from typing import Iterable, Optional, TypeVar
from zoneinfo import ZoneInfo

from cycle.period_schema import DEFAULT_FLOW, PeriodRecord, calendar_zone, to_utc

__all__ = ["RECENT_PERIOD_WINDOW", "find_active", "resolve_active"]

RECENT_PERIOD_WINDOW = int(os.getenv("PERIOD_RECENT_WINDOW", "15"))

T = TypeVar("T")


def _matches(candidate, now: datetime, tz: ZoneInfo) -> bool:
    start = to_utc(candidate.start_date)
    if start.astimezone(tz).date() == now.astimezone(tz).date():
        return True
    end = candidate.end_date
    return start <= now and (end is None or now <= to_utc(end))


def find_active(
    now: datetime,
    candidates: Iterable[T],
    limit: int = RECENT_PERIOD_WINDOW,
    tz: ZoneInfo | None = None,
) -> Optional[T]:
    """Return the first candidate ``now`` should be attributed to, or ``None``.

    Candidates are anything with ``start_date``/``end_date`` attributes
    (``PeriodRecord`` or ORM rows). Only the ``limit`` most recently started
    ones are considered, newest first; those without a start date are skipped.
    A candidate matches when it started on the same calendar day as ``now``
    (in ``tz``) or when ``now`` lies in ``[start, end]`` with an open end
    allowed. Overlaps resolve to the newest match.
    """
    tz = tz or calendar_zone()
    now = to_utc(now)

    dated = [c for c in candidates if getattr(c, "start_date", None) is not None]
    dated.sort(key=lambda c: to_utc(c.start_date), reverse=True)

    for candidate in dated[: max(limit, 0)]:
        if _matches(candidate, now, tz):
            return candidate
    return None


def resolve_active(
    now: datetime,
    candidates: Iterable[PeriodRecord],
    limit: int = RECENT_PERIOD_WINDOW,
    tz: ZoneInfo | None = None,
) -> PeriodRecord:
    """Like :func:`find_active`, but start a fresh unsaved record on a miss."""
    found = find_active(now, candidates, limit=limit, tz=tz)
    if found is not None:
        return found
    return PeriodRecord(start_date=now, end_date=None, flow=DEFAULT_FLOW, symptoms=None)
