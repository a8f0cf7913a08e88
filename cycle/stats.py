from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from cycle.period_schema import PeriodRecord, calendar_zone, to_utc

DEFAULT_CYCLE_LENGTH = 28
DEFAULT_PERIOD_LENGTH = 5.0
MAX_CYCLE_INTERVALS = 6


def newest_first(records: Sequence[PeriodRecord]) -> List[PeriodRecord]:
    return sorted(records, key=lambda r: r.start_date, reverse=True)


def local_date(dt: datetime) -> date:
    """Calendar date of ``dt`` in the configured zone."""
    return to_utc(dt).astimezone(calendar_zone()).date()


def days_between(earlier: datetime, later: datetime) -> int:
    return (local_date(later) - local_date(earlier)).days


def cycle_lengths(records: Sequence[PeriodRecord]) -> List[int]:
    """Days between consecutive starts, most recent cycle first."""
    starts = [r.start_date for r in newest_first(records)]
    return [days_between(starts[i + 1], starts[i]) for i in range(len(starts) - 1)]


def average_cycle_length(records: Sequence[PeriodRecord]) -> int:
    """Mean days between consecutive starts over the last few cycles."""
    if len(records) < 2:
        return DEFAULT_CYCLE_LENGTH
    diffs = cycle_lengths(records)[:MAX_CYCLE_INTERVALS]
    return sum(diffs) // len(diffs)


def average_period_length(records: Sequence[PeriodRecord]) -> float:
    lengths = [r.length_days for r in records if r.length_days is not None]
    if not lengths:
        return DEFAULT_PERIOD_LENGTH
    return sum(lengths) / len(lengths)


def current_period(records: Sequence[PeriodRecord]) -> Optional[PeriodRecord]:
    """Most recently started period that has not ended."""
    for record in newest_first(records):
        if record.is_ongoing:
            return record
    return None


def current_cycle_day(records: Sequence[PeriodRecord], now: datetime) -> int:
    """Day of the running cycle; keeps counting past the average when late."""
    if not records:
        return 1
    latest = newest_first(records)[0]
    return max(1, days_between(latest.start_date, now) + 1)


def days_until_next_period(records: Sequence[PeriodRecord], now: datetime) -> int:
    avg = average_cycle_length(records)
    if not records:
        return avg
    latest = newest_first(records)[0]
    return max(0, avg - days_between(latest.start_date, now))


def summarize(records: Sequence[PeriodRecord], now: datetime) -> Dict[str, Any]:
    """Cycle overview for the API."""
    ongoing = current_period(records)
    return {
        "periods_tracked": len(records),
        "average_cycle_length": average_cycle_length(records),
        "average_period_length": round(average_period_length(records), 1),
        "current_cycle_day": current_cycle_day(records, now),
        "days_until_next_period": days_until_next_period(records, now),
        "current_period_id": ongoing.id if ongoing else None,
    }
