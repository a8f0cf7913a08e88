"""
Data export: a JSON document of every tracked period and a plain-text
summary suitable for sharing.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from pydantic import BaseModel

from cycle import __version__
from cycle.period_schema import PeriodRecord, calendar_zone, to_utc
from cycle.stats import (
    average_cycle_length,
    average_period_length,
    cycle_lengths,
    days_until_next_period,
    local_date,
    newest_first,
)


class ExportPeriod(BaseModel):
    id: str
    start_date: datetime
    end_date: Optional[datetime] = None
    flow: str
    mood: Optional[str] = None
    symptoms: List[str] = []
    length_days: Optional[int] = None
    cycle_length: Optional[int] = None
    is_active: bool = False


class ExportStatistics(BaseModel):
    periods_tracked: int
    cycles_tracked: int
    average_cycle_length: int
    average_period_length: float


class ExportData(BaseModel):
    export_date: datetime
    app_version: str
    periods: List[ExportPeriod]
    statistics: ExportStatistics


def export_data(records: Sequence[PeriodRecord], now: datetime) -> ExportData:
    """Build the export document, newest period first.

    ``cycle_length`` is the number of days until the next period started and
    stays ``None`` for the running cycle.
    """
    ordered = newest_first(records)
    lengths = cycle_lengths(ordered)
    periods = [
        ExportPeriod(
            id=r.id,
            start_date=r.start_date,
            end_date=r.end_date,
            flow=r.flow,
            mood=r.mood,
            symptoms=r.symptoms or [],
            length_days=r.length_days,
            cycle_length=lengths[i - 1] if i > 0 else None,
            is_active=i == 0,
        )
        for i, r in enumerate(ordered)
    ]
    return ExportData(
        export_date=to_utc(now),
        app_version=__version__,
        periods=periods,
        statistics=ExportStatistics(
            periods_tracked=len(ordered),
            cycles_tracked=len(lengths),
            average_cycle_length=average_cycle_length(ordered),
            average_period_length=round(average_period_length(ordered), 1),
        ),
    )


def export_json(records: Sequence[PeriodRecord], now: datetime) -> str:
    return export_data(records, now).model_dump_json(indent=2)


def export_filename(now: datetime) -> str:
    return f"PeriodTrack_Export_{local_date(now).isoformat()}.json"


def generate_summary(records: Sequence[PeriodRecord], now: datetime) -> str:
    """Short human-readable overview of the tracked history."""
    lines = [
        "PeriodTrack Summary",
        "===================",
        "",
        f"Average Cycle: {average_cycle_length(records)} days",
        f"Average Period: {average_period_length(records):.1f} days",
        f"Cycles Tracked: {len(cycle_lengths(records))}",
        "",
    ]

    if records:
        latest = newest_first(records)[0]
        next_start = local_date(latest.start_date) + timedelta(days=average_cycle_length(records))
        lines.append(f"Next Period: {next_start.strftime('%b %d, %Y')}")
        days = days_until_next_period(records, now)
        if days > 0:
            lines.append(f"(in {days} days)")
        lines.append("")

    generated = to_utc(now).astimezone(calendar_zone())
    lines.append(f"Generated: {generated.strftime('%Y-%m-%d %H:%M %Z')}")
    return "\n".join(lines)
