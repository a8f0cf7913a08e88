"""
Cycle analysis: history statistics, next-period prediction, fertile window,
cycle phase and irregularity alerts.

All date arithmetic is done on calendar days in the ``PERIOD_TZ`` zone.
"""
from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel

from cycle.period_schema import PeriodRecord
from cycle.stats import (
    DEFAULT_CYCLE_LENGTH,
    MAX_CYCLE_INTERVALS,
    average_cycle_length,
    average_period_length,
    current_cycle_day,
    cycle_lengths,
    local_date,
    newest_first,
)

__all__ = [
    "AlertSeverity",
    "AlertType",
    "CyclePhase",
    "CycleStatistics",
    "FertileWindow",
    "IrregularityAlert",
    "PeriodPrediction",
    "analyze_history",
    "current_phase",
    "cycle_phase",
    "detect_irregularities",
    "fertile_window",
    "predict_next_period",
]

PHASE_PERIOD_DAYS = 5
LUTEAL_DAYS = 14
DEFAULT_PREDICTION_MARGIN = 3
DEFAULT_CONFIDENCE = 0.5
REGULARITY_THRESHOLD = 0.7

NORMAL_CYCLE_RANGE = (21, 35)
NORMAL_PERIOD_MAX = 7
HIGH_VARIANCE_DAYS = 7.0
MISSED_PERIOD_DAYS = 7


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    luteal = "luteal"

    @property
    def short_description(self) -> str:
        return {
            CyclePhase.menstrual: "Period time",
            CyclePhase.follicular: "Rising energy",
            CyclePhase.ovulation: "Peak energy",
            CyclePhase.luteal: "Winding down",
        }[self]


class CycleStatistics(BaseModel):
    average_cycle_length: float
    average_period_length: float
    cycle_length_variance: float
    shortest_cycle: int
    longest_cycle: int
    total_cycles_analyzed: int
    regularity_score: float

    @property
    def is_regular(self) -> bool:
        return self.regularity_score >= REGULARITY_THRESHOLD


class PeriodPrediction(BaseModel):
    predicted_start: date
    earliest: date
    latest: date
    confidence: float
    based_on_cycles: int
    days_until: int


class FertileWindow(BaseModel):
    start: date
    end: date
    ovulation_date: date
    peak_days: List[date]
    is_active: bool
    days_until_fertile: Optional[int] = None


class AlertSeverity(str, Enum):
    info = "info"
    mild = "mild"
    moderate = "moderate"
    concern = "concern"

    @property
    def rank(self) -> int:
        return list(AlertSeverity).index(self)


class AlertType(str, Enum):
    long_cycle = "long_cycle"
    short_cycle = "short_cycle"
    missed_period = "missed_period"
    high_variance = "high_variance"
    prolonged_period = "prolonged_period"


class IrregularityAlert(BaseModel):
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    recommendation: str
    detected_date: date


def _sample_variance(values: Sequence[float], mean: float) -> float:
    if len(values) < 2:
        return 0.0
    return sum((v - mean) ** 2 for v in values) / (len(values) - 1)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def analyze_history(records: Sequence[PeriodRecord]) -> Optional[CycleStatistics]:
    """Statistics over all completed cycles, or ``None`` with fewer than two periods."""
    lengths = cycle_lengths(records)
    if not lengths:
        return None

    mean = sum(lengths) / len(lengths)
    variance = _sample_variance(lengths, mean)
    cv = math.sqrt(variance) / mean if variance > 0 and mean > 0 else 0.0

    return CycleStatistics(
        average_cycle_length=mean,
        average_period_length=average_period_length(records),
        cycle_length_variance=variance,
        shortest_cycle=min(lengths),
        longest_cycle=max(lengths),
        total_cycles_analyzed=len(lengths),
        regularity_score=max(0.0, min(1.0, 1 - cv)),
    )


def _weighted_cycle_length(lengths: Sequence[int]) -> int:
    # most recent cycle gets the largest weight
    recent = list(lengths[:MAX_CYCLE_INTERVALS])
    weights = range(len(recent), 0, -1)
    total = sum(weights)
    return _round_half_up(sum(l * w for l, w in zip(recent, weights)) / total)


def predict_next_period(
    records: Sequence[PeriodRecord], now: datetime
) -> Optional[PeriodPrediction]:
    """Predict the next start from the latest period and a weighted cycle length."""
    if not records:
        return None
    start = local_date(newest_first(records)[0].start_date)
    lengths = cycle_lengths(records)

    if not lengths:
        length = DEFAULT_CYCLE_LENGTH
        margin = DEFAULT_PREDICTION_MARGIN
        confidence = DEFAULT_CONFIDENCE
    else:
        length = _weighted_cycle_length(lengths)
        history = analyze_history(records)
        margin = math.ceil(math.sqrt(history.cycle_length_variance) * 1.5)
        confidence = history.regularity_score

    predicted = start + timedelta(days=length)
    return PeriodPrediction(
        predicted_start=predicted,
        earliest=start + timedelta(days=length - margin),
        latest=start + timedelta(days=length + margin),
        confidence=round(confidence, 3),
        based_on_cycles=len(lengths),
        days_until=(predicted - local_date(now)).days,
    )


def fertile_window(
    records: Sequence[PeriodRecord],
    now: datetime,
    cycle_length: Optional[int] = None,
) -> Optional[FertileWindow]:
    """Estimated fertile days of the running cycle.

    Ovulation is placed ``LUTEAL_DAYS`` before the next expected start; the
    window runs from five days before ovulation to the day after.
    """
    if not records:
        return None
    length = cycle_length or average_cycle_length(records)
    start = local_date(newest_first(records)[0].start_date)
    ovulation = start + timedelta(days=length - LUTEAL_DAYS - 1)
    window_start = ovulation - timedelta(days=5)
    window_end = ovulation + timedelta(days=1)
    today = local_date(now)

    return FertileWindow(
        start=window_start,
        end=window_end,
        ovulation_date=ovulation,
        peak_days=[ovulation - timedelta(days=2), ovulation - timedelta(days=1), ovulation],
        is_active=window_start <= today <= window_end,
        days_until_fertile=(window_start - today).days if today < window_start else None,
    )


def cycle_phase(cycle_day: int, cycle_length: int = DEFAULT_CYCLE_LENGTH) -> CyclePhase:
    ovulation_day = cycle_length - LUTEAL_DAYS
    if cycle_day <= PHASE_PERIOD_DAYS:
        return CyclePhase.menstrual
    if cycle_day < ovulation_day - 1:
        return CyclePhase.follicular
    if cycle_day <= ovulation_day + 1:
        return CyclePhase.ovulation
    return CyclePhase.luteal


def current_phase(records: Sequence[PeriodRecord], now: datetime) -> CyclePhase:
    if not records:
        return CyclePhase.follicular
    return cycle_phase(current_cycle_day(records, now), average_cycle_length(records))


def _cycle_length_alerts(records: Sequence[PeriodRecord]) -> List[IrregularityAlert]:
    ordered = newest_first(records)
    low, high = NORMAL_CYCLE_RANGE
    alerts: List[IrregularityAlert] = []
    for index, length in enumerate(cycle_lengths(records)[:3]):
        cycle_start = local_date(ordered[index + 1].start_date)
        if length < low:
            alerts.append(IrregularityAlert(
                type=AlertType.short_cycle,
                severity=AlertSeverity.moderate if length < 18 else AlertSeverity.mild,
                title="Short Cycle Detected",
                message=f"Your cycle was {length} days, shorter than typical ({low}-{high} days).",
                recommendation=(
                    "Stress, travel or hormonal changes can shorten a cycle. "
                    "If it keeps happening, consider talking to a healthcare provider."
                ),
                detected_date=cycle_start,
            ))
        elif length > high:
            alerts.append(IrregularityAlert(
                type=AlertType.long_cycle,
                severity=AlertSeverity.moderate if length > 45 else AlertSeverity.mild,
                title="Long Cycle Detected",
                message=f"Your cycle was {length} days, longer than typical ({low}-{high} days).",
                recommendation=(
                    "Longer cycles can be normal. Stress, weight changes or exercise "
                    "can affect cycle length, so keep an eye out for patterns."
                ),
                detected_date=cycle_start,
            ))
    return alerts


def _missed_period_alert(
    records: Sequence[PeriodRecord], now: datetime
) -> Optional[IrregularityAlert]:
    latest = newest_first(records)[0]
    expected = local_date(latest.start_date) + timedelta(days=average_cycle_length(records))
    today = local_date(now)
    days_late = (today - expected).days
    if days_late <= MISSED_PERIOD_DAYS:
        return None
    return IrregularityAlert(
        type=AlertType.missed_period,
        severity=AlertSeverity.moderate if days_late > 14 else AlertSeverity.mild,
        title="Period May Be Late",
        message=f"Your period is about {days_late} days later than expected from your history.",
        recommendation=(
            "Late periods can follow stress or lifestyle changes. If this is unusual "
            "for you, consider a pregnancy test or a healthcare provider."
        ),
        detected_date=today,
    )


def _variance_alert(
    records: Sequence[PeriodRecord], now: datetime
) -> Optional[IrregularityAlert]:
    lengths = cycle_lengths(records)
    if len(lengths) < 3:
        return None
    recent = lengths[:MAX_CYCLE_INTERVALS]
    mean = sum(recent) / len(recent)
    std_dev = math.sqrt(sum((l - mean) ** 2 for l in recent) / len(recent))
    if std_dev <= HIGH_VARIANCE_DAYS:
        return None
    return IrregularityAlert(
        type=AlertType.high_variance,
        severity=AlertSeverity.moderate if std_dev > 10 else AlertSeverity.mild,
        title="Irregular Cycle Pattern",
        message=f"Your cycle lengths vary by about {int(std_dev)} days.",
        recommendation=(
            "Some variation is normal, but ongoing irregularity is worth "
            "discussing with a healthcare provider, especially if it is new."
        ),
        detected_date=local_date(now),
    )


def _prolonged_period_alerts(records: Sequence[PeriodRecord]) -> List[IrregularityAlert]:
    alerts: List[IrregularityAlert] = []
    for record in newest_first(records)[:2]:
        length = record.length_days
        if length is None or length <= NORMAL_PERIOD_MAX:
            continue
        alerts.append(IrregularityAlert(
            type=AlertType.prolonged_period,
            severity=AlertSeverity.moderate if length > 10 else AlertSeverity.mild,
            title="Longer Period Duration",
            message=f"Your period lasted {length} days, longer than typical (2-{NORMAL_PERIOD_MAX} days).",
            recommendation=(
                "An occasional longer period can be normal. If it is new or comes "
                "with heavy bleeding, consider a healthcare provider."
            ),
            detected_date=local_date(record.start_date),
        ))
    return alerts


def detect_irregularities(
    records: Sequence[PeriodRecord], now: datetime
) -> List[IrregularityAlert]:
    """All alerts for the history, most severe first."""
    if not records:
        return []
    alerts = _cycle_length_alerts(records)
    for alert in (_missed_period_alert(records, now), _variance_alert(records, now)):
        if alert is not None:
            alerts.append(alert)
    alerts.extend(_prolonged_period_alerts(records))
    alerts.sort(key=lambda a: a.severity.rank, reverse=True)
    return alerts
