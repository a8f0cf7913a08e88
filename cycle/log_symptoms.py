from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from cycle.active_period import RECENT_PERIOD_WINDOW, find_active
from cycle.errors import EncodingRejected
from cycle.period_schema import DEFAULT_FLOW, PeriodRecord, to_utc
from cycle.symptom_codec import decode, encode_optional
from db.models import PeriodEntryORM
from db.repository import persist_errors, recent_periods, session_scope, to_record

logger = logging.getLogger(__name__)


def merge_symptoms(existing: Sequence[str], selected: Iterable[str]) -> List[str]:
    """Append names from ``selected`` that ``existing`` lacks, keeping order."""
    merged = list(existing)
    for name in selected:
        if name not in merged:
            merged.append(name)
    return merged


def log_symptoms(
    selected: Sequence[str],
    now: Optional[datetime] = None,
) -> PeriodRecord | None:
    """
    Attach ``selected`` symptom names to the period active at ``now``.

    The active period is looked up among the most recent entries and created
    (flow "Light", starting ``now``) when none qualifies. The whole update is
    one transaction.

    Returns:
        The saved record, or ``None`` when ``selected`` is empty.

    Raises:
        EncodingRejected: ``selected`` is a bare string or holds a non-string.
        CorruptEncoding: the period's stored symptoms cannot be decoded.
        PersistFailed: the store could not save; nothing was written.
    """
    if isinstance(selected, (str, bytes, bytearray)):
        raise EncodingRejected(
            f"expected a sequence of symptom names, got {type(selected).__name__}"
        )
    if not selected:
        return None
    now = to_utc(now or datetime.now(timezone.utc))

    with persist_errors("save symptoms"), session_scope() as db:
        period = find_active(now, recent_periods(db, RECENT_PERIOD_WINDOW))
        if period is None:
            period = PeriodEntryORM(start_date=now, flow=DEFAULT_FLOW)
            db.add(period)
            logger.info("No active period at %s; starting a new one", now.isoformat())

        existing = decode(period.symptoms) if period.symptoms is not None else []
        period.symptoms = encode_optional(merge_symptoms(existing, selected))
        db.flush()
        saved = to_record(period)

    logger.info("Logged %d symptom(s) on period %s", len(selected), saved.id)
    return saved
