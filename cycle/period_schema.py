from __future__ import annotations

import logging
import os
import re
from datetime import datetime, time, timedelta
from enum import Enum
from typing import List, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.parser import ParserError, parse
from pydantic import BaseModel, Field, field_validator, model_validator

__all__ = [
    "DEFAULT_FLOW",
    "FlowIntensity",
    "PeriodRecord",
    "SymptomType",
    "calendar_zone",
    "natural_language_to_datetime",
    "to_utc",
]


class FlowIntensity(str, Enum):
    """Flow labels offered to the user."""

    none = "None"
    spotting = "Spotting"
    light = "Light"
    medium = "Medium"
    heavy = "Heavy"

    @classmethod
    def _missing_(cls, value: object) -> "FlowIntensity":
        if not isinstance(value, str):
            raise ValueError(f"Unknown flow: {value}")
        val = value.strip().lower()
        synonyms = {
            "spot": "Spotting",
            "med": "Medium",
            "moderate": "Medium",
        }
        if val in synonyms:
            return cls(synonyms[val])
        for member in cls:
            if member.value.lower() == val:
                return member
        return super()._missing_(value)


class SymptomType(str, Enum):
    """Known symptom names. Stored lists may hold names outside this set."""

    cramps = "Cramps"
    bloating = "Bloating"
    headache = "Headache"
    back_pain = "Back Pain"
    breast_tenderness = "Breast Tenderness"
    nausea = "Nausea"
    fatigue = "Fatigue"
    acne = "Acne"
    appetite_changes = "Appetite Changes"
    cravings = "Cravings"
    dizziness = "Dizziness"
    hot_flashes = "Hot Flashes"
    insomnia = "Insomnia"
    joint_pain = "Joint Pain"
    muscle_aches = "Muscle Aches"
    mood_swings = "Mood Swings"
    anxiety = "Anxiety"
    irritability = "Irritability"
    depression = "Depression"
    brain_fog = "Brain Fog"
    crying = "Crying"
    constipation = "Constipation"
    diarrhea = "Diarrhea"


DEFAULT_FLOW = FlowIntensity.light.value

_DEF_TZ = ZoneInfo("UTC")

logger = logging.getLogger(__name__)

_warned_zones: set[str] = set()


def calendar_zone() -> ZoneInfo:
    """Zone used to decide what "today" means, from ``PERIOD_TZ``."""
    name = os.getenv("PERIOD_TZ") or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        if name not in _warned_zones:
            _warned_zones.add(name)
            logger.warning("Unknown PERIOD_TZ %r; using UTC for calendar days", name)
        return _DEF_TZ


def to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware and converted to UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_DEF_TZ)
    return dt.astimezone(_DEF_TZ)


def natural_language_to_datetime(text: str, user_tz: str | None = None) -> datetime:
    """Convert ISO strings or "today"/"yesterday"-style phrases to UTC."""
    tz: ZoneInfo
    if user_tz:
        try:
            tz = ZoneInfo(user_tz)
        except (ZoneInfoNotFoundError, ValueError):
            tz = _DEF_TZ
    else:
        tz = calendar_zone()

    t = text.strip().lower()
    now = datetime.now(tz)
    today = now.date()
    if re.fullmatch(r"(right )?now|today", t):
        dt = now
    elif t == "yesterday":
        dt = datetime.combine(today - timedelta(days=1), time(12, 0), tzinfo=tz)
    elif m := re.fullmatch(r"(\d+) days? ago", t):
        dt = now - timedelta(days=int(m.group(1)))
    else:
        try:
            dt = parse(text)
        except (ParserError, OverflowError) as exc:
            raise ValueError(f"Unrecognised date: {text!r}") from exc
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=tz)
    return dt.astimezone(_DEF_TZ)


class PeriodRecord(BaseModel):
    """One tracked period with its attached symptoms."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    start_date: datetime
    end_date: Optional[datetime] = None
    flow: str = DEFAULT_FLOW
    mood: Optional[str] = None
    symptoms: Optional[List[str]] = None

    @field_validator("start_date", "end_date", mode="before")
    def _parse_datetimes(cls, v: datetime | str | None) -> datetime | None:
        if v is None:
            return v
        if isinstance(v, str):
            return natural_language_to_datetime(v)
        return to_utc(v)

    @field_validator("flow", mode="before")
    def _canonical_flow(cls, v: str | None) -> str:
        if v is None:
            return DEFAULT_FLOW
        if isinstance(v, FlowIntensity):
            return v.value
        try:
            return FlowIntensity(v).value
        except ValueError:
            # free-form labels are kept as typed
            return v

    @field_validator("symptoms", mode="after")
    def _distinct_symptoms(cls, v: List[str] | None) -> List[str] | None:
        # duplicates collapse to the first occurrence; empty means absent
        if not v:
            return None
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def _check_dates(self) -> "PeriodRecord":
        if self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be before or equal to end_date")
        return self

    @property
    def is_ongoing(self) -> bool:
        return self.end_date is None

    @property
    def length_days(self) -> Optional[int]:
        """Inclusive number of calendar days, once the period has ended."""
        if self.end_date is None:
            return None
        zone = calendar_zone()
        start = self.start_date.astimezone(zone).date()
        end = self.end_date.astimezone(zone).date()
        return (end - start).days + 1
