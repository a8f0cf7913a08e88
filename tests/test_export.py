import json
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from datetime import datetime, timedelta, timezone

import pytest

from cycle import export
from cycle.period_schema import PeriodRecord

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def utc_calendar(monkeypatch):
    monkeypatch.delenv("PERIOD_TZ", raising=False)


def _ago(days, length=None, **kwargs):
    start = NOW - timedelta(days=days)
    end = start + timedelta(days=length - 1) if length else None
    return PeriodRecord(start_date=start, end_date=end, **kwargs)


def test_export_data():
    older = _ago(30, 5, flow="Heavy", symptoms=["Cramps"])
    latest = _ago(2)
    data = export.export_data([older, latest], NOW)

    assert data.app_version == "0.1.0"
    assert data.export_date == NOW
    assert [p.id for p in data.periods] == [latest.id, older.id]
    assert [p.is_active for p in data.periods] == [True, False]
    assert [p.cycle_length for p in data.periods] == [None, 28]
    assert data.periods[0].symptoms == []
    assert data.periods[1].symptoms == ["Cramps"]
    assert data.periods[1].length_days == 5
    assert data.statistics.periods_tracked == 2
    assert data.statistics.cycles_tracked == 1
    assert data.statistics.average_period_length == 5.0


def test_export_json_is_parseable():
    body = json.loads(export.export_json([_ago(2)], NOW))
    assert body["periods"][0]["flow"] == "Light"
    assert body["statistics"]["average_cycle_length"] == 28


def test_export_filename_uses_calendar_day(monkeypatch):
    assert export.export_filename(NOW) == "PeriodTrack_Export_2026-03-10.json"
    monkeypatch.setenv("PERIOD_TZ", "Pacific/Kiritimati")
    late = datetime(2026, 3, 10, 23, 0, tzinfo=timezone.utc)
    assert export.export_filename(late) == "PeriodTrack_Export_2026-03-11.json"


def test_summary_text():
    text = export.generate_summary([_ago(30, 5), _ago(2)], NOW)
    assert text.splitlines() == [
        "PeriodTrack Summary",
        "===================",
        "",
        "Average Cycle: 28 days",
        "Average Period: 5.0 days",
        "Cycles Tracked: 1",
        "",
        "Next Period: Apr 05, 2026",
        "(in 26 days)",
        "",
        "Generated: 2026-03-10 12:00 UTC",
    ]


def test_summary_without_history():
    text = export.generate_summary([], NOW)
    assert "Cycles Tracked: 0" in text
    assert "Next Period" not in text


def test_summary_overdue_omits_countdown():
    text = export.generate_summary([_ago(40)], NOW)
    assert "Next Period: Feb 26, 2026" in text
    assert "(in " not in text
