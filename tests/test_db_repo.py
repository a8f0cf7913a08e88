import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from zoneinfo import ZoneInfo

from cycle.errors import CorruptEncoding
from cycle.period_schema import PeriodRecord
from cycle.symptom_codec import decode, encode
from db import repository as repo
from db.models import PeriodEntryORM

START = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    # Use a temporary database for isolation
    monkeypatch.setenv("PERIOD_DB_PATH", str(tmp_path / "periods.db"))
    monkeypatch.delenv("PERIOD_TZ", raising=False)


def _stored_blob(period_id):
    with repo.session_scope() as db:
        return db.get(PeriodEntryORM, period_id).symptoms


def test_repo_roundtrip():
    record = PeriodRecord(
        start_date=START,
        end_date=START + timedelta(days=4),
        flow="heavy",
        mood="Tired",
        symptoms=["Cramps", "Headache"],
    )
    repo.add_period(record)

    loaded = repo.get_period(record.id)
    assert loaded == record
    assert loaded.flow == "Heavy"
    assert loaded.start_date.tzinfo is ZoneInfo("UTC")
    assert decode(_stored_blob(record.id)) == ["Cramps", "Headache"]


def test_no_symptoms_stores_null():
    record = repo.add_period(PeriodRecord(start_date=START, symptoms=[]))
    assert _stored_blob(record.id) is None
    assert repo.get_period(record.id).symptoms is None


def test_list_is_most_recent_first():
    for days in (0, 60, 30):
        repo.add_period(PeriodRecord(start_date=START + timedelta(days=days)))

    starts = [r.start_date for r in repo.list_periods()]
    assert starts == sorted(starts, reverse=True)
    assert len(repo.list_periods(limit=2)) == 2


def test_recent_periods_limits_rows():
    for days in range(5):
        repo.add_period(PeriodRecord(start_date=START + timedelta(days=days * 28)))
    with repo.session_scope() as db:
        rows = repo.recent_periods(db, 3)
        assert len(rows) == 3
        assert rows[0].start_date > rows[-1].start_date


def test_get_missing_period():
    assert repo.get_period("nope") is None


def test_update_period():
    record = repo.add_period(PeriodRecord(start_date=START, symptoms=["Acne"]))

    updated = repo.update_period(
        record.id, end_date="2026-02-05 09:00 UTC", flow="medium"
    )

    assert updated.end_date == START + timedelta(days=4)
    assert updated.flow == "Medium"
    assert updated.symptoms == ["Acne"]
    assert repo.get_period(record.id) == updated


def test_update_clears_symptoms_to_null():
    record = repo.add_period(PeriodRecord(start_date=START, symptoms=["Acne"]))
    repo.update_period(record.id, symptoms=[])
    assert _stored_blob(record.id) is None


def test_update_validation_leaves_row_untouched():
    record = repo.add_period(PeriodRecord(start_date=START))
    with pytest.raises(ValidationError):
        repo.update_period(record.id, end_date=START - timedelta(days=1))
    assert repo.get_period(record.id) == record


def test_update_rejects_unknown_fields():
    record = repo.add_period(PeriodRecord(start_date=START))
    with pytest.raises(ValueError):
        repo.update_period(record.id, id="other")


def test_update_rejects_null_flow():
    record = repo.add_period(PeriodRecord(start_date=START, flow="Heavy"))
    with pytest.raises(ValueError):
        repo.update_period(record.id, flow=None)
    assert repo.get_period(record.id).flow == "Heavy"


def test_update_collapses_duplicate_symptoms():
    record = repo.add_period(PeriodRecord(start_date=START))
    updated = repo.update_period(record.id, symptoms=["Acne", "Acne", "Cramps"])
    assert updated.symptoms == ["Acne", "Cramps"]
    assert decode(_stored_blob(record.id)) == ["Acne", "Cramps"]


def test_update_missing_period():
    assert repo.update_period("nope", flow="Heavy") is None


def test_delete_period():
    record = repo.add_period(PeriodRecord(start_date=START))
    assert repo.delete_period(record.id) is True
    assert repo.get_period(record.id) is None
    assert repo.delete_period(record.id) is False


def test_corrupt_blob_is_reported():
    with repo.session_scope() as db:
        db.add(PeriodEntryORM(id="bad", start_date=START, flow="Light", symptoms=b"junk"))

    with pytest.raises(CorruptEncoding):
        repo.get_period("bad")
    with pytest.raises(CorruptEncoding):
        repo.list_periods()


def test_add_period_writes_only_codec_output():
    record = repo.add_period(PeriodRecord(start_date=START, symptoms=["Bloating"]))
    assert _stored_blob(record.id) == encode(["Bloating"])
