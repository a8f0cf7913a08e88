from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cycle.errors import PersistFailed
from cycle.period_schema import PeriodRecord

import app as app_module  # noqa: E402


def test_empty_selection_asks_for_input(monkeypatch):
    def unexpected(selected):
        raise AssertionError("log_symptoms should not be called")

    monkeypatch.setattr(app_module, "log_symptoms", unexpected)
    status, selection = app_module.save_symptoms([])
    assert status == "Select at least one symptom."
    assert selection == []


def test_successful_save_clears_selection(monkeypatch):
    saved = PeriodRecord(start_date="2026-03-10 12:00 UTC", symptoms=["Cramps", "Bloating"])
    monkeypatch.setattr(app_module, "log_symptoms", lambda selected: saved)

    status, selection = app_module.save_symptoms(["Bloating"])

    assert status == "Saved: Cramps, Bloating"
    assert selection == []


def test_failed_save_keeps_selection_for_retry(monkeypatch):
    def fail(selected):
        raise PersistFailed("could not save symptoms")

    monkeypatch.setattr(app_module, "log_symptoms", fail)
    status, selection = app_module.save_symptoms(["Cramps"])

    assert status == "Save failed, please try again."
    assert selection == ["Cramps"]


def test_choices_cover_vocabulary():
    assert app_module.SYMPTOM_CHOICES[0] == "Cramps"
    assert "Back Pain" in app_module.SYMPTOM_CHOICES
