"""Shared fixtures for pawcare tests."""

import os

os.environ.setdefault("PAWCARE_TIMEZONE", "UTC")

from datetime import datetime, timezone

import pytest


@pytest.fixture()
def data_dir(tmp_path, monkeypatch):
    """Redirect all data file paths to a temp directory."""
    import pawcare.dispatch as dispatch_mod
    import pawcare.main as main_mod
    import pawcare.schedules as schedules_mod
    import pawcare.storage as storage_mod
    import pawcare.store as store_mod
    import pawcare.subjects as subjects_mod

    state_dir = tmp_path / "state"
    monkeypatch.setattr(storage_mod, "DATA_DIR", tmp_path)
    monkeypatch.setattr(storage_mod, "STATE_DIR", state_dir)
    monkeypatch.setattr(store_mod, "REMINDERS_DIR", tmp_path / "reminders")
    monkeypatch.setattr(schedules_mod, "SCHEDULES_DIR", tmp_path / "schedules")
    monkeypatch.setattr(subjects_mod, "PETS_DIR", tmp_path / "pets")
    monkeypatch.setattr(dispatch_mod, "OUTBOX_FILE", state_dir / "outbox.jsonl")
    monkeypatch.setattr(main_mod, "PID_FILE", state_dir / "scheduler.pid")
    return tmp_path


@pytest.fixture()
def now():
    return datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine(data_dir):
    from pawcare.engine import ReminderEngine

    return ReminderEngine()
