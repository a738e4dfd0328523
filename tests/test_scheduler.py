"""Tests for scheduler.py: hourly/daily runs and job registration."""

import asyncio
import logging
import re
from dataclasses import replace
from datetime import timedelta

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from pawcare.dispatch import OutboxDispatcher
from pawcare.reminders import ReminderStatus
from pawcare.scheduler import run_daily, run_hourly, setup_scheduler
from pawcare.schedules import ScheduleDefinition
from pawcare.subjects import Subject


class _NullDispatcher:
    def dispatch(self, payload):
        return True


def test_run_hourly_wakes_then_escalates(engine, now):
    snoozed = engine.create(
        {"subject_id": "pet1", "owner_id": "alice", "title": "Ear drops", "due_date": (now + timedelta(days=1)).isoformat()},
        now=now - timedelta(days=3),
    )
    engine.snooze(snoozed.id, 2, now=now - timedelta(days=3))
    engine.create(
        {"subject_id": "pet1", "owner_id": "alice", "title": "Far away", "due_date": (now + timedelta(days=90)).isoformat()},
        now=now,
    )
    outbox = OutboxDispatcher()

    run = run_hourly(engine, outbox, now)

    assert run.woken == 1
    assert [p.reminder_id for p in run.escalation.notifications] == [snoozed.id]
    assert run.escalation.dispatched == 1
    assert run.statistics.total == 2
    assert run.statistics.by_status["ESCALATED_L1"] == 1
    assert run.started_at == now.isoformat()
    assert [row["reminder_id"] for row in outbox.pending()] == [snoozed.id]


def test_run_hourly_twice_sends_once(engine, now):
    engine.create(
        {"subject_id": "pet1", "owner_id": "alice", "title": "Booster", "due_date": (now + timedelta(days=6)).isoformat()},
        now=now,
    )

    first = run_hourly(engine, _NullDispatcher(), now)
    second = run_hourly(engine, _NullDispatcher(), now + timedelta(hours=1))

    assert len(first.escalation.notifications) == 1
    assert second.escalation.notifications == []


def test_run_daily_generates_and_cleans(engine, now):
    born = (now - timedelta(weeks=8)).date().isoformat()
    engine.subjects.add(Subject.new("Mochi", owner_id="bob", birth_date=born, scope="cat"))
    engine.schedules.add(ScheduleDefinition.new("Rabies", recommended_age_weeks=12, interval_weeks=52))
    old_time = now - timedelta(days=40)
    old = engine.create(
        {"subject_id": "pet9", "owner_id": "bob", "title": "Old", "due_date": old_time.isoformat()},
        now=old_time,
    )
    engine.store.update(replace(old, status=ReminderStatus.COMPLETED))

    run = run_daily(engine, now, retention_days=30)

    assert run.generation.subjects_processed == 1
    assert run.generation.reminders_created == 1
    assert run.cleaned_up == 1
    assert run.cleanup_errors == []

    again = run_daily(engine, now, retention_days=30)

    assert again.generation.reminders_created == 0


def test_setup_scheduler_registers_jobs(engine, monkeypatch):
    import pawcare.config as config_mod

    monkeypatch.setattr(config_mod, "SWEEP_MINUTES", 15)
    monkeypatch.setattr(config_mod, "DAILY_HOUR", 4)

    scheduler = setup_scheduler(engine, _NullDispatcher())
    jobs = {job.id: job for job in scheduler.get_jobs()}

    assert set(jobs) == {"hourly_sweep", "daily_sweep"}
    hourly = jobs["hourly_sweep"].trigger
    assert isinstance(hourly, IntervalTrigger)
    assert hourly.interval == timedelta(minutes=15)
    daily = jobs["daily_sweep"].trigger
    assert isinstance(daily, CronTrigger)
    assert str(daily.fields[CronTrigger.FIELD_NAMES.index("hour")]) == "4"
    assert jobs["hourly_sweep"].max_instances == 2


def test_run_hourly_survives_unparseable_snooze_deadline(engine, now):
    broken = engine.create(
        {"subject_id": "pet1", "owner_id": "alice", "title": "Ear drops", "due_date": (now + timedelta(days=20)).isoformat()},
        now=now - timedelta(days=3),
    )
    engine.snooze(broken.id, 1, now=now - timedelta(days=3))
    path = engine.store.dir_path / f"{broken.id}.md"
    path.write_text(re.sub(r"snoozed_until: .*", "snoozed_until: soon", path.read_text()))
    sleeper = engine.create(
        {"subject_id": "pet2", "owner_id": "bob", "title": "Worming", "due_date": (now + timedelta(days=20)).isoformat()},
        now=now - timedelta(days=3),
    )
    engine.snooze(sleeper.id, 2, now=now - timedelta(days=3))
    due_soon = engine.create(
        {"subject_id": "pet3", "owner_id": "bob", "title": "Booster", "due_date": (now + timedelta(days=7)).isoformat()},
        now=now,
    )

    run = run_hourly(engine, _NullDispatcher(), now)

    assert run.woken == 1
    assert engine.get(sleeper.id).status == ReminderStatus.PENDING
    assert [p.reminder_id for p in run.escalation.notifications] == [due_soon.id]
    assert run.statistics.total == 2


def test_failed_sweep_job_logs_once_and_returns(engine, monkeypatch, caplog):
    import pawcare.scheduler as scheduler_mod

    def boom(*args, **kwargs):
        raise OSError("disk gone")

    monkeypatch.setattr(scheduler_mod, "run_hourly", boom)
    scheduler = setup_scheduler(engine, _NullDispatcher())
    job = {j.id: j for j in scheduler.get_jobs()}["hourly_sweep"]

    with caplog.at_level(logging.ERROR, logger="pawcare.scheduler"):
        asyncio.run(job.func())
        asyncio.run(job.func())

    failures = [r for r in caplog.records if r.name == "pawcare.scheduler"]
    assert [r.getMessage() for r in failures] == ["Hourly sweep failed", "Hourly sweep failed"]
