"""Tests for engine.py: public reminder operations."""

from datetime import timedelta

import pytest

from pawcare.errors import InvalidInput, InvalidTransition, NotFound
from pawcare.escalation import EscalationLevel
from pawcare.reminders import ReminderKind, ReminderStatus


def _data(**overrides):
    data = {
        "subject_id": "pet1",
        "owner_id": "alice",
        "title": "Dental check",
        "due_date": "2026-03-12T10:00:00+00:00",
    }
    data.update(overrides)
    return data


class _RecordingDispatcher:
    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.sent = []

    def dispatch(self, payload):
        self.sent.append(payload)
        return payload.reminder_id not in self.fail_ids


# --- create / get ---


def test_create_and_get(engine, now):
    reminder = engine.create(_data(description="Bring records", kind="APPOINTMENT"), now=now)

    assert reminder.status == ReminderStatus.PENDING
    assert reminder.kind == ReminderKind.APPOINTMENT
    assert reminder.intervals == [7, 3, 0]
    assert reminder.created_at == now.isoformat()
    assert engine.get(reminder.id) == reminder


def test_create_accepts_plain_date(engine, now):
    reminder = engine.create(_data(due_date="2026-04-01"), now=now)

    assert reminder.due.date().isoformat() == "2026-04-01"


def test_create_sorts_intervals(engine, now):
    reminder = engine.create(_data(intervals=[2, 14]), now=now)

    assert reminder.intervals == [14, 2, 0]


@pytest.mark.parametrize(
    "data",
    [
        _data(title=""),
        _data(kind="GROOMING"),
        _data(intervals=[7, -1]),
        _data(unexpected="x"),
        {"subject_id": "pet1", "owner_id": "alice", "title": "No due"},
    ],
)
def test_create_rejects_invalid_payload(engine, now, data):
    with pytest.raises(InvalidInput):
        engine.create(data, now=now)


def test_create_rejects_unparseable_due(engine, now):
    with pytest.raises(InvalidInput, match="not an ISO date"):
        engine.create(_data(due_date="next tuesday"), now=now)


def test_create_error_names_field(engine, now):
    with pytest.raises(InvalidInput, match="title"):
        engine.create(_data(title=42), now=now)


def test_create_duplicate_schedule_rejected(engine, now):
    engine.create(_data(schedule_id="rabies"), now=now)

    with pytest.raises(InvalidInput, match="already has an active reminder"):
        engine.create(_data(schedule_id="rabies"), now=now)


def test_get_missing(engine):
    with pytest.raises(NotFound) as exc:
        engine.get("nope")

    assert exc.value.kind == "reminder"
    assert exc.value.id == "nope"


# --- update / delete ---


def test_update_fields(engine, now):
    reminder = engine.create(_data(), now=now)
    later = now + timedelta(hours=1)

    updated = engine.update(
        reminder.id, {"title": "Dental cleaning", "due_date": "2026-03-20", "intervals": [1, 5]}, now=later
    )

    assert updated.title == "Dental cleaning"
    assert updated.due.date().isoformat() == "2026-03-20"
    assert updated.intervals == [5, 1, 0]
    assert updated.updated_at == later.isoformat()
    assert updated.status == reminder.status
    assert engine.get(reminder.id) == updated


def test_update_rejects_status(engine, now):
    reminder = engine.create(_data(), now=now)

    with pytest.raises(InvalidInput):
        engine.update(reminder.id, {"status": "COMPLETED"}, now=now)


def test_update_missing(engine, now):
    with pytest.raises(NotFound):
        engine.update("nope", {"title": "x"}, now=now)


def test_update_to_taken_schedule_rejected(engine, now):
    engine.create(_data(schedule_id="rabies"), now=now)
    other = engine.create(_data(), now=now)

    with pytest.raises(InvalidInput):
        engine.update(other.id, {"schedule_id": "rabies"}, now=now)


def test_update_to_pet_with_same_schedule_rejected(engine, now):
    engine.create(_data(schedule_id="rabies"), now=now)
    other = engine.create(_data(subject_id="pet2", schedule_id="rabies"), now=now)

    with pytest.raises(InvalidInput, match="pet1"):
        engine.update(other.id, {"subject_id": "pet1"}, now=now)

    assert engine.get(other.id).subject_id == "pet2"
    assert len(engine.find_by_subject("pet1")) == 1


def test_update_keeps_own_schedule(engine, now):
    reminder = engine.create(_data(schedule_id="rabies"), now=now)

    updated = engine.update(reminder.id, {"title": "Rabies booster", "schedule_id": "rabies"}, now=now)

    assert updated.title == "Rabies booster"
    assert updated.schedule_id == "rabies"


def test_delete(engine, now):
    reminder = engine.create(_data(), now=now)

    engine.delete(reminder.id)

    with pytest.raises(NotFound):
        engine.get(reminder.id)
    with pytest.raises(NotFound):
        engine.delete(reminder.id)


# --- complete / cancel / snooze ---


def test_complete_links_record(engine, now):
    reminder = engine.create(_data(metadata={"clinic": "Northside"}), now=now)

    done = engine.complete(reminder.id, "vacc-42", now=now)

    assert done.status == ReminderStatus.COMPLETED
    assert done.completed_at == now.isoformat()
    assert done.metadata == {"clinic": "Northside", "linked_record_id": "vacc-42"}


def test_complete_is_terminal(engine, now):
    reminder = engine.create(_data(), now=now)
    engine.complete(reminder.id, now=now)

    with pytest.raises(InvalidTransition):
        engine.complete(reminder.id, now=now)
    with pytest.raises(InvalidTransition):
        engine.cancel(reminder.id, now=now)
    with pytest.raises(InvalidTransition):
        engine.snooze(reminder.id, 2, now=now)


def test_cancel_clears_snooze(engine, now):
    reminder = engine.create(_data(), now=now)
    engine.snooze(reminder.id, 2, now=now)

    cancelled = engine.cancel(reminder.id, now=now)

    assert cancelled.status == ReminderStatus.CANCELLED
    assert cancelled.snoozed_until is None


def test_snooze_via_engine(engine, now):
    reminder = engine.create(_data(), now=now)

    snoozed = engine.snooze(reminder.id, 3, now=now)

    assert snoozed.status == ReminderStatus.SNOOZED
    assert engine.get(reminder.id).snoozed_until == (now + timedelta(days=3)).isoformat()


def test_set_intervals_sorts_descending(engine, now):
    reminder = engine.create(_data(), now=now)

    updated = engine.set_intervals(reminder.id, [1, 10, 5], now=now)

    assert updated.intervals == [10, 5, 1]
    assert engine.get(reminder.id).intervals == [10, 5, 1]


def test_set_intervals_rejects_negative(engine, now):
    reminder = engine.create(_data(), now=now)

    with pytest.raises(InvalidInput):
        engine.set_intervals(reminder.id, [5, -1], now=now)


# --- queries ---


def test_find_by_subject_and_owner(engine, now):
    a = engine.create(_data(), now=now)
    b = engine.create(_data(subject_id="pet2", owner_id="bob"), now=now)

    assert engine.find_by_subject("pet1") == [a]
    assert engine.find_by_owner("bob") == [b]
    assert engine.find_by_owner("carol") == []


def test_find_upcoming(engine, now):
    soon = engine.create(_data(due_date=(now + timedelta(days=5)).isoformat()), now=now)
    overdue = engine.create(_data(due_date=(now - timedelta(days=2)).isoformat()), now=now)
    engine.create(_data(due_date=(now + timedelta(days=60)).isoformat()), now=now)
    done = engine.create(_data(due_date=(now + timedelta(days=1)).isoformat()), now=now)
    engine.complete(done.id, now=now)

    upcoming = engine.find_upcoming(30, now=now)

    assert [r.id for r in upcoming] == [overdue.id, soon.id]


def test_statistics(engine, now):
    engine.create(_data(), now=now)
    engine.create(_data(), now=now)
    done = engine.create(_data(), now=now)
    engine.complete(done.id, now=now)

    stats = engine.statistics()

    assert stats.total == 3
    assert stats.by_status["PENDING"] == 2
    assert stats.by_status["COMPLETED"] == 1
    assert stats.by_status["OVERDUE"] == 0
    assert set(stats.by_status) == {s.value for s in ReminderStatus}


# --- sweeps ---


def test_escalation_sweep_partial_dispatch_failure(engine, now):
    ids = [
        engine.create(_data(due_date=(now + timedelta(days=d)).isoformat()), now=now).id
        for d in (1, 2, 3)
    ]
    dispatcher = _RecordingDispatcher(fail_ids=[ids[1]])

    result = engine.run_escalation_sweep(now, dispatcher)

    assert len(dispatcher.sent) == 3
    assert result.dispatched == 2
    assert result.dispatch_failures == 1
    assert [(e.item_id, e.stage) for e in result.errors] == [(ids[1], "dispatch")]
    for rid in ids:
        reminder = engine.get(rid)
        assert reminder.status == ReminderStatus.ESCALATED_L1
        assert reminder.sent_history == [now.isoformat()]


def test_escalation_sweep_without_dispatcher(engine, now):
    engine.create(_data(due_date=(now - timedelta(days=1)).isoformat()), now=now)

    result = engine.run_escalation_sweep(now)

    assert [p.level for p in result.notifications] == [EscalationLevel.OVERDUE]
    assert result.dispatched == 0


def test_wake_snoozed(engine, now):
    reminder = engine.create(_data(), now=now)
    engine.snooze(reminder.id, 1, now=now)

    assert engine.wake_snoozed(now + timedelta(days=2)) == 1
    assert engine.get(reminder.id).status == ReminderStatus.PENDING


def test_cleanup_expired(engine, now):
    old_time = now - timedelta(days=400)
    old = engine.create(_data(), now=old_time)
    engine.complete(old.id, now=old_time)
    recent = engine.create(_data(), now=now)
    engine.cancel(recent.id, now=now)
    active_old = engine.create(_data(), now=old_time)

    removed, errors = engine.cleanup_expired(now, older_than_days=365)

    assert removed == 1
    assert errors == []
    with pytest.raises(NotFound):
        engine.get(old.id)
    assert engine.get(recent.id).status == ReminderStatus.CANCELLED
    assert engine.get(active_old.id).status == ReminderStatus.PENDING


def test_cleanup_expired_skips_unreadable_record(engine, now):
    old_time = now - timedelta(days=400)
    old = engine.create(_data(), now=old_time)
    engine.complete(old.id, now=old_time)
    (engine.store.dir_path / "bad1.md").write_text(
        "---\nid: bad1\nsubject_id: pet1\nowner_id: alice\ntitle: Broken\n"
        "due_date: '2025-01-01'\nstatus: COMPLETED\nupdated_at: last spring\n---\n"
    )

    removed, errors = engine.cleanup_expired(now, older_than_days=365)

    assert removed == 1
    assert errors == []
    assert (engine.store.dir_path / "bad1.md").exists()
