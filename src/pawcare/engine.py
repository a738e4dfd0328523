"""Public operations of the reminder engine.

``ReminderEngine`` wires the store, schedule provider and pet registry
together. Single-reminder operations raise ``NotFound`` / ``InvalidInput``;
sweeps return result objects carrying per-item errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from jsonschema import Draft7Validator

from pawcare import clock
from pawcare.errors import InvalidInput, NotFound
from pawcare.escalation import EscalationResult, SweepError, dispatch_all, run_escalation_sweep
from pawcare.generator import GenerationResult, generate_for_subject, run_generation_sweep
from pawcare.reminders import (
    TERMINAL_STATUSES,
    Reminder,
    ReminderKind,
    ReminderStatus,
    normalize_intervals,
)
from pawcare.schedules import ScheduleProvider
from pawcare.snooze import snooze, wake_sweep
from pawcare.store import ReminderStore
from pawcare.subjects import SubjectRegistry

if TYPE_CHECKING:
    from pawcare.dispatch import Dispatcher

log = logging.getLogger(__name__)

_FIELDS: dict[str, Any] = {
    "subject_id": {"type": "string", "minLength": 1},
    "owner_id": {"type": "string", "minLength": 1},
    "title": {"type": "string", "minLength": 1, "maxLength": 200},
    "description": {"type": "string", "maxLength": 2000},
    "due_date": {"type": "string", "minLength": 10},
    "kind": {"enum": [k.value for k in ReminderKind]},
    "intervals": {"type": "array", "items": {"type": "integer", "minimum": 0}},
    "schedule_id": {"type": ["string", "null"]},
    "metadata": {"type": "object"},
}

CREATE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": _FIELDS,
    "required": ["subject_id", "owner_id", "title", "due_date"],
    "additionalProperties": False,
}

# status, sent_history and timestamps only change through the transition functions
UPDATE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": _FIELDS,
    "additionalProperties": False,
}


def validate_payload(schema: dict[str, Any], data: Any) -> None:
    errors = sorted(Draft7Validator(schema).iter_errors(data), key=lambda e: list(e.path))
    if errors:
        raise InvalidInput("; ".join(_describe(e) for e in errors))


def _describe(error: Any) -> str:
    where = ".".join(str(p) for p in error.path)
    return f"{where}: {error.message}" if where else error.message


def _parse_due(value: str) -> datetime:
    try:
        return clock.parse_instant(value)
    except ValueError:
        raise InvalidInput(f"due_date {value!r} is not an ISO date or datetime") from None


@dataclass(frozen=True, slots=True)
class Statistics:
    total: int
    by_status: dict[str, int]


class ReminderEngine:
    def __init__(
        self,
        store: ReminderStore | None = None,
        schedules: ScheduleProvider | None = None,
        subjects: SubjectRegistry | None = None,
    ) -> None:
        self.store = store or ReminderStore()
        self.schedules = schedules or ScheduleProvider()
        self.subjects = subjects or SubjectRegistry()

    # --- single reminders ---

    def create(self, data: dict[str, Any], *, now: datetime | None = None) -> Reminder:
        validate_payload(CREATE_SCHEMA, data)
        schedule_id = data.get("schedule_id")
        if schedule_id and self.store.find_active_by_schedule(data["subject_id"], schedule_id):
            raise InvalidInput(
                f"Pet {data['subject_id']} already has an active reminder for schedule {schedule_id}"
            )
        reminder = Reminder.new(
            subject_id=data["subject_id"],
            owner_id=data["owner_id"],
            title=data["title"],
            description=data.get("description", ""),
            due_date=_parse_due(data["due_date"]),
            now=now or clock.now(),
            kind=ReminderKind(data.get("kind", ReminderKind.CUSTOM)),
            intervals=data.get("intervals"),
            schedule_id=schedule_id,
            metadata=data.get("metadata"),
        )
        self.store.create(reminder)
        log.info("Created reminder %s for pet %s due %s", reminder.id, reminder.subject_id, reminder.due_date)
        return reminder

    def get(self, reminder_id: str) -> Reminder:
        reminder = self.store.get(reminder_id)
        if reminder is None:
            raise NotFound("reminder", reminder_id)
        return reminder

    def update(self, reminder_id: str, patch: dict[str, Any], *, now: datetime | None = None) -> Reminder:
        validate_payload(UPDATE_SCHEMA, patch)
        reminder = self.get(reminder_id)
        changes = dict(patch)
        if "due_date" in changes:
            changes["due_date"] = _parse_due(changes["due_date"]).isoformat()
        if "intervals" in changes:
            changes["intervals"] = normalize_intervals(changes["intervals"])
        subject_id = changes.get("subject_id", reminder.subject_id)
        schedule_id = changes.get("schedule_id", reminder.schedule_id)
        moved = (subject_id, schedule_id) != (reminder.subject_id, reminder.schedule_id)
        if schedule_id and moved and reminder.active:
            existing = self.store.find_active_by_schedule(subject_id, schedule_id)
            if existing is not None and existing.id != reminder.id:
                raise InvalidInput(f"Pet {subject_id} already has an active reminder for schedule {schedule_id}")
        updated = replace(reminder, **changes, updated_at=(now or clock.now()).isoformat())
        return self.store.update(updated)

    def delete(self, reminder_id: str) -> None:
        if not self.store.delete(reminder_id):
            raise NotFound("reminder", reminder_id)
        log.info("Deleted reminder %s", reminder_id)

    def complete(
        self,
        reminder_id: str,
        linked_record_id: str | None = None,
        *,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Reminder:
        """Mark done; ``linked_record_id`` names the record (e.g. a vaccination) that satisfied it."""
        reminder = self.get(reminder_id)
        reminder.require_active()
        stamp = (now or clock.now()).isoformat()
        merged = {**reminder.metadata, **(metadata or {})}
        if linked_record_id:
            merged["linked_record_id"] = linked_record_id
        done = replace(
            reminder,
            status=ReminderStatus.COMPLETED,
            completed_at=stamp,
            snoozed_until=None,
            updated_at=stamp,
            metadata=merged,
        )
        return self.store.update(done)

    def cancel(self, reminder_id: str, *, now: datetime | None = None) -> Reminder:
        reminder = self.get(reminder_id)
        reminder.require_active()
        cancelled = replace(
            reminder,
            status=ReminderStatus.CANCELLED,
            snoozed_until=None,
            updated_at=(now or clock.now()).isoformat(),
        )
        return self.store.update(cancelled)

    def snooze(self, reminder_id: str, days: int = 1, *, now: datetime | None = None) -> Reminder:
        reminder = self.get(reminder_id)
        return self.store.update(snooze(reminder, now or clock.now(), days))

    def set_intervals(self, reminder_id: str, intervals: list[int], *, now: datetime | None = None) -> Reminder:
        """Store the thresholds sorted descending, e.g. [1, 10, 5] -> [10, 5, 1]."""
        normalized = normalize_intervals(intervals)
        reminder = self.get(reminder_id)
        updated = replace(reminder, intervals=normalized, updated_at=(now or clock.now()).isoformat())
        return self.store.update(updated)

    # --- queries ---

    def find_by_subject(self, subject_id: str) -> list[Reminder]:
        return self.store.find_by_subject(subject_id)

    def find_by_owner(self, owner_id: str) -> list[Reminder]:
        return self.store.find_by_owner(owner_id)

    def find_upcoming(self, days: int = 30, *, now: datetime | None = None) -> list[Reminder]:
        return self.store.find_upcoming(now or clock.now(), days)

    def statistics(self) -> Statistics:
        counts = self.store.count_by_status()
        return Statistics(
            total=sum(counts.values()),
            by_status={status.value: n for status, n in counts.items()},
        )

    # --- generation ---

    def generate_for_subject(
        self,
        subject_id: str,
        *,
        now: datetime | None = None,
        intervals: list[int] | None = None,
    ) -> list[Reminder]:
        return generate_for_subject(
            subject_id,
            now or clock.now(),
            store=self.store,
            schedules=self.schedules,
            subjects=self.subjects,
            intervals=intervals,
        )

    # --- sweeps ---

    def wake_snoozed(self, now: datetime) -> int:
        return wake_sweep(self.store, now)

    def run_escalation_sweep(self, now: datetime, dispatcher: Dispatcher | None = None) -> EscalationResult:
        """Escalate, persist, then hand each payload to ``dispatcher`` (if any).

        A failed dispatch leaves the persisted transition in place: the level
        is consumed and the notification is not retried.
        """
        result = run_escalation_sweep(self.store, now)
        if dispatcher is not None:
            dispatch_all(dispatcher, result.notifications, result)
        log.info(
            "Escalation sweep: %d reminder(s) checked, %d notification(s), %d error(s)",
            result.processed,
            len(result.notifications),
            len(result.errors),
        )
        return result

    def run_generation_sweep(self, now: datetime) -> GenerationResult:
        return run_generation_sweep(now, store=self.store, schedules=self.schedules, subjects=self.subjects)

    def cleanup_expired(self, now: datetime, older_than_days: int = 365) -> tuple[int, list[SweepError]]:
        """Delete completed/cancelled reminders last touched more than ``older_than_days`` ago."""
        cutoff = now - timedelta(days=older_than_days)
        removed = 0
        errors: list[SweepError] = []
        for reminder in self.store.find_by_status(*TERMINAL_STATUSES):
            touched = reminder.updated_at or reminder.completed_at or reminder.created_at
            try:
                if touched is None or clock.parse_instant(touched) >= cutoff:
                    continue
                self.store.delete(reminder.id)
            except (OSError, ValueError) as e:
                log.exception("Could not delete reminder %s", reminder.id)
                errors.append(SweepError(reminder.id, "cleanup", str(e)))
                continue
            removed += 1
        if removed:
            log.info("Cleaned up %d old reminder(s)", removed)
        return removed, errors
