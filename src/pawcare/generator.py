"""Create reminders from schedule definitions, for one pet or for every active pet."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from pawcare.errors import NotFound
from pawcare.escalation import SweepError
from pawcare.reminders import Reminder, ReminderKind
from pawcare.schedules import ScheduleDefinition, ScheduleProvider, age_in_weeks, compute_due_date
from pawcare.store import ReminderStore
from pawcare.subjects import Subject, SubjectRegistry

log = logging.getLogger(__name__)


def _title(schedule: ScheduleDefinition) -> str:
    if schedule.kind is ReminderKind.VACCINATION:
        return f"{schedule.name} Vaccination"
    return schedule.name


def _description(schedule: ScheduleDefinition, subject: Subject) -> str:
    what = "vaccination" if schedule.kind is ReminderKind.VACCINATION else "care task"
    return f"Upcoming {schedule.name} {what} for {subject.name}."


def generate_for_subject(
    subject_id: str,
    now: datetime,
    *,
    store: ReminderStore,
    schedules: ScheduleProvider,
    subjects: SubjectRegistry,
    intervals: list[int] | None = None,
) -> list[Reminder]:
    """Create PENDING reminders for every applicable schedule without an active one.

    Returns only the reminders created by this call; an empty list is normal.
    The active-reminder check and the write are not atomic, so two generators
    running at once for the same pet can both create a reminder.
    """
    subject = subjects.get(subject_id)
    if subject is None:
        raise NotFound("pet", subject_id)

    born = subject.born
    age = age_in_weeks(born, now)
    created: list[Reminder] = []
    for schedule in schedules.for_subject(subject.scope):
        if store.find_active_by_schedule(subject.id, schedule.id) is not None:
            continue
        due = compute_due_date(born, schedule, age)
        if due is None:
            continue
        reminder = Reminder.new(
            subject_id=subject.id,
            owner_id=subject.owner_id,
            title=_title(schedule),
            description=_description(schedule, subject),
            due_date=due,
            now=now,
            kind=schedule.kind,
            intervals=intervals,
            schedule_id=schedule.id,
            metadata={"schedule_id": schedule.id},
        )
        created.append(store.create(reminder))
    if created:
        log.info("Generated %d reminder(s) for pet %s", len(created), subject.id)
    return created


@dataclass
class GenerationResult:
    subjects_processed: int = 0
    reminders_created: int = 0
    errors: list[SweepError] = field(default_factory=list)


def run_generation_sweep(
    now: datetime,
    *,
    store: ReminderStore,
    schedules: ScheduleProvider,
    subjects: SubjectRegistry,
) -> GenerationResult:
    """Generate reminders for every active pet; one pet's failure does not stop the rest."""
    result = GenerationResult()
    for subject in subjects.list_active():
        result.subjects_processed += 1
        try:
            created = generate_for_subject(
                subject.id, now, store=store, schedules=schedules, subjects=subjects
            )
        except Exception as e:
            log.exception("Reminder generation failed for pet %s", subject.id)
            result.errors.append(SweepError(subject.id, "generate", f"{type(e).__name__}: {e}"))
            continue
        result.reminders_created += len(created)
    log.info(
        "Generation sweep: %d pet(s) processed, %d reminder(s) created, %d error(s)",
        result.subjects_processed,
        result.reminders_created,
        len(result.errors),
    )
    return result
