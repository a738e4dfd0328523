"""Care schedule definitions, markdown persistence, and the due-date resolver.

A schedule definition says when a care task first becomes due (an age in
weeks) and, for recurring tasks, how often it repeats. Definitions with no
``scope`` apply to every pet; scoped ones only to pets whose ``scope``
(breed or species) matches.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from uuid import uuid4

from pawcare.errors import InvalidInput
from pawcare.reminders import ReminderKind
from pawcare.storage import DATA_DIR, read_md, read_md_dir, write_md

SCHEDULES_DIR = DATA_DIR / "schedules"


@dataclass(frozen=True, slots=True)
class ScheduleDefinition:
    id: str
    name: str
    recommended_age_weeks: int
    interval_weeks: int | None = None  # None = one-time
    scope: str | None = None  # None = general
    active: bool = True
    priority: int = 1
    doses_required: int = 1
    required: bool = False
    kind: ReminderKind = ReminderKind.VACCINATION
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", ReminderKind(self.kind))
        if self.recommended_age_weeks < 0:
            raise InvalidInput("recommended_age_weeks must be >= 0")
        if self.interval_weeks is not None and self.interval_weeks <= 0:
            raise InvalidInput("interval_weeks must be positive or unset")

    @staticmethod
    def new(
        name: str,
        *,
        recommended_age_weeks: int,
        interval_weeks: int | None = None,
        scope: str | None = None,
        priority: int = 1,
        doses_required: int = 1,
        required: bool = False,
        kind: ReminderKind = ReminderKind.VACCINATION,
        description: str = "",
    ) -> "ScheduleDefinition":
        return ScheduleDefinition(
            id=uuid4().hex[:8],
            name=name,
            recommended_age_weeks=recommended_age_weeks,
            interval_weeks=interval_weeks,
            scope=scope,
            priority=priority,
            doses_required=doses_required,
            required=required,
            kind=kind,
            description=description,
        )

    @property
    def recurring(self) -> bool:
        return self.interval_weeks is not None


# --- Resolver ---


def age_in_weeks(birth_date: datetime, now: datetime) -> int:
    return math.floor(abs((now - birth_date).total_seconds()) / timedelta(weeks=1).total_seconds())


def compute_due_date(
    birth_date: datetime,
    schedule: ScheduleDefinition,
    current_age_weeks: int,
) -> datetime | None:
    """Next due date for ``schedule``, or None for a one-time task already past its age."""
    recommended = schedule.recommended_age_weeks
    if current_age_weeks < recommended:
        return birth_date + timedelta(weeks=recommended)
    if schedule.interval_weeks:
        since_recommended = current_age_weeks - recommended
        intervals_passed = since_recommended // schedule.interval_weeks
        next_due_weeks = recommended + (intervals_passed + 1) * schedule.interval_weeks
        return birth_date + timedelta(weeks=next_due_weeks)
    return None


def applicable_schedules(
    schedules: list[ScheduleDefinition], scope: str | None
) -> list[ScheduleDefinition]:
    """Active general definitions plus those matching ``scope``; highest priority first."""
    matching = [s for s in schedules if s.active and (s.scope is None or (scope is not None and s.scope == scope))]
    return sorted(matching, key=lambda s: (-s.priority, s.recommended_age_weeks))


# --- Provider ---


class ScheduleProvider:
    """Schedule definitions stored as ``<id>.md`` files; body is the description."""

    def __init__(self, dir_path: Path | None = None) -> None:
        self.dir_path = dir_path or SCHEDULES_DIR

    def list_all(self) -> list[ScheduleDefinition]:
        return read_md_dir(self.dir_path, ScheduleDefinition, "description")

    def get(self, schedule_id: str) -> ScheduleDefinition | None:
        return read_md(self.dir_path / f"{schedule_id}.md", ScheduleDefinition, "description")

    def for_subject(self, scope: str | None) -> list[ScheduleDefinition]:
        return applicable_schedules(self.list_all(), scope)

    def add(self, schedule: ScheduleDefinition) -> ScheduleDefinition:
        write_md(self.dir_path, schedule, "description")
        return schedule


# --- Seeds ---

_RABIES = {
    "name": "Rabies",
    "description": "Required by law in most areas. Protects against rabies virus.",
    "recommended_age_weeks": 12,
    "interval_weeks": 52,
    "required": True,
    "priority": 10,
}

_DEFAULT_SCHEDULES: dict[str, list[dict]] = {
    "dog": [
        _RABIES,
        {
            "name": "DHPP (Distemper, Hepatitis, Parvovirus, Parainfluenza)",
            "description": "Core combination vaccine protecting against multiple diseases.",
            "recommended_age_weeks": 6,
            "interval_weeks": 156,
            "doses_required": 3,
            "required": True,
            "priority": 9,
        },
        {
            "name": "Bordetella (Kennel Cough)",
            "description": "Recommended for dogs that visit boarding facilities or dog parks.",
            "recommended_age_weeks": 8,
            "interval_weeks": 52,
            "priority": 7,
        },
        {
            "name": "Leptospirosis",
            "description": "Protects against bacterial infection spread through water and soil.",
            "recommended_age_weeks": 12,
            "interval_weeks": 52,
            "doses_required": 2,
            "priority": 6,
        },
        {
            "name": "Lyme Disease",
            "description": "Recommended in areas with high tick populations.",
            "recommended_age_weeks": 12,
            "interval_weeks": 52,
            "doses_required": 2,
            "priority": 5,
        },
    ],
    "cat": [
        _RABIES,
        {
            "name": "FVRCP (Feline Viral Rhinotracheitis, Calicivirus, Panleukopenia)",
            "description": "Core combination vaccine for cats.",
            "recommended_age_weeks": 6,
            "interval_weeks": 156,
            "doses_required": 3,
            "required": True,
            "priority": 9,
        },
        {
            "name": "FeLV (Feline Leukemia Virus)",
            "description": "Recommended for outdoor cats or cats exposed to other cats.",
            "recommended_age_weeks": 8,
            "interval_weeks": 52,
            "doses_required": 2,
            "priority": 7,
        },
    ],
}


def default_schedules(species: str) -> list[ScheduleDefinition]:
    try:
        rows = _DEFAULT_SCHEDULES[species.lower()]
    except KeyError:
        raise InvalidInput(f"No default schedules for {species!r} (known: dog, cat)") from None
    return [ScheduleDefinition.new(**row) for row in rows]


def seed_schedules(provider: ScheduleProvider, species: str) -> list[ScheduleDefinition]:
    """Persist the default general definitions whose name is not already present."""
    existing = {s.name for s in provider.list_all() if s.scope is None}
    return [provider.add(s) for s in default_schedules(species) if s.name not in existing]

