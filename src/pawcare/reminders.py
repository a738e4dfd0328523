"""Reminder data model.

A reminder tracks one time-sensitive care task for one pet. Its ``status``
walks a closed set of states (see ``ReminderStatus``); the only code that
produces a reminder with a different status is the transition functions in
``pawcare.escalation`` and ``pawcare.snooze`` plus explicit completion and
cancellation. Instances are frozen: every change goes through
``dataclasses.replace``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pawcare.clock import parse_instant
from pawcare.errors import InvalidInput, InvalidTransition

DEFAULT_INTERVALS: tuple[int, int, int] = (7, 3, 0)


class ReminderStatus(str, Enum):
    PENDING = "PENDING"
    ESCALATED_L1 = "ESCALATED_L1"
    ESCALATED_L2 = "ESCALATED_L2"
    ESCALATED_FINAL = "ESCALATED_FINAL"
    OVERDUE = "OVERDUE"
    SNOOZED = "SNOOZED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({ReminderStatus.COMPLETED, ReminderStatus.CANCELLED})

# Statuses an escalation sweep looks at. ESCALATED_FINAL is included so the
# overdue rule can still fire for it; no other rule matches a FINAL reminder.
ESCALATABLE_STATUSES = (
    ReminderStatus.PENDING,
    ReminderStatus.ESCALATED_L1,
    ReminderStatus.ESCALATED_L2,
    ReminderStatus.ESCALATED_FINAL,
)


class ReminderKind(str, Enum):
    VACCINATION = "VACCINATION"
    APPOINTMENT = "APPOINTMENT"
    MEDICATION = "MEDICATION"
    CUSTOM = "CUSTOM"


def normalize_intervals(intervals: list[int] | tuple[int, ...] | None) -> list[int]:
    """Validate and sort escalation thresholds, descending.

    Missing slots (fewer than three values) are filled from
    ``DEFAULT_INTERVALS`` at the same positions before sorting.
    """
    if not intervals:
        return list(DEFAULT_INTERVALS)
    values: list[int] = []
    for value in intervals:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInput(f"Interval {value!r} is not an integer")
        if value < 0:
            raise InvalidInput(f"Interval {value} is negative")
        values.append(value)
    values.extend(DEFAULT_INTERVALS[len(values) :])
    return sorted(values, reverse=True)


def _iso(value: Any) -> Any:
    """Hand-edited YAML may carry unquoted timestamps; keep everything as ISO strings."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


@dataclass(frozen=True, slots=True)
class Reminder:
    id: str
    subject_id: str
    owner_id: str
    title: str
    due_date: str  # ISO datetime
    description: str = ""
    kind: ReminderKind = ReminderKind.CUSTOM
    status: ReminderStatus = ReminderStatus.PENDING
    intervals: list[int] = field(default_factory=lambda: list(DEFAULT_INTERVALS))
    sent_history: list[str] = field(default_factory=list)
    schedule_id: str | None = None
    completed_at: str | None = None
    snoozed_until: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", ReminderStatus(self.status))
        object.__setattr__(self, "kind", ReminderKind(self.kind))
        object.__setattr__(self, "intervals", normalize_intervals(self.intervals))
        object.__setattr__(self, "sent_history", [_iso(s) for s in self.sent_history or []])
        object.__setattr__(self, "metadata", dict(self.metadata or {}))
        for name in ("due_date", "completed_at", "snoozed_until", "created_at", "updated_at"):
            object.__setattr__(self, name, _iso(getattr(self, name)))
        if not self.due_date:
            raise InvalidInput("Reminder needs a due_date")
        # unparseable timestamps make the record corrupt; read_md skips it
        for name in ("due_date", "completed_at", "snoozed_until", "created_at", "updated_at"):
            value = getattr(self, name)
            if value is not None:
                parse_instant(value)

    @property
    def due(self) -> datetime:
        return parse_instant(self.due_date)

    @property
    def active(self) -> bool:
        return not self.status.terminal

    def require_active(self) -> None:
        if self.status.terminal:
            raise InvalidTransition(f"Reminder {self.id} is {self.status.value} and cannot change")

    @staticmethod
    def new(
        *,
        subject_id: str,
        owner_id: str,
        title: str,
        due_date: datetime,
        now: datetime,
        description: str = "",
        kind: ReminderKind = ReminderKind.CUSTOM,
        intervals: list[int] | None = None,
        schedule_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "Reminder":
        """Create a PENDING reminder with a fresh 8-char id."""
        stamp = now.isoformat()
        return Reminder(
            id=uuid4().hex[:8],
            subject_id=subject_id,
            owner_id=owner_id,
            title=title,
            due_date=due_date.isoformat(),
            description=description,
            kind=kind,
            intervals=normalize_intervals(intervals),
            schedule_id=schedule_id,
            created_at=stamp,
            updated_at=stamp,
            metadata=dict(metadata or {}),
        )
