"""Reminder escalation: the transition rules and the sweep that applies them.

Each reminder carries three thresholds in days-before-due (``intervals``,
descending, default 7/3/0). A sweep computes whole days until due and fires
the first matching rule:

1. past due                                  -> OVERDUE
2. within intervals[2], not already FINAL    -> ESCALATED_FINAL
3. within intervals[1], currently L1         -> ESCALATED_L2
4. within intervals[0], currently PENDING    -> ESCALATED_L1

Rules 3 and 4 require an exact prior status, so a reminder advances at most
one level per sweep and never re-enters a level it has left. Re-running a
sweep at the same ``now`` is a no-op once no further rule matches. A PENDING
reminder already inside the FINAL window goes straight to ESCALATED_FINAL and
never passes through L1 or L2; one inside the L2 window fires L1 first and
L2 on the following pass.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from pawcare.reminders import DEFAULT_INTERVALS, ESCALATABLE_STATUSES, Reminder, ReminderStatus

if TYPE_CHECKING:
    from pawcare.dispatch import Dispatcher
    from pawcare.store import ReminderStore

log = logging.getLogger(__name__)

_DAY = timedelta(days=1)


class EscalationLevel(str, Enum):
    L1 = "L1"
    L2 = "L2"
    FINAL = "FINAL"
    OVERDUE = "OVERDUE"


_LEVEL_STATUS = {
    EscalationLevel.L1: ReminderStatus.ESCALATED_L1,
    EscalationLevel.L2: ReminderStatus.ESCALATED_L2,
    EscalationLevel.FINAL: ReminderStatus.ESCALATED_FINAL,
    EscalationLevel.OVERDUE: ReminderStatus.OVERDUE,
}


@dataclass(frozen=True, slots=True)
class NotificationPayload:
    reminder_id: str
    subject_id: str
    owner_id: str
    level: EscalationLevel
    days_until_due: int
    message: str
    title: str = ""
    due_date: str = ""


@dataclass(frozen=True, slots=True)
class Transition:
    reminder: Reminder  # already advanced, not yet persisted
    payload: NotificationPayload


@dataclass(frozen=True, slots=True)
class SweepError:
    item_id: str
    stage: str  # "escalate", "dispatch", "wake", "generate", "cleanup"
    error: str


@dataclass
class EscalationResult:
    processed: int = 0
    notifications: list[NotificationPayload] = field(default_factory=list)
    errors: list[SweepError] = field(default_factory=list)
    dispatched: int = 0
    dispatch_failures: int = 0


def days_until_due(due: datetime, now: datetime) -> int:
    """Whole days from ``now`` to ``due``, floored (negative once past due)."""
    return math.floor((due - now) / _DAY)


def decide(status: ReminderStatus, days: int, intervals: list[int]) -> EscalationLevel | None:
    """The escalation rule table. Returns the level to fire, or None."""
    first, second, final = (list(intervals) + list(DEFAULT_INTERVALS)[len(intervals) :])[:3]
    if days < 0:
        return EscalationLevel.OVERDUE
    if days <= final and status != ReminderStatus.ESCALATED_FINAL:
        return EscalationLevel.FINAL
    if days <= second and status == ReminderStatus.ESCALATED_L1:
        return EscalationLevel.L2
    if days <= first and status == ReminderStatus.PENDING:
        return EscalationLevel.L1
    return None


def _days(n: int) -> str:
    return f"{n} day" if n == 1 else f"{n} days"


def build_message(title: str, level: EscalationLevel, days: int) -> str:
    if level is EscalationLevel.L1:
        return f"Reminder: {title} is due in {_days(days)}."
    if level is EscalationLevel.L2:
        return f"Upcoming: {title} is due in {_days(days)}."
    if level is EscalationLevel.FINAL:
        if days == 0:
            return f"Today: {title} is due today!"
        return f"Final reminder: {title} is due in {_days(days)}."
    return f"Overdue: {title} is {_days(abs(days))} overdue!"


def escalate(reminder: Reminder, now: datetime) -> Transition | None:
    """Apply the rule table to one reminder. Pure: nothing is persisted."""
    if reminder.status not in ESCALATABLE_STATUSES:
        return None
    days = days_until_due(reminder.due, now)
    level = decide(reminder.status, days, reminder.intervals)
    if level is None:
        return None
    stamp = now.isoformat()
    advanced = replace(
        reminder,
        status=_LEVEL_STATUS[level],
        sent_history=[*reminder.sent_history, stamp],
        updated_at=stamp,
    )
    payload = NotificationPayload(
        reminder_id=reminder.id,
        subject_id=reminder.subject_id,
        owner_id=reminder.owner_id,
        level=level,
        days_until_due=days,
        message=build_message(reminder.title, level, days),
        title=reminder.title,
        due_date=reminder.due_date,
    )
    return Transition(reminder=advanced, payload=payload)


def run_escalation_sweep(store: "ReminderStore", now: datetime) -> EscalationResult:
    """Advance every escalatable reminder that crossed a threshold and persist it.

    A reminder whose write fails is reported in ``errors`` and produces no
    payload; the rest of the sweep continues.
    """
    result = EscalationResult()
    for reminder in store.find_by_status(*ESCALATABLE_STATUSES):
        result.processed += 1
        try:
            transition = escalate(reminder, now)
            if transition is None:
                continue
            store.update(transition.reminder)
        except Exception as e:
            log.exception("Escalation failed for reminder %s", reminder.id)
            result.errors.append(SweepError(reminder.id, "escalate", f"{type(e).__name__}: {e}"))
            continue
        log.debug(
            "Reminder %s: %s -> %s",
            reminder.id,
            reminder.status.value,
            transition.reminder.status.value,
        )
        result.notifications.append(transition.payload)
    return result


def dispatch_all(
    dispatcher: "Dispatcher",
    payloads: list[NotificationPayload],
    result: EscalationResult,
) -> None:
    """Hand payloads to the dispatcher one at a time. Failures are recorded, never retried."""
    for payload in payloads:
        try:
            ok = dispatcher.dispatch(payload)
        except Exception as e:
            log.exception("Dispatch raised for reminder %s", payload.reminder_id)
            ok = False
            detail = f"{type(e).__name__}: {e}"
        else:
            detail = "dispatcher reported failure"
        if ok:
            result.dispatched += 1
            continue
        result.dispatch_failures += 1
        result.errors.append(SweepError(payload.reminder_id, "dispatch", detail))
        log.warning("Notification for reminder %s not delivered: %s", payload.reminder_id, detail)
