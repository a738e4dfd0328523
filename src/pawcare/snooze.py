"""Snooze and wake-up transitions.

Waking puts a reminder back to PENDING, so its escalation level resets and
the next sweep re-escalates it through whichever rule matches.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from pawcare import config
from pawcare.errors import InvalidInput
from pawcare.reminders import Reminder, ReminderStatus
from pawcare.store import ReminderStore

log = logging.getLogger(__name__)


def snooze(reminder: Reminder, now: datetime, days: int = 1) -> Reminder:
    """SNOOZED until ``now + days``. Terminal reminders cannot be snoozed."""
    if isinstance(days, bool) or not isinstance(days, int):
        raise InvalidInput(f"Snooze days must be an integer, got {days!r}")
    if not 1 <= days <= config.MAX_SNOOZE_DAYS:
        raise InvalidInput(f"Snooze days must be between 1 and {config.MAX_SNOOZE_DAYS}, got {days}")
    reminder.require_active()
    return replace(
        reminder,
        status=ReminderStatus.SNOOZED,
        snoozed_until=(now + timedelta(days=days)).isoformat(),
        updated_at=now.isoformat(),
    )


def wake(reminder: Reminder, now: datetime) -> Reminder:
    return replace(
        reminder,
        status=ReminderStatus.PENDING,
        snoozed_until=None,
        updated_at=now.isoformat(),
    )


def wake_sweep(store: ReminderStore, now: datetime) -> int:
    """Return every reminder whose snooze expired before ``now`` to PENDING."""
    woken = 0
    for reminder in store.find_snoozed_before(now):
        try:
            store.update(wake(reminder, now))
        except Exception:
            log.exception("Could not wake reminder %s", reminder.id)
            continue
        woken += 1
    if woken:
        log.info("Woke %d snoozed reminder(s)", woken)
    return woken
