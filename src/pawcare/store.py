"""Reminder persistence and queries.

One ``<id>.md`` file per reminder under ``reminders/``. Each write replaces
a single file atomically, so a sweep's per-reminder read-decide-write never
touches another record.
"""

from collections import Counter
from datetime import datetime, timedelta
from pathlib import Path

from pawcare.clock import parse_instant
from pawcare.reminders import Reminder, ReminderStatus
from pawcare.storage import DATA_DIR, read_md, read_md_dir, remove_md, write_md

REMINDERS_DIR = DATA_DIR / "reminders"

_BODY = "description"


class ReminderStore:
    def __init__(self, dir_path: Path | None = None) -> None:
        self.dir_path = dir_path or REMINDERS_DIR

    def list_all(self) -> list[Reminder]:
        return sorted(read_md_dir(self.dir_path, Reminder, _BODY), key=lambda r: r.due)

    def get(self, reminder_id: str) -> Reminder | None:
        return read_md(self.dir_path / f"{reminder_id}.md", Reminder, _BODY)

    def create(self, reminder: Reminder) -> Reminder:
        write_md(self.dir_path, reminder, _BODY)
        return reminder

    def update(self, reminder: Reminder) -> Reminder:
        write_md(self.dir_path, reminder, _BODY)
        return reminder

    def delete(self, reminder_id: str) -> bool:
        return remove_md(self.dir_path, reminder_id)

    def find_by_subject(self, subject_id: str) -> list[Reminder]:
        return [r for r in self.list_all() if r.subject_id == subject_id]

    def find_by_owner(self, owner_id: str) -> list[Reminder]:
        return [r for r in self.list_all() if r.owner_id == owner_id]

    def find_by_status(self, *statuses: ReminderStatus) -> list[Reminder]:
        wanted = set(statuses)
        return [r for r in self.list_all() if r.status in wanted]

    def find_active_by_schedule(self, subject_id: str, schedule_id: str) -> Reminder | None:
        for r in self.find_by_subject(subject_id):
            if r.active and r.schedule_id == schedule_id:
                return r
        return None

    def find_upcoming(self, now: datetime, days: int = 30) -> list[Reminder]:
        """Non-terminal reminders due on or before ``now + days`` (overdue ones included)."""
        cutoff = now + timedelta(days=days)
        return [r for r in self.list_all() if r.active and r.due <= cutoff]

    def find_snoozed_before(self, now: datetime) -> list[Reminder]:
        return [
            r
            for r in self.find_by_status(ReminderStatus.SNOOZED)
            if r.snoozed_until is not None and parse_instant(r.snoozed_until) < now
        ]

    def count_by_status(self) -> dict[ReminderStatus, int]:
        counts = Counter(r.status for r in self.list_all())
        return {status: counts.get(status, 0) for status in ReminderStatus}
