"""Notification dispatchers.

A dispatcher delivers one payload and reports success as a bool. Real
delivery channels (push, SMS, e-mail) live outside this package; the two
here log payloads or append them to a JSONL outbox another process drains.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pawcare.clock import now
from pawcare.escalation import NotificationPayload
from pawcare.storage import STATE_DIR, append_jsonl, read_jsonl

OUTBOX_FILE: Path = STATE_DIR / "outbox.jsonl"

log = logging.getLogger(__name__)


class Dispatcher(Protocol):
    def dispatch(self, payload: NotificationPayload) -> bool: ...


class LogDispatcher:
    def dispatch(self, payload: NotificationPayload) -> bool:
        log.info("[%s] owner=%s %s", payload.level.value, payload.owner_id, payload.message)
        return True


class OutboxDispatcher:
    """Append each payload, stamped with ``queued_at``, to a JSONL file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or OUTBOX_FILE

    def dispatch(self, payload: NotificationPayload, *, queued_at: datetime | None = None) -> bool:
        try:
            append_jsonl(self.path, {"queued_at": (queued_at or now()).isoformat(), **asdict(payload)})
        except OSError:
            log.exception("Could not write outbox %s", self.path)
            return False
        return True

    def pending(self) -> list[dict]:
        return read_jsonl(self.path)

