"""Entry point for pawcare."""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
import signal
import sys
from pathlib import Path

from pawcare import config
from pawcare.storage import STATE_DIR

PID_FILE = STATE_DIR / "scheduler.pid"


HELP = """\
pawcare -- pet care reminders that escalate as the due date gets close

commands:
  pawcare run                   Run the sweep scheduler in the foreground
  pawcare sweep                 Wake snoozed reminders and escalate once
  pawcare generate              Create due reminders for every active pet
  pawcare stats                 Count reminders by status
  pawcare reminder add          Create a reminder
  pawcare reminder list         Show reminders
  pawcare reminder upcoming     Show active reminders due soon
  pawcare reminder show         Show one reminder
  pawcare reminder complete     Mark a reminder done
  pawcare reminder cancel       Cancel a reminder
  pawcare reminder snooze       Snooze a reminder for N days
  pawcare reminder intervals    Set escalation thresholds (days before due)
  pawcare reminder delete       Delete a reminder
  pawcare schedule add          Add a care schedule definition
  pawcare schedule list         Show schedule definitions
  pawcare schedule seed         Add default dog or cat vaccine schedules
  pawcare pet add               Register a pet
  pawcare pet list              Show registered pets
  pawcare pet generate          Create due reminders for one pet
  pawcare help                  Show this help message

examples:
  pawcare schedule seed dog
  pawcare pet add -n Rex --owner alice --born 2025-03-01 --scope dog
  pawcare reminder add --pet 1a2b3c4d --owner alice -t "Dental check" --due 2026-11-02
  pawcare sweep --now 2026-10-26T09:00
"""


def _check_already_running() -> None:
    STATE_DIR.mkdir(parents=True, exist_ok=True)
    if PID_FILE.exists():
        pid = int(PID_FILE.read_text().strip())
        proc_cmdline = Path(f"/proc/{pid}/cmdline")
        if proc_cmdline.exists() and "pawcare" in proc_cmdline.read_bytes().decode(errors="replace"):
            print(f"pawcare scheduler is already running (pid {pid})")
            raise SystemExit(1)
    PID_FILE.write_text(str(os.getpid()))
    atexit.register(PID_FILE.unlink, missing_ok=True)


def _dispatch_subcommand() -> bool:
    """Route CLI subcommands. Returns True if handled."""
    if len(sys.argv) < 2:
        return False
    cmd = sys.argv[1]
    rest = sys.argv[2:]
    if cmd in ("help", "--help", "-h"):
        print(HELP)
        return True
    routes: dict[str, tuple[str, str]] = {
        "reminder": ("pawcare.reminder_cmd", "run_reminder_command"),
        "schedule": ("pawcare.schedule_cmd", "run_schedule_command"),
        "pet": ("pawcare.pet_cmd", "run_pet_command"),
        "sweep": ("pawcare.batch_cmd", "run_sweep_command"),
        "generate": ("pawcare.batch_cmd", "run_generate_command"),
        "stats": ("pawcare.batch_cmd", "run_stats_command"),
    }
    if cmd in routes:
        from importlib import import_module

        mod_path, func_name = routes[cmd]
        getattr(import_module(mod_path), func_name)(rest)
        return True
    return False


log = logging.getLogger(__name__)


async def _run(outbox: bool) -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    from pawcare.dispatch import LogDispatcher, OutboxDispatcher
    from pawcare.engine import ReminderEngine
    from pawcare.scheduler import setup_scheduler

    dispatcher = OutboxDispatcher() if outbox else LogDispatcher()
    scheduler = setup_scheduler(ReminderEngine(), dispatcher)

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop.set)

    scheduler.start()
    log.info(
        "Scheduler started: sweep every %d min, daily run at %02d:00 %s",
        config.SWEEP_MINUTES,
        config.DAILY_HOUR,
        config.TZ.key,
    )
    try:
        await stop.wait()
    finally:
        scheduler.shutdown(wait=False)
        log.info("Scheduler stopped")


def main() -> None:
    if _dispatch_subcommand():
        return

    if len(sys.argv) >= 2 and sys.argv[1] != "run":
        print(f"unknown command: {sys.argv[1]}\n")
        print(HELP)
        raise SystemExit(1)

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _check_already_running()
    asyncio.run(_run(outbox="--outbox" in sys.argv[2:]))


if __name__ == "__main__":
    main()
