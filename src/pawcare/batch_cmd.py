"""CLI handlers for one-off batch runs: `pawcare sweep`, `pawcare generate`, `pawcare stats`."""

import argparse
import sys
from datetime import datetime

from pawcare import clock
from pawcare.dispatch import Dispatcher, LogDispatcher, OutboxDispatcher
from pawcare.engine import ReminderEngine
from pawcare.escalation import SweepError
from pawcare.scheduler import run_daily, run_hourly


def _parse_now(value: str | None) -> datetime:
    if value is None:
        return clock.now()
    try:
        return clock.parse_instant(value)
    except ValueError:
        print(f"error: --now {value!r} is not an ISO date or datetime")
        sys.exit(1)


def _print_errors(errors: list[SweepError]) -> None:
    for e in errors:
        print(f"  ! {e.stage} {e.item_id}: {e.error}")


def run_sweep_command(argv: list[str]) -> None:
    parser = argparse.ArgumentParser(prog="pawcare sweep", description="Wake snoozed reminders and escalate")
    parser.add_argument("--now", default=None, help="Pretend the current time is this ISO instant")
    parser.add_argument("--outbox", action="store_true", help="Queue notifications in the JSONL outbox")
    args = parser.parse_args(argv)

    dispatcher: Dispatcher = OutboxDispatcher() if args.outbox else LogDispatcher()
    run = run_hourly(ReminderEngine(), dispatcher, _parse_now(args.now))
    print(f"woke {run.woken}, escalated {len(run.escalation.notifications)}, delivered {run.escalation.dispatched}")
    for payload in run.escalation.notifications:
        print(f"  [{payload.level.value}] {payload.reminder_id}  {payload.message}")
    _print_errors(run.escalation.errors)


def run_generate_command(argv: list[str]) -> None:
    parser = argparse.ArgumentParser(prog="pawcare generate", description="Create due reminders for all pets")
    parser.add_argument("--now", default=None, help="Pretend the current time is this ISO instant")
    args = parser.parse_args(argv)

    run = run_daily(ReminderEngine(), _parse_now(args.now))
    gen = run.generation
    print(f"{gen.subjects_processed} pet(s) processed, {gen.reminders_created} reminder(s) created")
    if run.cleaned_up:
        print(f"cleaned up {run.cleaned_up} old reminder(s)")
    _print_errors(gen.errors + run.cleanup_errors)


def run_stats_command(argv: list[str]) -> None:
    argparse.ArgumentParser(prog="pawcare stats", description="Count reminders by status").parse_args(argv)
    stats = ReminderEngine().statistics()
    for status, count in stats.by_status.items():
        print(f"  {status:16s} {count}")
    print(f"  {'total':16s} {stats.total}")
