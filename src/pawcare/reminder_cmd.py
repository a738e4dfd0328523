"""CLI handler for `pawcare reminder` subcommand."""

import argparse
import sys

from pawcare.engine import ReminderEngine
from pawcare.errors import PawcareError
from pawcare.reminders import Reminder, ReminderKind, ReminderStatus


def _summary(r: Reminder) -> str:
    return f"{r.title} (pet {r.subject_id})"


def _fmt_schedule(r: Reminder) -> str:
    sched = f"due {r.due_date[:16]}  [{r.status.value}]"
    if r.snoozed_until:
        sched += f"  (until {r.snoozed_until[:16]})"
    return sched


def _print_detail(r: Reminder) -> None:
    print(f"{r.id}  {r.title}")
    print(f"  pet:       {r.subject_id}")
    print(f"  owner:     {r.owner_id}")
    print(f"  kind:      {r.kind.value}")
    print(f"  due:       {r.due_date}")
    print(f"  status:    {r.status.value}")
    print(f"  intervals: {', '.join(str(i) for i in r.intervals)}")
    if r.schedule_id:
        print(f"  schedule:  {r.schedule_id}")
    if r.snoozed_until:
        print(f"  snoozed:   until {r.snoozed_until}")
    if r.completed_at:
        print(f"  completed: {r.completed_at}")
    for sent in r.sent_history:
        print(f"  sent:      {sent}")
    if r.description:
        print(f"\n{r.description}")


def run_reminder_command(argv: list[str]) -> None:
    parser = argparse.ArgumentParser(prog="pawcare reminder")
    sub = parser.add_subparsers(dest="action")

    add_p = sub.add_parser("add", help="Create a reminder")
    add_p.add_argument("--pet", required=True, help="Pet ID")
    add_p.add_argument("--owner", required=True, help="Owner to notify")
    add_p.add_argument("--title", "-t", required=True, help="Reminder title")
    add_p.add_argument("--due", required=True, help="Due date (ISO date or datetime)")
    add_p.add_argument("--description", "-d", default="", help="Free-text details")
    add_p.add_argument(
        "--kind",
        default=ReminderKind.CUSTOM.value,
        choices=[k.value for k in ReminderKind],
    )
    add_p.add_argument("--intervals", type=int, nargs="+", default=None, help="Days-before-due thresholds")

    list_p = sub.add_parser("list", help="Show reminders")
    list_p.add_argument("--pet", default=None)
    list_p.add_argument("--owner", default=None)
    list_p.add_argument("--status", default=None, choices=[s.value for s in ReminderStatus])

    upcoming_p = sub.add_parser("upcoming", help="Show active reminders due soon")
    upcoming_p.add_argument("--days", type=int, default=30)

    show_p = sub.add_parser("show", help="Show one reminder")
    show_p.add_argument("id")

    complete_p = sub.add_parser("complete", help="Mark a reminder done")
    complete_p.add_argument("id")
    complete_p.add_argument("--record", default=None, help="ID of the record that satisfied it")

    cancel_p = sub.add_parser("cancel", help="Cancel a reminder")
    cancel_p.add_argument("id")

    snooze_p = sub.add_parser("snooze", help="Snooze a reminder")
    snooze_p.add_argument("id")
    snooze_p.add_argument("--days", type=int, default=1)

    intervals_p = sub.add_parser("intervals", help="Set escalation thresholds")
    intervals_p.add_argument("id")
    intervals_p.add_argument("values", type=int, nargs="+")

    delete_p = sub.add_parser("delete", help="Delete a reminder")
    delete_p.add_argument("id")

    args = parser.parse_args(argv)
    engine = ReminderEngine()

    try:
        if args.action == "add":
            _handle_add(engine, args)
        elif args.action == "list":
            _handle_list(engine, args)
        elif args.action == "upcoming":
            _print_rows(engine.find_upcoming(args.days), f"nothing due in the next {args.days} days")
        elif args.action == "show":
            _print_detail(engine.get(args.id))
        elif args.action == "complete":
            r = engine.complete(args.id, args.record)
            print(f"completed {r.id} -- {_summary(r)}")
        elif args.action == "cancel":
            r = engine.cancel(args.id)
            print(f"cancelled {r.id} -- {_summary(r)}")
        elif args.action == "snooze":
            r = engine.snooze(args.id, args.days)
            print(f"snoozed {r.id} until {r.snoozed_until[:16]}")
        elif args.action == "intervals":
            r = engine.set_intervals(args.id, args.values)
            print(f"intervals for {r.id}: {', '.join(str(i) for i in r.intervals)}")
        elif args.action == "delete":
            engine.delete(args.id)
            print(f"deleted {args.id}")
        else:
            parser.print_help()
            sys.exit(1)
    except PawcareError as e:
        print(f"error: {e}")
        sys.exit(1)


def _handle_add(engine: ReminderEngine, args: argparse.Namespace) -> None:
    data = {
        "subject_id": args.pet,
        "owner_id": args.owner,
        "title": args.title,
        "due_date": args.due,
        "description": args.description,
        "kind": args.kind,
    }
    if args.intervals is not None:
        data["intervals"] = args.intervals
    reminder = engine.create(data)
    print(f"scheduled {reminder.id}: {_fmt_schedule(reminder)} -- {_summary(reminder)}")


def _handle_list(engine: ReminderEngine, args: argparse.Namespace) -> None:
    if args.pet:
        reminders = engine.find_by_subject(args.pet)
    elif args.owner:
        reminders = engine.find_by_owner(args.owner)
    else:
        reminders = engine.store.list_all()
    if args.status:
        reminders = [r for r in reminders if r.status.value == args.status]
    _print_rows(reminders, "no reminders")


def _print_rows(reminders: list[Reminder], empty: str) -> None:
    if not reminders:
        print(empty)
        return
    for r in reminders:
        print(f"  {r.id}  {_fmt_schedule(r):40s}  {_summary(r)}")
