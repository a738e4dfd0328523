"""CLI handler for `pawcare schedule` subcommand."""

import argparse
import sys

from pawcare.errors import PawcareError
from pawcare.reminders import ReminderKind
from pawcare.schedules import ScheduleDefinition, ScheduleProvider, seed_schedules


def _fmt(s: ScheduleDefinition) -> str:
    every = f"every {s.interval_weeks}w" if s.interval_weeks else "once"
    scope = s.scope or "general"
    flags = "" if s.active else "  (inactive)"
    return f"at {s.recommended_age_weeks}w, {every}  [{scope}, p{s.priority}]{flags}"


def run_schedule_command(argv: list[str]) -> None:
    parser = argparse.ArgumentParser(prog="pawcare schedule")
    sub = parser.add_subparsers(dest="action")

    add_p = sub.add_parser("add", help="Add a care schedule definition")
    add_p.add_argument("--name", "-n", required=True, help="Vaccine or task name")
    add_p.add_argument("--age-weeks", type=int, required=True, help="Age at first dose")
    add_p.add_argument("--every-weeks", type=int, default=None, help="Repeat interval (omit for one-time)")
    add_p.add_argument("--scope", default=None, help="Breed or species (omit for all pets)")
    add_p.add_argument("--priority", type=int, default=1)
    add_p.add_argument("--kind", default=ReminderKind.VACCINATION.value, choices=[k.value for k in ReminderKind])
    add_p.add_argument("--description", "-d", default="")

    sub.add_parser("list", help="Show schedule definitions")

    seed_p = sub.add_parser("seed", help="Add default vaccine schedules")
    seed_p.add_argument("species", choices=["dog", "cat"])

    args = parser.parse_args(argv)
    provider = ScheduleProvider()

    try:
        if args.action == "add":
            schedule = ScheduleDefinition.new(
                args.name,
                recommended_age_weeks=args.age_weeks,
                interval_weeks=args.every_weeks,
                scope=args.scope,
                priority=args.priority,
                kind=ReminderKind(args.kind),
                description=args.description,
            )
            provider.add(schedule)
            print(f"added {schedule.id}: {_fmt(schedule)} -- {schedule.name}")
        elif args.action == "list":
            schedules = sorted(provider.list_all(), key=lambda s: (-s.priority, s.recommended_age_weeks))
            if not schedules:
                print("no schedules")
                return
            for s in schedules:
                print(f"  {s.id}  {_fmt(s):36s}  {s.name}")
        elif args.action == "seed":
            added = seed_schedules(provider, args.species)
            print(f"seeded {len(added)} {args.species} schedule(s)")
        else:
            parser.print_help()
            sys.exit(1)
    except PawcareError as e:
        print(f"error: {e}")
        sys.exit(1)
