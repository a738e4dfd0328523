"""CLI handler for `pawcare pet` subcommand."""

import argparse
import sys

from pawcare.engine import ReminderEngine
from pawcare.errors import PawcareError
from pawcare.subjects import Subject, SubjectRegistry


def run_pet_command(argv: list[str]) -> None:
    parser = argparse.ArgumentParser(prog="pawcare pet")
    sub = parser.add_subparsers(dest="action")

    add_p = sub.add_parser("add", help="Register a pet")
    add_p.add_argument("--name", "-n", required=True)
    add_p.add_argument("--owner", required=True, help="Owner to notify")
    add_p.add_argument("--born", required=True, help="Birth date (YYYY-MM-DD)")
    add_p.add_argument("--scope", default=None, help="Breed or species")

    sub.add_parser("list", help="Show registered pets")

    gen_p = sub.add_parser("generate", help="Create due reminders for one pet")
    gen_p.add_argument("id")

    args = parser.parse_args(argv)
    registry = SubjectRegistry()

    if args.action == "add":
        try:
            pet = Subject.new(args.name, owner_id=args.owner, birth_date=args.born, scope=args.scope)
        except ValueError:
            print(f"error: invalid birth date {args.born!r}")
            sys.exit(1)
        registry.add(pet)
        print(f"added {pet.id}: {pet.name} (born {pet.birth_date})")
    elif args.action == "list":
        pets = registry.list_all()
        if not pets:
            print("no pets")
            return
        for p in pets:
            flag = "" if p.active else "  (inactive)"
            print(f"  {p.id}  {p.name:20s}  born {p.birth_date}  owner {p.owner_id}{flag}")
    elif args.action == "generate":
        try:
            created = ReminderEngine(subjects=registry).generate_for_subject(args.id)
        except PawcareError as e:
            print(f"error: {e}")
            sys.exit(1)
        if not created:
            print("no new reminders")
        for r in created:
            print(f"  {r.id}  due {r.due_date[:10]}  {r.title}")
    else:
        parser.print_help()
        sys.exit(1)
