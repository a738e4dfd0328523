"""Pet registry: the subjects reminders are generated for."""

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from uuid import uuid4

from pawcare.clock import parse_instant
from pawcare.storage import DATA_DIR, read_md, read_md_dir, write_md

PETS_DIR = DATA_DIR / "pets"


@dataclass(frozen=True, slots=True)
class Subject:
    id: str
    name: str
    owner_id: str
    birth_date: str  # ISO date or datetime
    scope: str | None = None  # breed or species
    active: bool = True
    notes: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.birth_date, (date, datetime)):
            object.__setattr__(self, "birth_date", self.birth_date.isoformat())

    @property
    def born(self) -> datetime:
        return parse_instant(self.birth_date)

    @staticmethod
    def new(
        name: str,
        *,
        owner_id: str,
        birth_date: str,
        scope: str | None = None,
        notes: str = "",
    ) -> "Subject":
        parse_instant(birth_date)
        return Subject(
            id=uuid4().hex[:8],
            name=name,
            owner_id=owner_id,
            birth_date=birth_date,
            scope=scope,
            notes=notes,
        )


class SubjectRegistry:
    """Pets stored as ``<id>.md`` files; body is free-form notes."""

    def __init__(self, dir_path: Path | None = None) -> None:
        self.dir_path = dir_path or PETS_DIR

    def get(self, subject_id: str) -> Subject | None:
        return read_md(self.dir_path / f"{subject_id}.md", Subject, "notes")

    def list_all(self) -> list[Subject]:
        return read_md_dir(self.dir_path, Subject, "notes")

    def list_active(self) -> list[Subject]:
        return [s for s in self.list_all() if s.active]

    def add(self, subject: Subject) -> Subject:
        write_md(self.dir_path, subject, "notes")
        return subject
