"""Shared markdown and JSONL I/O for persistent data files.

Every record is one ``<id>.md`` file: YAML frontmatter for the structured
fields, markdown body for the record's free-text field.
"""

import dataclasses
import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import yaml

from pawcare.config import DATA_DIR as DATA_DIR

STATE_DIR = DATA_DIR / "state"

T = TypeVar("T")
log = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Strip enums so yaml.safe_dump and json.dumps accept the value."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _atomic_write(target: Path, content: str) -> None:
    fd, tmp = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
    try:
        os.write(fd, content.encode())
    finally:
        os.close(fd)
    os.replace(tmp, target)


def _serialize_md(item: Any, body_field: str) -> str:
    """Build YAML frontmatter + markdown body, omitting fields left at their defaults."""
    data = _plain(dataclasses.asdict(item))
    body = data.pop(body_field) or ""
    defaults: dict[str, Any] = {}
    for f in dataclasses.fields(item):
        if f.default is not dataclasses.MISSING:
            defaults[f.name] = _plain(f.default)
        elif f.default_factory is not dataclasses.MISSING:
            defaults[f.name] = f.default_factory()
    front = {k: v for k, v in data.items() if k not in defaults or v != defaults[k]}
    yaml_text = yaml.safe_dump(front, sort_keys=False, allow_unicode=True)
    return f"---\n{yaml_text}---\n{body}\n"


def _parse_md(text: str, cls: type[T], body_field: str) -> T:
    """Parse a single markdown file with YAML frontmatter into a dataclass."""
    end = text.find("\n---", 3)
    if not text.startswith("---") or end == -1:
        raise ValueError("Missing YAML frontmatter delimiters")
    data = yaml.safe_load(text[3:end])
    if not isinstance(data, dict):
        raise ValueError("YAML frontmatter is not a mapping")

    names = {f.name for f in dataclasses.fields(cls)}  # type: ignore[arg-type]
    filtered = {k: v for k, v in data.items() if k in names}
    filtered[body_field] = text[end + 4 :].strip()
    return cls(**filtered)


def read_md(filepath: Path, cls: type[T], body_field: str) -> T | None:
    """None for a missing or corrupt file."""
    if not filepath.exists():
        return None
    try:
        return _parse_md(filepath.read_text(), cls, body_field)
    except (ValueError, yaml.YAMLError, TypeError, KeyError):
        log.warning("Skipping corrupt file: %s", filepath)
        return None


def read_md_dir(dir_path: Path, cls: type[T], body_field: str) -> list[T]:
    """Read all .md files in a directory into dataclass instances."""
    if not dir_path.is_dir():
        return []
    result: list[T] = []
    for filepath in sorted(dir_path.glob("*.md")):
        item = read_md(filepath, cls, body_field)
        if item is not None:
            result.append(item)
    return result


def write_md(dir_path: Path, item: Any, body_field: str) -> Path:
    """Write ``item`` to ``<dir>/<item.id>.md``. Atomic write."""
    dir_path.mkdir(parents=True, exist_ok=True)
    target = dir_path / f"{item.id}.md"
    _atomic_write(target, _serialize_md(item, body_field))
    return target


def remove_md(dir_path: Path, item_id: str) -> bool:
    target = dir_path / f"{item_id}.md"
    if not target.exists():
        return False
    target.unlink()
    return True


def read_jsonl(filepath: Path) -> list[dict[str, Any]]:
    """Skips blank and non-object lines."""
    if not filepath.exists():
        return []
    result: list[dict[str, Any]] = []
    for line in filepath.read_text().splitlines():
        stripped = line.strip()
        if not stripped or not stripped.startswith("{"):
            continue
        result.append(json.loads(stripped))
    return result


def append_jsonl(filepath: Path, item: Any) -> None:
    filepath.parent.mkdir(parents=True, exist_ok=True)
    record = dataclasses.asdict(item) if dataclasses.is_dataclass(item) else item
    with filepath.open("a") as f:
        f.write(json.dumps(_plain(record)) + "\n")
