"""User-configurable values loaded from environment variables."""

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        value = None
    if value is None or value < minimum:
        print(f"Invalid {name}={raw!r}: expected an integer >= {minimum}", file=sys.stderr)
        print("Fix it in .env or your environment.", file=sys.stderr)
        raise SystemExit(1)
    return value


def _detect_local_tz() -> str:
    """Detect the system's IANA timezone name. Falls back to UTC."""
    # Debian/Ubuntu: plain text file with IANA name
    etc_tz = Path("/etc/timezone")
    if etc_tz.exists():
        name = etc_tz.read_text().strip()
        if name:
            return name

    # Most Linux: /etc/localtime is a symlink into zoneinfo
    localtime = Path("/etc/localtime")
    if localtime.is_symlink():
        target = str(localtime.resolve())
        marker = "/zoneinfo/"
        idx = target.find(marker)
        if idx != -1:
            return target[idx + len(marker) :]

    return "UTC"


DATA_DIR: Path = Path(os.environ.get("PAWCARE_DATA_DIR") or Path.home() / ".pawcare").expanduser()
TZ: ZoneInfo = ZoneInfo(os.environ.get("PAWCARE_TIMEZONE") or _detect_local_tz())

SWEEP_MINUTES: int = _int_env("PAWCARE_SWEEP_MINUTES", 60, minimum=1)
DAILY_HOUR: int = _int_env("PAWCARE_DAILY_HOUR", 2)
if DAILY_HOUR > 23:
    print(f"Invalid PAWCARE_DAILY_HOUR={DAILY_HOUR}: expected 0-23", file=sys.stderr)
    raise SystemExit(1)
MAX_SNOOZE_DAYS: int = _int_env("PAWCARE_MAX_SNOOZE_DAYS", 30, minimum=1)
RETENTION_DAYS: int = _int_env("PAWCARE_RETENTION_DAYS", 365, minimum=1)
LOG_LEVEL: str = (os.environ.get("PAWCARE_LOG_LEVEL") or "INFO").upper()
