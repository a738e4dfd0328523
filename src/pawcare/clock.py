"""Timezone-aware instants.

Sweeps take ``now`` as a parameter; only the entry points (CLI, scheduler
jobs) read the wall clock, through ``now()``.
"""

from datetime import date, datetime

from pawcare.config import TZ


def now() -> datetime:
    return datetime.now(TZ)


def parse_instant(value: str | date | datetime) -> datetime:
    """Parse an ISO date or datetime; naive values are taken as local (TZ) time."""
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    else:
        result = datetime.fromisoformat(value)
    if result.tzinfo is None:
        result = result.replace(tzinfo=TZ)
    return result
