"""Periodic sweeps via APScheduler.

Two jobs: every ``SWEEP_MINUTES`` the hourly sweep wakes expired snoozes,
escalates, and dispatches; once a day at ``DAILY_HOUR`` the daily sweep
generates reminders for every active pet and prunes old finished ones.

``run_hourly`` and ``run_daily`` take ``now`` explicitly; the jobs are thin
wrappers that read the clock and call them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from pawcare import clock, config
from pawcare.dispatch import Dispatcher
from pawcare.engine import ReminderEngine, Statistics
from pawcare.escalation import EscalationResult, SweepError
from pawcare.generator import GenerationResult

log = logging.getLogger(__name__)


@dataclass
class HourlyRun:
    started_at: str
    woken: int
    escalation: EscalationResult
    statistics: Statistics


@dataclass
class DailyRun:
    started_at: str
    generation: GenerationResult
    cleaned_up: int = 0
    cleanup_errors: list[SweepError] = field(default_factory=list)


def run_hourly(engine: ReminderEngine, dispatcher: Dispatcher, now: datetime) -> HourlyRun:
    woken = engine.wake_snoozed(now)
    escalation = engine.run_escalation_sweep(now, dispatcher)
    stats = engine.statistics()
    log.info(
        "Hourly sweep at %s: woke %d, sent %d/%d, %d error(s); %d reminder(s) total",
        now.isoformat(timespec="minutes"),
        woken,
        escalation.dispatched,
        len(escalation.notifications),
        len(escalation.errors),
        stats.total,
    )
    return HourlyRun(started_at=now.isoformat(), woken=woken, escalation=escalation, statistics=stats)


def run_daily(engine: ReminderEngine, now: datetime, *, retention_days: int | None = None) -> DailyRun:
    generation = engine.run_generation_sweep(now)
    cleaned, cleanup_errors = engine.cleanup_expired(now, retention_days or config.RETENTION_DAYS)
    return DailyRun(
        started_at=now.isoformat(),
        generation=generation,
        cleaned_up=cleaned,
        cleanup_errors=cleanup_errors,
    )


def setup_scheduler(engine: ReminderEngine, dispatcher: Dispatcher) -> AsyncIOScheduler:
    """Register the hourly and daily sweeps. The caller starts the scheduler."""
    scheduler = AsyncIOScheduler(timezone=config.TZ)

    # max_instances=2 keeps APScheduler from logging a "skipped" warning when a
    # slow run overlaps the next trigger; the busy flags are the real guard and
    # make the overlapping invocation return immediately.
    busy = {"hourly": False, "daily": False}

    @scheduler.scheduled_job(
        IntervalTrigger(minutes=config.SWEEP_MINUTES), id="hourly_sweep", max_instances=2
    )
    async def hourly_sweep() -> None:
        if busy["hourly"]:
            log.warning("Hourly sweep still running; skipping this trigger")
            return
        busy["hourly"] = True
        try:
            await asyncio.to_thread(run_hourly, engine, dispatcher, clock.now())
        except Exception:
            log.exception("Hourly sweep failed")
        finally:
            busy["hourly"] = False

    @scheduler.scheduled_job(
        CronTrigger(hour=config.DAILY_HOUR, minute=0), id="daily_sweep", max_instances=2
    )
    async def daily_sweep() -> None:
        if busy["daily"]:
            log.warning("Daily sweep still running; skipping this trigger")
            return
        busy["daily"] = True
        try:
            await asyncio.to_thread(run_daily, engine, clock.now())
        except Exception:
            log.exception("Daily sweep failed")
        finally:
            busy["daily"] = False

    return scheduler
