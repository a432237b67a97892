"""
Daily scheduler for the expiry automation rules.

A Scheduler is an explicit value built once at process start. It owns a list
of (daily trigger, runner) pairs and an explicit start/stop lifecycle; the
timing itself is delegated to an APScheduler AsyncIOScheduler, one cron job
per rule in the configured timezone.

Rules fire at most once per local calendar day. There is no catch-up: a
scheduler started after today's trigger time waits for tomorrow, and a run
that could not start within the misfire grace (e.g. after the host was
suspended) is skipped. Each job allows a single instance at a time.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Protocol

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED, JobEvent
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from agents.expiry_automation import FlashSaleRunner, StockRotationRunner
from config.config import ExpiryAutomationConfig
from connectors.inventory_store import InventoryStore
from connectors.notifications import NotificationDispatcher
from models.automation import DailyTrigger, RunSummary

logger = logging.getLogger(__name__)


class Runner(Protocol):
    async def run(self) -> RunSummary: ...


@dataclass
class ScheduledRule:
    name: str
    trigger: DailyTrigger
    runner: Runner
    last_summary: RunSummary | None = None
    missed_runs: int = 0


def cron_trigger(trigger: DailyTrigger, tz: tzinfo) -> CronTrigger:
    return CronTrigger(hour=trigger.hour, minute=trigger.minute, timezone=tz)


class Scheduler:
    def __init__(self, tz: tzinfo, *, misfire_grace_seconds: int = 60):
        self.timezone = tz
        self.misfire_grace_seconds = misfire_grace_seconds
        self.rules: list[ScheduledRule] = []
        self._scheduler = AsyncIOScheduler(timezone=tz)
        self._scheduler.add_listener(self._on_skipped, EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES)
        self._in_flight: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._scheduler.running

    def add_rule(self, name: str, trigger: DailyTrigger, runner: Runner) -> ScheduledRule:
        if self.is_running:
            raise RuntimeError("Rules must be registered before the scheduler starts")
        if self.get_rule(name) is not None:
            raise ValueError(f"Rule {name!r} is already registered")
        rule = ScheduledRule(name=name, trigger=trigger, runner=runner)
        self._scheduler.add_job(
            self._run_job,
            trigger=cron_trigger(trigger, self.timezone),
            args=[name],
            id=name,
            name=name,
            misfire_grace_time=self.misfire_grace_seconds,
            coalesce=True,
            max_instances=1,
        )
        self.rules.append(rule)
        return rule

    def get_rule(self, name: str) -> ScheduledRule | None:
        return next((r for r in self.rules if r.name == name), None)

    def get_job(self, name: str) -> Job | None:
        return self._scheduler.get_job(name)

    def start(self) -> None:
        """Start the cron jobs on the running event loop."""
        if self.is_running:
            logger.warning("Scheduler already started")
            return
        # Raises RuntimeError when called outside a running event loop
        asyncio.get_running_loop()
        self._scheduler.start()
        for rule in self.rules:
            job = self.get_job(rule.name)
            logger.info(
                f"Scheduled {rule.name} to run every day at {rule.trigger} ({self.timezone}); "
                f"next run at {job.next_run_time.isoformat()}."
            )

    async def stop(self, wait: bool = True) -> None:
        """Stop firing; wait for in-flight runs to finish, or cancel them."""
        if not self.is_running:
            return
        self._scheduler.pause()
        in_flight = list(self._in_flight)
        if in_flight:
            if wait:
                logger.info(f"Waiting for {len(in_flight)} in-flight automation runs")
            else:
                for task in in_flight:
                    task.cancel()
            await asyncio.gather(*in_flight, return_exceptions=True)
        self._scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    async def trigger_now(self, name: str) -> RunSummary | None:
        """Run a rule immediately, outside its cron schedule."""
        rule = self.get_rule(name)
        if rule is None:
            raise KeyError(name)
        return await self._run_rule(rule)

    async def _run_job(self, name: str) -> None:
        task = asyncio.current_task()
        self._in_flight.add(task)
        try:
            await self._run_rule(self.get_rule(name))
        finally:
            self._in_flight.discard(task)

    async def _run_rule(self, rule: ScheduledRule) -> RunSummary | None:
        logger.info(f"Trigger fired for {rule.name}")
        try:
            summary = await rule.runner.run()
        except Exception:
            logger.error(f"Automation rule {rule.name} raised unexpectedly", exc_info=True)
            return None
        rule.last_summary = summary
        return summary

    def _on_skipped(self, event: JobEvent) -> None:
        rule = self.get_rule(event.job_id)
        if rule is None:
            return
        if event.code == EVENT_JOB_MISSED:
            rule.missed_runs += 1
            scheduled: datetime = event.scheduled_run_time
            logger.warning(
                f"{rule.name}: missed {scheduled.isoformat()} by more than "
                f"{self.misfire_grace_seconds}s; skipping today's run"
            )
        else:
            logger.warning(f"{rule.name}: previous run still in progress; skipping this trigger")


def build_expiry_scheduler(
    config: ExpiryAutomationConfig,
    store: InventoryStore,
    dispatcher: NotificationDispatcher,
) -> Scheduler:
    """Register the flash-sale and stock-rotation runners at their configured daily times."""
    scheduler = Scheduler(config.tzinfo, misfire_grace_seconds=config.misfire_grace_seconds)
    flash_sale = FlashSaleRunner(store, dispatcher, config)
    rotation = StockRotationRunner(store, dispatcher, config)
    scheduler.add_rule(flash_sale.name, config.flash_sale_trigger, flash_sale)
    scheduler.add_rule(rotation.name, config.rotation_trigger, rotation)
    return scheduler
