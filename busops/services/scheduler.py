"""
Cron scheduler using APScheduler.
Runs the daily sync on the application's event loop.
"""
from datetime import datetime, timezone as dt_timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from busops.core.logging import get_logger

logger = get_logger(__name__)


def build_cron_trigger(cron_expression: str, timezone: str = "UTC") -> CronTrigger:
    """
    Build a trigger from a 5-field (minute hour day month weekday)
    or 6-field (second minute hour day month weekday) expression.
    """
    parts = cron_expression.split()

    if len(parts) >= 6:
        return CronTrigger(
            second=parts[0],
            minute=parts[1],
            hour=parts[2],
            day=parts[3],
            month=parts[4],
            day_of_week=parts[5],
            timezone=timezone
        )

    if len(parts) < 5:
        parts.extend(['*'] * (5 - len(parts)))
    return CronTrigger(
        second='0',
        minute=parts[0],
        hour=parts[1],
        day=parts[2],
        month=parts[3],
        day_of_week=parts[4],
        timezone=timezone
    )


class CronScheduler:
    """Timer plus callbacks, with an injectable clock for next-run computation."""

    def __init__(self, timezone: str = "UTC",
                 clock: Callable[[], datetime] = lambda: datetime.now(dt_timezone.utc)):
        self.timezone = timezone
        self._clock = clock
        self._scheduler = AsyncIOScheduler(timezone=timezone)
        self._callbacks: Dict[str, Callable[[], Awaitable[Any]]] = {}
        self._triggers: Dict[str, CronTrigger] = {}

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self):
        """Start the scheduler if not already running. Needs a running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started", jobs=list(self._callbacks))

    def shutdown(self):
        """
        Stop the scheduler without waiting for running jobs.
        On asyncio the stop is applied on the next turn of the event loop.
        """
        if self._scheduler.running:
            logger.info("Stopping scheduler")
            self._scheduler.shutdown(wait=False)

    def register_cron_job(self, job_id: str, cron_expression: str,
                          callback: Callable[[], Awaitable[Any]]) -> str:
        """Register (or replace) an async callback on a cron expression."""
        trigger = build_cron_trigger(cron_expression, self.timezone)
        self._scheduler.add_job(
            self._guarded(job_id, callback),
            trigger=trigger,
            id=job_id,
            replace_existing=True,
        )
        self._callbacks[job_id] = callback
        self._triggers[job_id] = trigger

        logger.info("Registered cron job", job_id=job_id, expression=cron_expression)
        return job_id

    def next_fire_time(self, job_id: str, now: Optional[datetime] = None) -> Optional[datetime]:
        """When the job fires next after ``now`` (defaults to the scheduler clock)."""
        trigger = self._triggers.get(job_id)
        if trigger is None:
            return None
        return trigger.get_next_fire_time(None, now or self._clock())

    async def run_job(self, job_id: str) -> Any:
        """Fire a job immediately, as the trigger would."""
        callback = self._callbacks.get(job_id)
        if callback is None:
            raise KeyError(job_id)
        return await self._guarded(job_id, callback)()

    def get_job_info(self, job_id: str) -> Optional[Dict]:
        if job_id not in self._triggers:
            return None
        next_run = self.next_fire_time(job_id)
        return {
            "id": job_id,
            "next_run_time": next_run.isoformat() if next_run else None,
            "trigger": str(self._triggers[job_id]),
        }

    @staticmethod
    def _guarded(job_id: str, callback: Callable[[], Awaitable[Any]]):
        async def run():
            try:
                return await callback()
            except Exception as e:
                logger.error("Scheduled job failed", job_id=job_id, error=str(e), exc_info=True)
                return None
        return run
