"""
Unit tests for CronScheduler.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from busops.services.scheduler import CronScheduler, build_cron_trigger

AFTERNOON = datetime(2026, 3, 10, 14, 30, tzinfo=timezone.utc)
EARLY_MORNING = datetime(2026, 3, 10, 1, 15, tzinfo=timezone.utc)


@pytest.fixture
def scheduler():
    return CronScheduler(timezone="UTC", clock=lambda: AFTERNOON)


class TestCronTrigger:
    """Test cases for build_cron_trigger."""

    def test_five_field_expression(self):
        trigger = build_cron_trigger("0 2 * * *")

        next_fire = trigger.get_next_fire_time(None, AFTERNOON)

        assert next_fire == datetime(2026, 3, 11, 2, 0, tzinfo=timezone.utc)

    def test_six_field_expression(self):
        trigger = build_cron_trigger("30 0 2 * * *")

        next_fire = trigger.get_next_fire_time(None, EARLY_MORNING)

        assert next_fire == datetime(2026, 3, 10, 2, 0, 30, tzinfo=timezone.utc)

    def test_invalid_expression(self):
        with pytest.raises(ValueError):
            build_cron_trigger("99 2 * * *")


class TestCronScheduler:
    """Test cases for CronScheduler."""

    def test_next_fire_uses_injected_clock(self, scheduler):
        """At 14:30 the 02:00 job next fires tomorrow; at 01:15 later today."""
        async def noop():
            return None

        scheduler.register_cron_job("daily-sync", "0 2 * * *", noop)

        assert scheduler.next_fire_time("daily-sync") == datetime(2026, 3, 11, 2, 0,
                                                                  tzinfo=timezone.utc)
        assert scheduler.next_fire_time("daily-sync", now=EARLY_MORNING) == datetime(
            2026, 3, 10, 2, 0, tzinfo=timezone.utc)
        assert scheduler.next_fire_time("unknown") is None

    def test_job_info(self, scheduler):
        async def noop():
            return None

        scheduler.register_cron_job("daily-sync", "0 2 * * *", noop)

        info = scheduler.get_job_info("daily-sync")
        assert info["id"] == "daily-sync"
        assert info["next_run_time"].startswith("2026-03-11T02:00:00")
        assert scheduler.get_job_info("unknown") is None

    @pytest.mark.asyncio
    async def test_run_job_fires_callback(self, scheduler):
        calls = []

        async def callback():
            calls.append("ran")
            return "done"

        scheduler.register_cron_job("daily-sync", "0 2 * * *", callback)

        assert await scheduler.run_job("daily-sync") == "done"
        assert calls == ["ran"]

    @pytest.mark.asyncio
    async def test_failing_job_does_not_raise(self, scheduler):
        """A failing run is logged and the job stays registered."""
        async def callback():
            raise RuntimeError("sync exploded")

        scheduler.register_cron_job("daily-sync", "0 2 * * *", callback)

        assert await scheduler.run_job("daily-sync") is None
        assert scheduler.next_fire_time("daily-sync") is not None

    @pytest.mark.asyncio
    async def test_run_unknown_job(self, scheduler):
        with pytest.raises(KeyError):
            await scheduler.run_job("missing")

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self, scheduler):
        async def noop():
            return None

        scheduler.register_cron_job("daily-sync", "0 2 * * *", noop)
        scheduler.start()
        try:
            assert scheduler.running
        finally:
            scheduler.shutdown()

        await asyncio.sleep(0)
        assert not scheduler.running
