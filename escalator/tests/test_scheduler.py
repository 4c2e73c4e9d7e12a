"""Tests for the in-process job scheduler."""

import asyncio
import logging
from datetime import datetime

import pytest

from escalator.scheduler import (
    JobScheduler,
    build_scheduler,
    next_fire_time,
    run_logged,
    seconds_until_midnight,
    seconds_until_next_minute,
)


class TestDelays:

    def test_next_minute_mid_minute(self):
        assert seconds_until_next_minute(datetime(2026, 10, 19, 12, 30, 15)) == 45.0

    def test_next_minute_on_boundary(self):
        assert seconds_until_next_minute(datetime(2026, 10, 19, 12, 30, 0)) == 60.0

    def test_midnight_from_evening(self):
        assert seconds_until_midnight(datetime(2026, 10, 19, 23, 0, 0)) == 3600.0

    def test_midnight_at_midnight_waits_a_day(self):
        assert seconds_until_midnight(datetime(2026, 10, 19, 0, 0, 0)) == 86400.0

    def test_midnight_crosses_month_end(self):
        assert seconds_until_midnight(datetime(2026, 10, 31, 23, 59, 30)) == 30.0


class TestNextFireTime:

    def test_first_fire_from_current_time(self):
        fire_at = next_fire_time(seconds_until_next_minute, datetime(2026, 10, 19, 12, 30, 15))
        assert fire_at == datetime(2026, 10, 19, 12, 31, 0)

    def test_early_wake_before_midnight_does_not_refire(self):
        planned = datetime(2026, 10, 20, 0, 0, 0)
        woke_early = datetime(2026, 10, 19, 23, 59, 59, 999500)

        fire_at = next_fire_time(seconds_until_midnight, woke_early, planned)

        assert fire_at == datetime(2026, 10, 21, 0, 0, 0)

    def test_early_wake_before_minute_does_not_refire(self):
        planned = datetime(2026, 10, 19, 12, 31, 0)
        woke_early = datetime(2026, 10, 19, 12, 30, 59, 999900)

        fire_at = next_fire_time(seconds_until_next_minute, woke_early, planned)

        assert fire_at == datetime(2026, 10, 19, 12, 32, 0)

    def test_long_run_schedules_from_current_time(self):
        planned = datetime(2026, 10, 19, 12, 31, 0)
        finished_late = datetime(2026, 10, 19, 12, 33, 20)

        fire_at = next_fire_time(seconds_until_next_minute, finished_late, planned)

        assert fire_at == datetime(2026, 10, 19, 12, 34, 0)


@pytest.mark.asyncio
class TestRunLogged:

    async def test_returns_job_result(self, caplog):
        async def job():
            return {"deleted": 3}

        with caplog.at_level(logging.INFO, logger="escalator.scheduler"):
            assert await run_logged("retention", job) == {"deleted": 3}
        assert "Job retention finished" in caplog.text

    async def test_swallows_and_logs_failure(self, caplog):
        async def job():
            raise RuntimeError("remote down")

        assert await run_logged("reconciliation", job) is None
        assert "Job reconciliation failed" in caplog.text
        assert "remote down" in caplog.text


@pytest.mark.asyncio
class TestJobScheduler:

    async def test_runs_registered_job_until_stopped(self):
        calls = []

        async def job():
            calls.append(1)

        scheduler = JobScheduler(clock=lambda: datetime(2026, 1, 1))
        scheduler.add_job("fast", job, lambda now: 0.001)
        scheduler.start()
        await asyncio.sleep(0.05)

        assert calls
        assert scheduler.running == ["fast"]

        await scheduler.stop()
        assert scheduler.running == []

    async def test_failing_job_keeps_firing(self):
        calls = []

        async def job():
            calls.append(1)
            raise RuntimeError("boom")

        scheduler = JobScheduler()
        scheduler.add_job("flaky", job, lambda now: 0.001)
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert len(calls) >= 2

    async def test_cancel_single_job(self):
        async def job():
            return None

        scheduler = JobScheduler()
        scheduler.add_job("a", job, lambda now: 3600)
        scheduler.add_job("b", job, lambda now: 3600)
        scheduler.start()

        assert scheduler.cancel("a") is True
        await asyncio.sleep(0.01)
        assert scheduler.running == ["b"]
        assert scheduler.cancel("missing") is False

        await scheduler.stop()

    async def test_duplicate_job_name_rejected(self):
        async def job():
            return None

        scheduler = JobScheduler()
        scheduler.add_job("a", job, lambda now: 60)
        with pytest.raises(ValueError):
            scheduler.add_job("a", job, lambda now: 60)

    async def test_build_scheduler_registers_both_jobs(self):
        scheduler = build_scheduler()
        scheduler.start()

        assert scheduler.running == ["reconciliation", "retention"]

        await scheduler.stop()
