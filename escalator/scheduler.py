"""
In-process job scheduler for single-process deployments.

Owns one asyncio task per periodic job for the lifetime of the API process.
Jobs run on the event loop and interleave with request handling at their
await points. Runs of the same job never overlap each other, but a manual
trigger can run alongside a scheduled run.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from escalator.tasks.conversation_tasks import run_reconciliation, run_retention

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[object]]
DelayFunc = Callable[[datetime], float]


def seconds_until_next_minute(now: datetime) -> float:
    """Delay to the next whole minute (cron ``*/1 * * * *``)."""
    next_run = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
    return (next_run - now).total_seconds()


def seconds_until_midnight(now: datetime) -> float:
    """Delay to the next local midnight (cron ``0 0 * * *``)."""
    next_run = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), tzinfo=now.tzinfo)
    return (next_run - now).total_seconds()


def next_fire_time(next_delay: DelayFunc, current: datetime, last_fire: datetime | None = None) -> datetime:
    """Next fire time, never computed from before the previous one.

    The event loop timer may wake a job slightly before its boundary; basing
    the next delay on the planned fire time keeps that boundary from firing twice.
    """
    base = current if last_fire is None else max(current, last_fire)
    return base + timedelta(seconds=next_delay(base))


async def run_logged(name: str, func: JobFunc):
    """Run a job and log its outcome. Failures are logged, never raised."""
    logger.info("Job %s started", name)
    try:
        result = await func()
    except Exception:
        logger.exception("Job %s failed", name)
        return None
    logger.info("Job %s finished: %s", name, result)
    return result


class JobScheduler:

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._jobs: dict[str, tuple[JobFunc, DelayFunc]] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def add_job(self, name: str, func: JobFunc, next_delay: DelayFunc) -> None:
        if name in self._jobs:
            raise ValueError(f"Job already registered: {name}")
        self._jobs[name] = (func, next_delay)

    @property
    def running(self) -> list[str]:
        return [name for name, task in self._tasks.items() if not task.done()]

    def start(self) -> None:
        """Start every registered job. Must be called from a running event loop."""
        for name, (func, next_delay) in self._jobs.items():
            if name in self.running:
                continue
            self._tasks[name] = asyncio.create_task(self._loop(name, func, next_delay), name=f"job:{name}")
            logger.info("Scheduled job %s", name)

    def cancel(self, name: str) -> bool:
        task = self._tasks.get(name)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Scheduler stopped")

    async def _loop(self, name: str, func: JobFunc, next_delay: DelayFunc) -> None:
        fire_at = None
        while True:
            current = self._clock()
            fire_at = next_fire_time(next_delay, current, fire_at)
            await asyncio.sleep(max((fire_at - current).total_seconds(), 0))
            await run_logged(name, func)


def build_scheduler() -> JobScheduler:
    scheduler = JobScheduler()
    scheduler.add_job("reconciliation", run_reconciliation, seconds_until_next_minute)
    scheduler.add_job("retention", run_retention, seconds_until_midnight)
    return scheduler
