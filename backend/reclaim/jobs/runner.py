"""Periodic maintenance job runner.

Jobs run one at a time in a worker thread off a single asyncio loop. A job
that raises is logged and rescheduled; it never stops the runner.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Upper bound on how long the loop sleeps, so stop() is noticed promptly
MAX_SLEEP_SECONDS = 1.0


class Job(ABC):
    """A unit of periodic maintenance work."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable job name, used in logs."""
        ...

    @abstractmethod
    def run(self) -> None:
        """Run the job once."""
        ...


@dataclass
class ScheduledJob:
    job: Job
    interval: float
    next_run: float


class JobRunner:
    """Runs registered jobs at fixed intervals."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.jobs: list[ScheduledJob] = []
        self.running = False

    def register(self, job: Job, interval_seconds: float) -> None:
        """Register a job. Its first run is due immediately.

        Args:
            job: The job to run
            interval_seconds: Seconds between the end of one run and the next
        """
        if interval_seconds <= 0:
            raise ValueError(f"Job interval must be positive, got {interval_seconds}")
        self.jobs.append(ScheduledJob(job, float(interval_seconds), self.clock()))
        logger.info(f"Registered job '{job.name}' every {interval_seconds}s")

    def run_pending(self) -> list[str]:
        """Run every job that is due.

        Returns:
            Names of the jobs that ran
        """
        ran = []
        for scheduled in self.jobs:
            if scheduled.next_run > self.clock():
                continue
            try:
                scheduled.job.run()
            except Exception:
                logger.exception(f"Job '{scheduled.job.name}' failed")
            scheduled.next_run = self.clock() + scheduled.interval
            ran.append(scheduled.job.name)
        return ran

    def seconds_until_next(self) -> float:
        """Seconds until the next job is due, 0 if one is overdue."""
        if not self.jobs:
            return MAX_SLEEP_SECONDS
        next_run = min(scheduled.next_run for scheduled in self.jobs)
        return max(next_run - self.clock(), 0.0)

    async def start(self) -> None:
        """Run jobs until stop() is called."""
        self.running = True
        logger.info(f"Job runner started with {len(self.jobs)} job(s)")

        while self.running:
            await asyncio.to_thread(self.run_pending)
            await asyncio.sleep(min(self.seconds_until_next(), MAX_SLEEP_SECONDS))

        logger.info("Job runner stopped")

    def stop(self) -> None:
        """Ask the loop in start() to exit after the current pass."""
        self.running = False
