"""Periodic job scheduler for Reviewflow.

Runs each periodic operation (assignment pass, state-change drain,
single-shot drain, stale sweep) in its own asyncio task on a fixed
interval. Iterations are never cancelled mid-batch: ``stop()`` wakes the
sleeping loops and waits for any running iteration to finish.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from reviewflow.assignment.orchestrator import AssignmentOrchestrator
from reviewflow.config import ReviewflowConfig
from reviewflow.logging import set_correlation_id
from reviewflow.notifications.dedup import NotificationDedupEngine

logger = structlog.get_logger(__name__)

JobFunc = Callable[[], Awaitable[Any]]


@dataclass
class PeriodicJob:
    """A named coroutine function run every ``interval_seconds``.

    Attributes:
        name: Job name used in logs.
        func: Coroutine function executed each iteration.
        interval_seconds: Pause between the end of one iteration and the
            start of the next.
        iterations: Completed iterations, successful or not.
        failures: Iterations that raised.
    """

    name: str
    func: JobFunc
    interval_seconds: float
    iterations: int = field(default=0)
    failures: int = field(default=0)


class PeriodicScheduler:
    """Runs periodic jobs until stopped."""

    def __init__(self, jobs: list[PeriodicJob]) -> None:
        self.jobs = jobs
        self._running = False
        self._stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []
        self._logger = logger.bind(component="PeriodicScheduler")

    @classmethod
    def from_components(
        cls,
        config: ReviewflowConfig,
        orchestrator: AssignmentOrchestrator,
        dedup_engine: NotificationDedupEngine,
    ) -> PeriodicScheduler:
        """Build the standard Reviewflow job set."""
        notify_interval = config.notifications.poll_interval_seconds
        return cls(
            [
                PeriodicJob(
                    "assignment",
                    orchestrator.run_assignment_pass,
                    config.assignment.poll_interval_seconds,
                ),
                PeriodicJob("state_changes", dedup_engine.process_state_changes, notify_interval),
                PeriodicJob("single_shot", dedup_engine.process_single_shot_actions, notify_interval),
                PeriodicJob("stale_sweep", dedup_engine.sweep_stale_actions, notify_interval),
            ]
        )

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start one background task per job."""
        if self._running:
            self._logger.warning("scheduler_already_running")
            return

        self._running = True
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(self._job_loop(job), name=f"reviewflow-{job.name}")
            for job in self.jobs
        ]
        self._logger.info("scheduler_started", jobs=[job.name for job in self.jobs])

    async def stop(self) -> None:
        """Stop all jobs after their current iteration completes."""
        if not self._running:
            self._logger.warning("scheduler_not_running")
            return

        self._running = False
        self._stop_event.set()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._logger.info("scheduler_stopped")

    async def _run_iteration(self, job: PeriodicJob) -> None:
        set_correlation_id(uuid.uuid4().hex[:12])
        try:
            await job.func()
        except Exception:
            job.failures += 1
            self._logger.exception("job_iteration_failed", job=job.name)
        finally:
            job.iterations += 1
            set_correlation_id(None)

    async def _job_loop(self, job: PeriodicJob) -> None:
        self._logger.info("job_loop_started", job=job.name, interval_seconds=job.interval_seconds)

        while self._running:
            await self._run_iteration(job)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=job.interval_seconds)
            except asyncio.TimeoutError:
                continue

        self._logger.info("job_loop_stopped", job=job.name, iterations=job.iterations)
