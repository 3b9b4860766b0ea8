"""Recurring background jobs on the asyncio event loop."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import structlog

logger = structlog.get_logger(__name__)

Job = Callable[[], Awaitable[Any]]


@dataclass
class JobHandle:
    """Registration of a recurring job; cancel() stops future runs."""

    name: str
    job: Job
    interval: float
    initial_delay: float = 0.0
    runs: int = 0
    failures: int = 0
    _task: Optional["asyncio.Task[None]"] = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()


class Scheduler:
    """Runs named jobs periodically, on demand, or fire-and-forget.

    A job failure is logged and counted; it never stops the schedule.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, JobHandle] = {}
        self._oneshots: Set["asyncio.Task[Any]"] = set()

    def register(self, name: str, job: Job, interval: float, initial_delay: float = 0.0) -> JobHandle:
        """Register a job without starting its timer.

        Args:
            name: Unique job name
            job: Coroutine function run on each cycle
            interval: Seconds between the end of one run and the next
            initial_delay: Seconds before the first timed run

        Returns:
            The job handle
        """
        if name in self._jobs:
            raise ValueError(f"Job already registered: {name}")
        handle = JobHandle(name=name, job=job, interval=interval, initial_delay=initial_delay)
        self._jobs[name] = handle
        return handle

    def schedule(self, name: str, job: Job, interval: float, initial_delay: float = 0.0) -> JobHandle:
        """Register a job and start running it on a timer.

        Must be called from within a running event loop.
        """
        handle = self.register(name, job, interval, initial_delay)
        self.start(name)
        return handle

    def start(self, name: str) -> JobHandle:
        handle = self._jobs[name]
        if not handle.active:
            handle._task = asyncio.create_task(self._loop(handle), name=f"job:{name}")
        return handle

    async def _loop(self, handle: JobHandle) -> None:
        if handle.initial_delay:
            await asyncio.sleep(handle.initial_delay)
        while True:
            await self._run(handle)
            await asyncio.sleep(handle.interval)

    async def _run(self, handle: JobHandle) -> Any:
        handle.runs += 1
        try:
            return await handle.job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            handle.failures += 1
            logger.error("job_failed", job=handle.name, error=str(e), error_type=type(e).__name__)
            return None

    async def run_now(self, name: str) -> Any:
        """Run one cycle of a job and wait for it.

        Args:
            name: Registered job name

        Returns:
            The job's return value, or None if it failed
        """
        return await self._run(self._jobs[name])

    def fire(self, name: str) -> "asyncio.Task[Any]":
        """Start one cycle of a job in the background and return immediately."""
        task = asyncio.create_task(self._run(self._jobs[name]), name=f"oneshot:{name}")
        self._oneshots.add(task)
        task.add_done_callback(self._oneshots.discard)
        return task

    def get(self, name: str) -> Optional[JobHandle]:
        return self._jobs.get(name)

    async def wait_idle(self) -> None:
        """Wait for every fire-and-forget run started so far."""
        if self._oneshots:
            await asyncio.gather(*list(self._oneshots), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel all timers and background runs."""
        tasks = [h._task for h in self._jobs.values() if h._task is not None]
        tasks.extend(self._oneshots)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("scheduler_stopped", jobs=list(self._jobs))
