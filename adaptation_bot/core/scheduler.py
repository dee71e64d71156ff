"""
Periodic task scheduling with an injectable clock.

Production code drives tasks with ``Scheduler.start()``; tests call
``PeriodicTask.run_once()`` and control time through the clock.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class PeriodicTask:
    """Coroutine callback invoked every ``interval`` seconds."""

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        sleep: Sleep = asyncio.sleep,
    ):
        self.name = name
        self.interval = interval
        self.callback = callback
        self.sleep = sleep
        self.runs = 0
        self.failures = 0

    async def run_once(self) -> None:
        """Run the callback once. Errors are logged, never raised."""
        self.runs += 1
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            logger.error(f"Periodic task {self.name} failed: {e}", exc_info=True)

    async def run_forever(self) -> None:
        """Driving loop: run, then wait for the interval."""
        logger.info(f"Periodic task {self.name} started (every {self.interval}s)")
        while True:
            await self.run_once()
            await self.sleep(self.interval)


class Scheduler:
    """Owns the asyncio tasks of all periodic jobs."""

    def __init__(self):
        self.tasks: list[PeriodicTask] = []
        self._running: dict[str, asyncio.Task] = {}

    def add(self, task: PeriodicTask) -> PeriodicTask:
        """Register periodic task."""
        self.tasks.append(task)
        return task

    def start(self) -> None:
        """Start every registered task on the running loop."""
        for task in self.tasks:
            if task.name not in self._running:
                self._running[task.name] = asyncio.create_task(
                    task.run_forever(), name=task.name
                )

    async def stop(self) -> None:
        """Cancel running tasks and wait for them to finish."""
        running = list(self._running.values())
        self._running.clear()
        for task in running:
            task.cancel()
        for task in running:
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Scheduler stopped")

    def is_running(self, name: str) -> bool:
        """Check if task with given name is running."""
        task: Optional[asyncio.Task] = self._running.get(name)
        return task is not None and not task.done()
