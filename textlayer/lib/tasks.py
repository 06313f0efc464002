"""Background tasks: one-shot startup work and fixed-interval jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


async def run_startup_task(
    name: str,
    work: Awaitable[Any],
    timeout: float | None = None,
) -> Any:
    """Await *work* with a bounded timeout, logging instead of raising.

    Returns the result of *work*, or ``None`` if it failed or timed out.
    """
    try:
        result = await asyncio.wait_for(work, timeout=timeout)
    except asyncio.CancelledError:
        raise
    except TimeoutError:
        logger.error("Startup task %s timed out after %.0fs", name, timeout)
        return None
    except Exception:
        logger.exception("Startup task %s failed", name)
        return None
    logger.info("Startup task %s finished", name)
    return result


class PeriodicTask:
    """Run an async job every ``interval`` seconds until stopped.

    The job runs inside a single loop, so a run that outlasts the interval
    delays the next one instead of overlapping with it. Exceptions raised by
    the job are logged and the schedule continues.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        interval: float,
        run_immediately: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self._job = job
        self._interval = interval
        self._run_immediately = run_immediately
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run_once(self) -> Any:
        try:
            return await self._job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Periodic task %s failed", self.name, exc_info=True)
            return None
        finally:
            self.runs += 1

    async def _loop(self) -> None:
        if self._run_immediately:
            await self.run_once()
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()
