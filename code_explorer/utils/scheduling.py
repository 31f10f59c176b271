"""
Periodic background tasks.

Used by the application lifespan to run the rate limiter sweep and the audit
log flush on fixed intervals without touching the request path.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Job = Callable[[], Union[Any, Awaitable[Any]]]


class PeriodicTask:
    """
    Run ``job`` every ``interval`` seconds on the running event loop.

    Sync jobs run inline on the loop, so they must be quick; coroutine jobs
    are awaited. A failing run is logged and the schedule continues.
    """

    def __init__(self, name: str, interval: float, job: Job):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._job = job
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"periodic:{self.name}"
        )
        logger.debug(f"Started periodic task {self.name} (every {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug(f"Stopped periodic task {self.name}")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                result = self._job()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Periodic task {self.name} failed")
