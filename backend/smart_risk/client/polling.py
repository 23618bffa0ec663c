"""A cancellable periodic task."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``func`` now and then every ``interval`` seconds until stopped.

    A failing run is logged and the loop carries on with the next tick.
    """

    def __init__(self, func: Callable[[], Awaitable[None]], interval: float, name: str = "periodic"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.func = func
        self.interval = interval
        self.name = name
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            try:
                await self.func()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"{self.name} run failed: {e}")
            self.runs += 1
            await asyncio.sleep(self.interval)
