"""
Periodic token refresh check.

Runs a coroutine at a fixed interval on the event loop. The interval
should be well below the access token lifetime so the check gets a
chance to refresh before expiry.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Background task calling `check` every `interval` seconds.

    A failing check is logged and the loop carries on with the next tick.
    """

    def __init__(self, check: Callable[[], Awaitable[object]], interval: float):
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval}")
        self._check = check
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Must be called from within a running event loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Token refresh check scheduled every {self._interval:.0f}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._check()
            except Exception:
                logger.exception("Scheduled token refresh check failed")
