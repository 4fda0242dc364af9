"""
Fixed-interval pull loops.

Clients see server state with a bounded delay (one interval) instead of
receiving pushes. A failed round is logged and the loop keeps going.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from app.client.api import LinkUpClient
from app.schemas.message import Counters

logger = logging.getLogger("linkup.poll")


class Poller:
    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval: float,
        should_skip: Optional[Callable[[], bool]] = None,
        name: str = "poller",
    ):
        self.callback = callback
        self.interval = interval
        self.should_skip = should_skip
        self.name = name
        self.rounds = 0
        self.skipped = 0
        self.failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"poll:{self.name}")
        logger.info(f"poll.start | {self.name} | interval={self.interval}s")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"poll.stop | {self.name} | rounds={self.rounds} skipped={self.skipped} failures={self.failures}")

    async def poll_now(self) -> bool:
        """Run one round. Returns False if the round was skipped or failed."""
        if self.should_skip is not None and self.should_skip():
            self.skipped += 1
            logger.debug(f"poll.skip | {self.name}")
            return False
        try:
            await self.callback()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.failures += 1
            logger.warning(f"poll.failed | {self.name} | err={exc!r}")
            return False
        self.rounds += 1
        return True

    async def _run(self) -> None:
        while True:
            await self.poll_now()
            await asyncio.sleep(self.interval)


class CountersWatcher:
    """Keeps the latest unread / pending badge counts"""

    def __init__(self, client: LinkUpClient, interval: float):
        self.client = client
        self.latest: Optional[Counters] = None
        self.poller = Poller(self.refresh, interval, name="counters")

    async def refresh(self) -> None:
        self.latest = await self.client.get_counters()
