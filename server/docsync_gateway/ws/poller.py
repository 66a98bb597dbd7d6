"""Background poller that republishes a sample of every collection on a fixed period."""

from __future__ import annotations

import asyncio
import logging

from ..errors import GatewayError
from ..services.diagnostics import Diagnostics
from ..services.gateway import CollectionGateway
from .bus import REAL_TIME_DATA, BroadcastBus

logger = logging.getLogger(__name__)


class BroadcastPoller:
    """Every ``interval`` seconds: enumerate collections, sample each, publish.

    Each collection is fetched in its own task and publishes as soon as its
    own sample arrives. In-flight fetches are tracked per collection: a tick
    skips only the collections whose previous fetch is still running. Every
    tick resends full samples, with no diffing.
    """

    def __init__(
        self,
        gateway: CollectionGateway,
        bus: BroadcastBus,
        diagnostics: Diagnostics,
        interval: float = 30.0,
        sample_size: int = 10,
    ) -> None:
        self.gateway = gateway
        self.bus = bus
        self.diagnostics = diagnostics
        self.interval = interval
        self.sample_size = sample_size
        self._poller_task: asyncio.Task | None = None
        self._cycle_tasks: set[asyncio.Task] = set()
        self._in_flight: dict[str, asyncio.Task] = {}
        self.cycles_completed = 0
        self.fetches_skipped = 0

    @property
    def running(self) -> bool:
        return self._poller_task is not None and not self._poller_task.done()

    @property
    def in_flight(self) -> list[str]:
        """Collections whose fetch is still running."""
        return sorted(self._in_flight)

    def start(self) -> None:
        """Start the background polling task."""
        if not self.running:
            self._poller_task = asyncio.create_task(self._poll_loop())
            logger.info("Broadcast poller started (every %ss, %d docs per collection)", self.interval, self.sample_size)

    async def stop(self) -> None:
        """Stop the polling task and every cycle and fetch still in flight."""
        tasks = [self._poller_task, *self._cycle_tasks, *self._in_flight.values()]
        for task in tasks:
            if task and not task.done():
                task.cancel()
        await asyncio.gather(*(t for t in tasks if t), return_exceptions=True)
        self._poller_task = None
        self._cycle_tasks.clear()
        self._in_flight.clear()
        logger.info("Broadcast poller stopped")

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def tick(self) -> asyncio.Task:
        """Begin one poll cycle in the background."""
        task = asyncio.create_task(self.run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)
        return task

    async def run_cycle(self) -> int:
        """Poll every collection once. Returns the number of publications."""
        try:
            names = await self.gateway.list_collections()
        except GatewayError as exc:
            self.diagnostics.report("poll_enumeration_failed", str(exc))
            return 0

        fetches = []
        for name in names:
            if name in self._in_flight:
                self.fetches_skipped += 1
                logger.warning("Previous fetch of '%s' still running; skipping it this tick", name)
                continue
            task = asyncio.create_task(self._publish_collection(name))
            self._in_flight[name] = task
            task.add_done_callback(lambda t, name=name: self._forget(name, t))
            fetches.append(task)

        results = await asyncio.gather(*fetches)
        self.cycles_completed += 1
        published = sum(1 for ok in results if ok)
        logger.debug("Poll cycle published %d of %d collections", published, len(names))
        return published

    def _forget(self, name: str, task: asyncio.Task) -> None:
        if self._in_flight.get(name) is task:
            del self._in_flight[name]

    async def _publish_collection(self, name: str) -> bool:
        try:
            data = await self.gateway.sample(name, self.sample_size)
        except Exception as exc:
            # One collection failing must not cancel its siblings in gather()
            self.diagnostics.report("poll_fetch_failed", str(exc), collection=name)
            return False
        self.bus.publish(REAL_TIME_DATA, {"collection": name, "data": data})
        return True
