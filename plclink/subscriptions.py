"""
Periodic memory reads.

A ``MemoryPoller`` reads a fixed set of memory regions every ``interval``
seconds and hands each round of results to a callback. The regions are
turned into ``MR`` commands once, when the subscription starts.

Example:
    >>> poller = MemoryPoller(client.read_subscriptions)
    >>> poller.start(
    ...     [create_memory_subscription(64, 8)],
    ...     interval=0.1,
    ...     callback=lambda results: print(results[0].data.hex()),
    ... )
    >>> await poller.stop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from plclink.exceptions import TransportError
from plclink.models.records import MemoryReadResult, MemorySubscription

logger = logging.getLogger(__name__)

MemoryDataCallback = Callable[[list[MemoryReadResult]], None]
RegionReader = Callable[[Sequence[MemorySubscription]], Awaitable[list[MemoryReadResult]]]


class MemoryPoller:
    """
    Background task that reads subscribed regions on a fixed period.

    A round that fails is logged and skipped. A transport error means the
    link is gone and ends polling.

    Attributes:
        subscriptions: Regions read each round.
        interval: Seconds between rounds.
        rounds: Completed rounds.
        errors: Rounds that failed.
    """

    def __init__(self, read: RegionReader) -> None:
        """
        Args:
            read: Reads every subscribed region, in order.
        """
        self._read = read
        self._task: asyncio.Task[None] | None = None
        self._callback: MemoryDataCallback | None = None
        self.subscriptions: tuple[MemorySubscription, ...] = ()
        self.interval = 0.0
        self.rounds = 0
        self.errors = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        subscriptions: Sequence[MemorySubscription],
        interval: float,
        callback: MemoryDataCallback | None,
    ) -> None:
        """
        Start polling; a running poller must be stopped first.

        Raises:
            ValueError: If there are no subscriptions or the interval is not
                positive.
            RuntimeError: If the poller is already running.
        """
        if not subscriptions:
            raise ValueError("At least one memory region is required")
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        if self.is_running:
            raise RuntimeError("Memory poller already running")

        self.subscriptions = tuple(subscriptions)
        self.interval = interval
        self._callback = callback
        self._task = asyncio.get_running_loop().create_task(self._poll_loop(), name="plclink-memory-poll")
        logger.info("Polling %d memory regions every %.3fs", len(self.subscriptions), interval)

    async def stop(self) -> None:
        """Stop polling; safe to call when not running."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            logger.info("Memory polling stopped after %d rounds", self.rounds)

    async def _poll_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                results = await self._read(self.subscriptions)
            except TransportError as e:
                logger.warning("Memory polling ended: %s", e)
                return
            except Exception:
                # A failing round must not end the subscription
                self.errors += 1
                logger.warning("Memory poll failed", exc_info=True)
            else:
                self.rounds += 1
                self._deliver(results)
            await asyncio.sleep(max(0.0, self.interval - (loop.time() - started)))

    def _deliver(self, results: list[MemoryReadResult]) -> None:
        if self._callback is None:
            return
        try:
            self._callback(results)
        except Exception:
            # Polling continues whatever the subscriber does
            logger.exception("Memory data callback failed")
