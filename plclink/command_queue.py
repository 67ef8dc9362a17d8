"""
Serialized command execution.

The link is half duplex: a reply can only be attributed to the command that
caused it if commands never overlap. ``CommandQueue`` runs queued
operations one at a time in submission order, each raced against its own
timeout.

When a command times out, its caller is released at once with
``CommandTimeoutError``. The operation task is then cancelled, and the queue
waits for it to finish before the next command is dispatched. Cancelling
does not stop the device from answering: its late reply may still land in
the receive buffer. The ``on_timeout`` hook runs before the next command
starts so the owner of the link can discard that reply.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from plclink.exceptions import CommandTimeoutError, QueueError, QueueFullError
from plclink.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]


@dataclass
class _QueuedCommand:
    label: str
    operation: Operation[Any]
    timeout: float | None
    future: asyncio.Future[Any]


class CommandQueue:
    """
    FIFO queue of device operations with backpressure and timeouts.

    The queue never retries; a timeout or error is reported to the caller,
    who decides what to do next.

    Attributes:
        on_timeout: Coroutine function awaited with the command label after
            a timed-out command has been cancelled, before the next one
            starts. Its time is not charged to any command.

    Example:
        >>> queue = CommandQueue(capacity=50, default_timeout=8.0)
        >>> result = await queue.submit("getHealth", read_health)
    """

    def __init__(
        self,
        capacity: int = ProtocolConstants.QUEUE_CAPACITY,
        default_timeout: float | None = ProtocolConstants.COMMAND_TIMEOUT,
    ) -> None:
        """
        Args:
            capacity: Maximum number of commands waiting to start.
            default_timeout: Timeout for commands that do not set their own;
                None or 0 disables it.
        """
        if capacity <= 0:
            raise ValueError(f"Queue capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._default_timeout = default_timeout
        self._pending: deque[_QueuedCommand] = deque()
        self._running = False
        self._drain_task: asyncio.Task[None] | None = None
        self._current: _QueuedCommand | None = None
        self.on_timeout: Callable[[str], Awaitable[None]] | None = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pending_count(self) -> int:
        """Commands waiting to start (the running one excluded)."""
        return len(self._pending)

    @property
    def running(self) -> bool:
        """True while the drain loop is active."""
        return self._running

    @property
    def current_label(self) -> str | None:
        """Label of the command being executed, if any."""
        return self._current.label if self._current is not None else None

    def enqueue(
        self,
        label: str,
        operation: Operation[T],
        timeout: float | None = None,
    ) -> asyncio.Future[T]:
        """
        Queue an operation.

        Args:
            label: Name used in logs and timeout errors.
            operation: Zero-argument coroutine function performing the
                command against the transport.
            timeout: Seconds before the caller is released with
                CommandTimeoutError. None uses the queue default.

        Returns:
            Future settled with the operation's result or error.

        Raises:
            QueueFullError: If ``capacity`` commands are already waiting.
                Nothing is queued and the transport is not touched.
        """
        if len(self._pending) >= self._capacity:
            logger.warning("Command queue full (%d pending), rejecting %s", len(self._pending), label)
            raise QueueFullError(self._capacity)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        effective_timeout = timeout if timeout is not None else self._default_timeout
        self._pending.append(_QueuedCommand(label, operation, effective_timeout, future))
        logger.debug("Queued %s (%d pending)", label, len(self._pending))

        if not self._running:
            self._running = True
            self._drain_task = loop.create_task(self._drain(), name="plclink-command-queue")
        return future

    async def submit(
        self,
        label: str,
        operation: Operation[T],
        timeout: float | None = None,
    ) -> T:
        """Queue an operation and wait for its result."""
        return await self.enqueue(label, operation, timeout)

    def cancel_all(self, reason: BaseException | None = None) -> int:
        """
        Settle every command that has not started with ``reason``.

        The running command is not interrupted; it observes the cause
        (typically a closed transport) on its own.

        Returns:
            Number of commands settled.
        """
        if reason is None:
            reason = QueueError("Command queue cleared")

        settled = 0
        while self._pending:
            command = self._pending.popleft()
            if not command.future.done():
                command.future.set_exception(reason)
                settled += 1
        if settled:
            logger.debug("Cancelled %d pending commands: %s", settled, reason)
        return settled

    async def _drain(self) -> None:
        try:
            while self._pending:
                command = self._pending.popleft()
                if command.future.done():
                    # Caller gave up before the command started
                    continue
                await self._execute(command)
        finally:
            self._running = False
            self._drain_task = None

    async def _execute(self, command: _QueuedCommand) -> None:
        self._current = command
        task = asyncio.ensure_future(command.operation())
        try:
            timeout = command.timeout if command.timeout else None
            done, _ = await asyncio.wait({task}, timeout=timeout)

            if task in done:
                self._settle(command, task)
                return

            logger.warning("Command %s timed out after %.1fs", command.label, timeout)
            if not command.future.done():
                command.future.set_exception(CommandTimeoutError(command.label, timeout))
            task.cancel()
            # The next command starts only once this one has let go of the link
            await asyncio.gather(task, return_exceptions=True)
            if self.on_timeout is not None:
                try:
                    await self.on_timeout(command.label)
                except Exception:
                    # The queue keeps draining whatever the hook does
                    logger.warning("Timeout handler for %s failed", command.label, exc_info=True)
        finally:
            self._current = None

    @staticmethod
    def _settle(command: _QueuedCommand, task: asyncio.Future[Any]) -> None:
        if command.future.done():
            if not task.cancelled():
                # Retrieve so the result is not reported as unhandled
                task.exception()
            return
        if task.cancelled():
            command.future.cancel()
            return

        error = task.exception()
        if error is not None:
            logger.debug("Command %s failed: %s", command.label, error)
            command.future.set_exception(error)
        else:
            command.future.set_result(task.result())

    def __repr__(self) -> str:
        return f"CommandQueue(pending={len(self._pending)}, capacity={self._capacity}, running={self._running})"
