"""
Reply reader over a transport's receive buffer.

Most replies are one newline-terminated line. Device info is the exception:
USB-CDC devices deliver it in fragments with gaps, so it is collected with
a ``BracketAccumulator`` until the bracketed record is complete.
"""

from __future__ import annotations

import asyncio
import logging

from plclink.exceptions import IncompleteResponseError, NotOpenError, ResponseTimeoutError
from plclink.protocol.accumulator import BracketAccumulator
from plclink.protocol.constants import ProtocolConstants
from plclink.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class LineReader:
    """
    Extracts replies from a transport.

    The reader never owns data: every method consumes from the transport
    buffer, so it must only be used from inside a queued command.

    Example:
        >>> reader = LineReader(transport)
        >>> await transport.write("PI52\\n")
        >>> line = await reader.read_line(timeout=8.0)
    """

    def __init__(
        self,
        transport: AbstractTransport,
        poll_interval: float = 0.01,
    ) -> None:
        """
        Args:
            transport: Transport whose buffer is read.
            poll_interval: Recheck period while a partial line is buffered.
        """
        self._transport = transport
        self._poll_interval = poll_interval

    @property
    def transport(self) -> AbstractTransport:
        return self._transport

    def _ensure_open(self) -> None:
        if not self._transport.is_open:
            raise NotOpenError("Connection closed")

    async def wait_for_data(self, timeout: float) -> bool:
        """Wait until bytes are buffered; False on timeout or close."""
        return await self._transport.wait_for_data(timeout)

    async def read_line(self, timeout: float = ProtocolConstants.RESPONSE_TIMEOUT) -> str:
        """
        Wait for one complete line.

        Args:
            timeout: Seconds to wait for the line.

        Returns:
            The line, decoded and stripped.

        Raises:
            ResponseTimeoutError: If no complete line arrives in time.
            NotOpenError: If the link closes while waiting.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            self._ensure_open()
            line = self._transport.read_line()
            if line is not None:
                logger.debug("Reply line: %r", line)
                return line

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning("Timed out after %.1fs waiting for a reply line", timeout)
                raise ResponseTimeoutError(
                    "Timeout waiting for response line",
                    timeout_seconds=timeout,
                )

            if self._transport.available():
                # Partial line buffered; wait for the rest
                await asyncio.sleep(min(self._poll_interval, remaining))
            else:
                await self._transport.wait_for_data(remaining)

    async def read_bracketed(
        self,
        budget: float = ProtocolConstants.INFO_BUDGET,
        idle_timeout: float = ProtocolConstants.INFO_IDLE_TIMEOUT,
        poll: float = ProtocolConstants.INFO_POLL_INTERVAL,
        trailing_delay: float = ProtocolConstants.INFO_TRAILING_DELAY,
    ) -> str:
        """
        Collect buffered chunks until a balanced ``[...]`` record is seen.

        An opening bracket without its closing bracket is not an error;
        collection continues until the budget runs out.

        Args:
            budget: Total seconds allowed for the record to complete.
            idle_timeout: Give up early if nothing at all arrived by then.
            poll: Seconds to wait for each further chunk.
            trailing_delay: Pause after the record before discarding the
                rest of the line.

        Returns:
            The bracketed record including its brackets.

        Raises:
            IncompleteResponseError: If the record never completed.
            NotOpenError: If the link closes while waiting.
        """
        loop = asyncio.get_running_loop()
        start = loop.time()
        accumulator = BracketAccumulator()
        received = False

        while True:
            elapsed = loop.time() - start
            if elapsed >= budget:
                break
            self._ensure_open()
            has_data = await self._transport.wait_for_data(min(poll, budget - elapsed))

            if has_data:
                chunk = self._transport.read_all()
                received = received or bool(chunk)
                logger.debug("Accumulated %d chars", len(chunk))
                payload = accumulator.feed(chunk)
                if payload is not None:
                    await asyncio.sleep(trailing_delay)
                    stray = self._transport.read_all()
                    if stray.strip():
                        logger.debug("Discarded trailing data after record: %r", stray)
                    return payload
            elif not received and loop.time() - start > idle_timeout:
                raise IncompleteResponseError(
                    f"No data received within {idle_timeout:.1f}s",
                    partial=accumulator.text,
                )

        logger.warning("Bracketed reply incomplete after %.1fs", budget)
        raise IncompleteResponseError(
            f"Reply incomplete after {budget:.1f}s",
            partial=accumulator.text,
        )

    async def drain(
        self,
        timeout: float = ProtocolConstants.WAKE_UP_TIMEOUT,
        gap: float = ProtocolConstants.WAKE_UP_DRAIN_GAP,
    ) -> int:
        """
        Discard a reply of unknown shape.

        Waits up to ``timeout`` for the first byte, then keeps discarding
        until the line stays quiet for ``gap`` seconds.

        Returns:
            Number of characters discarded.
        """
        discarded = 0
        if not await self._transport.wait_for_data(timeout):
            return discarded
        while self._transport.available():
            discarded += len(self._transport.read_all())
            await self._transport.wait_for_data(gap)
        logger.debug("Drained %d chars", discarded)
        return discarded

    def discard_pending(self) -> int:
        """
        Discard everything already buffered, without waiting.

        Returns:
            Number of characters discarded.
        """
        if not self._transport.available():
            return 0
        discarded = len(self._transport.read_all())
        logger.debug("Discarded %d unsolicited chars", discarded)
        return discarded

    async def flush(
        self,
        settle: float = ProtocolConstants.DOWNLOAD_SETTLE_DELAY,
        gap: float = ProtocolConstants.FLUSH_GAP,
    ) -> int:
        """
        Discard stray bytes left behind by a reply.

        Sleeps ``settle`` seconds, then discards whatever is buffered until
        nothing new arrives within ``gap`` seconds.

        Returns:
            Number of characters discarded.
        """
        await asyncio.sleep(settle)
        discarded = 0
        while self._transport.available():
            discarded += len(self._transport.read_all())
            await asyncio.sleep(gap)
        if discarded:
            logger.debug("Flushed %d stray chars", discarded)
        return discarded
