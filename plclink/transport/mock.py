"""
Mock transport for testing.

This module provides an in-memory device that lets the client be tested
without hardware. Every complete line written to it is answered with the
next queued response or with the result of a response callback. Responses
may be split into fragments delivered with a delay, which reproduces the
chunked delivery of USB-CDC devices.

Example:
    >>> from plclink.transport import MockTransport
    >>> from plclink import DeviceClient
    >>>
    >>> mock = MockTransport()
    >>> mock.add_response("OK\\n")
    >>>
    >>> async with DeviceClient(mock) as client:
    ...     await client.write_memory(10, [1, 2, 3])
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Sequence
from typing import Union

from plclink.exceptions import AlreadyOpenError
from plclink.protocol.constants import ProtocolConstants
from plclink.transport.abc import BufferedTransport

logger = logging.getLogger(__name__)

MockResponse = Union[bytes, str, Sequence[Union[bytes, str]]]
"""A whole response, or a sequence of fragments delivered one after another."""

ResponseCallback = Callable[[str], Union[MockResponse, None]]

_TERMINATOR = ProtocolConstants.LINE_TERMINATOR


def _to_bytes(data: bytes | str) -> bytes:
    return data.encode("ascii") if isinstance(data, str) else bytes(data)


class MockTransport(BufferedTransport):
    """
    Mock transport for testing without hardware.

    Written data is recorded; each complete written line (and a bare ``?``
    wake-up) triggers a response. A callback takes precedence over the
    queue; if it returns None the next queued response is used.

    Attributes:
        written_data: All raw writes, in order.
        written_lines: Complete lines written, without terminators.
        write_count: Number of write calls.

    Example:
        >>> mock = MockTransport()
        >>> mock.add_response(["[VovkPLC", "Runtime,...]\\n"])  # two fragments
        >>> mock.set_response_callback(lambda line: "OK\\n" if line.startswith("MW") else None)
    """

    def __init__(
        self,
        port_name: str = "mock://device",
        *,
        fragment_delay: float = 0.0,
        buffer_size: int = ProtocolConstants.DEFAULT_BUFFER_SIZE,
    ) -> None:
        """
        Initialize the mock transport.

        Args:
            port_name: Identifier for the mock transport.
            fragment_delay: Delay before each fragment of a fragmented
                response, in seconds.
            buffer_size: Receive buffer capacity in bytes.
        """
        super().__init__(buffer_size)
        self._port_name = port_name
        self.fragment_delay = fragment_delay
        self._responses: deque[MockResponse] = deque()
        self._response_callback: ResponseCallback | None = None
        self._written_data: list[bytes] = []
        self._written_lines: list[str] = []
        self._line_buffer = bytearray()
        self._deliveries: set[asyncio.Task[None]] = set()
        self.open_error: BaseException | None = None
        self.open_count = 0
        self.close_count = 0

    @property
    def port_name(self) -> str:
        """Get the mock port name."""
        return self._port_name

    @property
    def written_data(self) -> list[bytes]:
        """Get all data written to the transport."""
        return self._written_data.copy()

    @property
    def written_lines(self) -> list[str]:
        """Get every complete line written, without the terminator."""
        return self._written_lines.copy()

    @property
    def last_written(self) -> bytes | None:
        """Get the most recently written data."""
        return self._written_data[-1] if self._written_data else None

    @property
    def write_count(self) -> int:
        """Number of write calls recorded."""
        return len(self._written_data)

    @property
    def pending_responses(self) -> int:
        """Queued responses not yet used."""
        return len(self._responses)

    def add_response(self, response: MockResponse) -> None:
        """
        Queue a response for the next written line.

        Args:
            response: Bytes or text, or a list of fragments.
        """
        self._responses.append(response)

    def add_responses(self, *responses: MockResponse) -> None:
        """Queue several responses, one per written line."""
        self._responses.extend(responses)

    def set_response_callback(self, callback: ResponseCallback | None) -> None:
        """
        Set a callback to generate responses dynamically.

        The callback receives each complete written line (without the
        terminator) and returns the response, or None to fall back to the
        queue.
        """
        self._response_callback = callback

    def feed(self, data: bytes | str) -> None:
        """Deliver unsolicited data straight into the receive buffer."""
        self._on_data_received(_to_bytes(data))

    def simulate_disconnect(self, error: BaseException | None = None) -> None:
        """Behave as if the device was unplugged."""
        self._cancel_deliveries()
        self._handle_fatal_error(error)

    def clear(self) -> None:
        """Clear written data history and pending responses."""
        self._written_data.clear()
        self._written_lines.clear()
        self._line_buffer.clear()
        self._responses.clear()

    def clear_written(self) -> None:
        """Clear only the written data history."""
        self._written_data.clear()
        self._written_lines.clear()

    async def open(self) -> None:
        """Open the mock transport."""
        if self._open:
            raise AlreadyOpenError("Mock transport already open")
        if self.open_error is not None:
            raise self.open_error
        self.open_count += 1
        self._line_buffer.clear()
        self._mark_open()

    async def close(self) -> None:
        """Close the mock transport."""
        self._closing = True
        self._cancel_deliveries()
        self.close_count += 1
        self._mark_closed()
        self._closing = False

    async def _write_raw(self, data: bytes) -> None:
        self._written_data.append(bytes(data))

        if bytes(data) == ProtocolConstants.WAKE_UP:
            self._respond(ProtocolConstants.WAKE_UP.decode("ascii"))
            return

        self._line_buffer.extend(data)
        while True:
            index = self._line_buffer.find(_TERMINATOR)
            if index < 0:
                break
            line = self._line_buffer[:index].decode("ascii", errors="replace").strip()
            del self._line_buffer[: index + 1]
            self._written_lines.append(line)
            self._respond(line)

    def _respond(self, line: str) -> None:
        response: MockResponse | None = None
        if self._response_callback is not None:
            response = self._response_callback(line)
        if response is None and self._responses:
            response = self._responses.popleft()
        if response is not None:
            self._send(response)

    def _send(self, response: MockResponse) -> None:
        if isinstance(response, (bytes, bytearray, str)):
            fragments = [response]
        else:
            fragments = list(response)

        if self.fragment_delay <= 0 and len(fragments) == 1:
            self._on_data_received(_to_bytes(fragments[0]))
            return

        task = asyncio.get_running_loop().create_task(self._deliver(fragments))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(self, fragments: list[bytes | str]) -> None:
        for fragment in fragments:
            await asyncio.sleep(self.fragment_delay)
            if not self._open:
                return
            self._on_data_received(_to_bytes(fragment))

    def _cancel_deliveries(self) -> None:
        for task in list(self._deliveries):
            task.cancel()
        self._deliveries.clear()

    def assert_written(self, expected: bytes | str, index: int = -1) -> None:
        """
        Assert that specific data was written.

        Raises:
            AssertionError: If data doesn't match.
        """
        if not self._written_data:
            raise AssertionError("No data written to mock transport")

        actual = self._written_data[index]
        if actual != _to_bytes(expected):
            raise AssertionError(f"Written data mismatch: expected {expected!r}, got {actual!r}")

    def assert_write_count(self, expected: int) -> None:
        """
        Assert number of write operations.

        Raises:
            AssertionError: If count doesn't match.
        """
        actual = len(self._written_data)
        if actual != expected:
            raise AssertionError(f"Write count mismatch: expected {expected}, got {actual}")


class ScriptedMockTransport(MockTransport):
    """
    Mock transport with scripted request/response pairs.

    Each written line must match the next scripted request (None matches
    anything) and is answered with the scripted response.

    Example:
        >>> mock = ScriptedMockTransport()
        >>> mock.expect("OK\\n", request="PI52")
        >>> mock.expect("PH" + "00000001" * 6 + "\\n")
    """

    def __init__(self, port_name: str = "mock://scripted", *, fragment_delay: float = 0.0) -> None:
        super().__init__(port_name, fragment_delay=fragment_delay)
        self._script: list[tuple[str | None, MockResponse]] = []
        self._script_index = 0

    @property
    def script_complete(self) -> bool:
        """True when every scripted step has been used."""
        return self._script_index >= len(self._script)

    def expect(self, response: MockResponse, request: str | None = None) -> None:
        """
        Add an expected request/response pair.

        Args:
            response: Response to deliver.
            request: Expected line without terminator (None to match any).
        """
        self._script.append((request, response))

    def _respond(self, line: str) -> None:
        if self._script_index >= len(self._script):
            super()._respond(line)
            return

        expected_request, response = self._script[self._script_index]
        if expected_request is not None and line != expected_request:
            raise AssertionError(
                f"Script mismatch at step {self._script_index}: "
                f"expected {expected_request!r}, got {line!r}"
            )
        self._script_index += 1
        self._send(response)

    def reset_script(self) -> None:
        """Reset script to beginning."""
        self._script_index = 0

    def clear_script(self) -> None:
        """Clear all scripted expectations."""
        self._script.clear()
        self._script_index = 0
