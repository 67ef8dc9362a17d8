"""
Exception hierarchy for plclink.

All exceptions inherit from PLCLinkError, so callers can catch every library
error with a single except clause. The families mirror the layers of the
client:

1. ConnectError - the physical link could not be opened
2. TransportError - the open link failed while in use
3. QueueError - the command queue rejected or abandoned a command
4. ProtocolError - a response could not be understood

Protocol errors are reported to the single caller that issued the command;
the connection stays usable afterwards.
"""

from __future__ import annotations


class PLCLinkError(Exception):
    """
    Base exception for all plclink errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch all plclink errors with a single except clause.
    """

    pass


class TimeoutError(PLCLinkError):  # noqa: A001 - intentionally shadows builtin
    """
    Something did not happen within its deadline.

    Mixed into the connect and queue families so that a caller can treat
    every deadline miss the same way.
    """

    def __init__(
        self,
        message: str = "Operation timed out",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.1f}s)"
        return base


class ResponseTimeoutError(TimeoutError):
    """The device did not send the expected reply in time."""


# ===== Connect =====


class ConnectError(PLCLinkError):
    """
    The physical link could not be opened.
    """

    pass


class AlreadyOpenError(ConnectError):
    """open() was called on a transport that is already open."""


class DeviceUnavailableError(ConnectError):
    """
    The serial device could not be claimed.

    Typical causes are a wrong port name, a port held by another process,
    or missing permissions.
    """


class OpenTimeoutError(ConnectError, TimeoutError):
    """Opening the port did not finish within the open deadline."""

    def __init__(
        self,
        message: str = "Timed out opening port",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        TimeoutError.__init__(self, message, timeout_seconds=timeout_seconds)


# ===== Transport =====


class TransportError(PLCLinkError):
    """
    Transport-level error.

    Raised for low-level link issues after a successful open.
    """

    pass


class NotOpenError(TransportError):
    """The transport is closed (never opened, closed, or disconnected)."""


class WriteFailedError(TransportError):
    """The operating system rejected a write to the port."""


class DisconnectedError(TransportError):
    """
    The device went away.

    Pending commands are settled with this error when the ingress task
    observes a hardware disconnect.
    """


# ===== Queue =====


class QueueError(PLCLinkError):
    """
    Command queue error.
    """

    pass


class QueueFullError(QueueError):
    """
    The command queue is at capacity.

    Raised immediately at enqueue time; the transport is not touched.
    """

    def __init__(self, capacity: int) -> None:
        super().__init__(f"Command queue full ({capacity} pending)")
        self.capacity = capacity


class CommandTimeoutError(QueueError, TimeoutError):
    """A queued command did not complete within its timeout."""

    def __init__(self, label: str, timeout_seconds: float | None = None) -> None:
        TimeoutError.__init__(
            self,
            f"Command timed out ({label})",
            timeout_seconds=timeout_seconds,
        )
        self.label = label


# ===== Protocol =====


class ProtocolError(PLCLinkError):
    """
    Protocol-level error.

    Raised when a response does not follow the wire format.
    """

    pass


class MalformedResponseError(ProtocolError):
    """
    A response could not be decoded.

    Carries the response kind and an excerpt of the raw text for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        response_type: str | None = None,
        raw_data: str | None = None,
    ) -> None:
        super().__init__(message)
        self.response_type = response_type
        self.raw_data = raw_data

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.response_type:
            parts.append(f"response_type={self.response_type}")
        if self.raw_data:
            display_data = self.raw_data[:40] + "..." if len(self.raw_data) > 40 else self.raw_data
            parts.append(f"data={display_data!r}")
        return " ".join(parts)


class ChecksumMismatchError(ProtocolError):
    """
    Frame checksum validation failure.
    """

    def __init__(
        self,
        message: str = "Checksum validation failed",
        *,
        expected: int | None = None,
        received: int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.received = received

    def __str__(self) -> str:
        base = super().__str__()
        if self.expected is not None and self.received is not None:
            return f"{base} (expected 0x{self.expected:02X}, got 0x{self.received:02X})"
        return base


class UnknownFormatGenerationError(ProtocolError):
    """The field count of an info record matches no known firmware layout."""

    def __init__(self, field_count: int) -> None:
        super().__init__(f"Unknown device info layout with {field_count} fields")
        self.field_count = field_count


class IncompleteResponseError(ProtocolError):
    """
    A fragmented response never completed within its wait budget.

    Raised by the bracket accumulator path used for device info.
    """

    def __init__(self, message: str, *, partial: str = "") -> None:
        super().__init__(message)
        self.partial = partial


class DeviceRejectedError(ProtocolError):
    """The device answered with an error line (``ERR...`` or ``E:...``)."""

    def __init__(self, response: str) -> None:
        super().__init__(f"Device rejected command: {response}")
        self.response = response


class UnsupportedOperationError(PLCLinkError):
    """The selected connection cannot perform this operation."""
