"""
Command codes and protocol constants for the VovkPLC serial dialect.

Commands are two ASCII letters, optionally followed by hex-encoded fields,
followed by a two-digit CRC-8 and a newline.
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class CommandCode(str, Enum):
    """
    Two-letter command codes understood by the runtime.

    Fixed commands carry no parameters and consist of the code plus its
    checksum. Parametrized commands have dedicated builders in
    :mod:`plclink.protocol.commands`.
    """

    # ===== Fixed commands =====

    PROGRAM_INFO = "PI"
    """Request the device info record."""

    HEALTH = "PH"
    """Request the health snapshot."""

    RESET_HEALTH = "RH"
    """Reset the health min/max counters."""

    SYMBOL_LIST = "SL"
    """Request the device symbol table."""

    TRANSPORT_INFO = "TI"
    """Request the list of device transports."""

    MONITOR = "PM"
    """Enter monitor mode."""

    PROGRAM_UPLOAD = "PU"
    """Upload (read back) the program stored on the device."""

    PROGRAM_RUN = "PR"
    """Start program execution."""

    PROGRAM_STOP = "PS"
    """Stop program execution."""

    PLC_RESET = "RS"
    """Reset the runtime."""

    DATA_BLOCK_INFO = "DA"
    """Request the data block allocation table."""

    # ===== Parametrized commands =====

    PROGRAM_DOWNLOAD = "PD"
    """Download bytecode to the device."""

    MEMORY_READ = "MR"
    """Read a memory area."""

    MEMORY_WRITE = "MW"
    """Write a memory area."""

    MEMORY_WRITE_MASKED = "MM"
    """Write a memory area through a bit mask."""

    MEMORY_FORMAT = "MF"
    """Fill a memory area with one value."""

    TC_CONFIG = "TC"
    """Configure timer/counter memory offsets."""


FIXED_COMMANDS: Final[frozenset[CommandCode]] = frozenset(
    {
        CommandCode.PROGRAM_INFO,
        CommandCode.HEALTH,
        CommandCode.RESET_HEALTH,
        CommandCode.SYMBOL_LIST,
        CommandCode.TRANSPORT_INFO,
        CommandCode.MONITOR,
        CommandCode.PROGRAM_UPLOAD,
        CommandCode.PROGRAM_RUN,
        CommandCode.PROGRAM_STOP,
        CommandCode.PLC_RESET,
        CommandCode.DATA_BLOCK_INFO,
    }
)
"""Commands sent as the bare code plus checksum."""


class ProtocolConstants:
    """
    Protocol constants and default tunables.

    Timing values are in seconds. Every value can be overridden per client
    through constructor keyword arguments.
    """

    # ===== Framing =====

    LINE_TERMINATOR: Final[bytes] = b"\n"
    """Terminator for commands and response lines."""

    WAKE_UP: Final[bytes] = b"?"
    """Wake-up command written before the first info request."""

    OK_PREFIX: Final[str] = "OK"
    """Prefix of successful replies."""

    ERROR_PREFIXES: Final[tuple[str, ...]] = ("ERR", "E:")
    """Prefixes of device error replies."""

    INFO_LABEL: Final[str] = "PLC INFO - "
    """Label some firmware repeats in front of the info record."""

    INTRO_PREFIX: Final[str] = "::"
    """Prefix of banner lines printed before the info record."""

    SYMBOL_LIST_TAG: Final[str] = "PS"
    """Header tag of a symbol list reply."""

    TRANSPORT_LIST_TAG: Final[str] = "TI"
    """Header tag of a transport list reply."""

    DATA_BLOCK_TAG: Final[str] = "DA"
    """Prefix of a data block table reply."""

    # ===== Serial defaults =====

    DEFAULT_BAUD_RATE: Final[int] = 115200
    """Default baud rate."""

    DEFAULT_BUFFER_SIZE: Final[int] = 32 * 1024
    """Receive ring buffer capacity in bytes."""

    READ_CHUNK_SIZE: Final[int] = 4096
    """Maximum bytes requested per ingress read."""

    # ===== Transport lifecycle =====

    OPEN_TIMEOUT: Final[float] = 5.0
    """Deadline for opening the port."""

    CLOSE_TIMEOUT: Final[float] = 3.0
    """Overall budget for closing the port."""

    # ===== Command queue =====

    QUEUE_CAPACITY: Final[int] = 50
    """Maximum number of commands waiting to run."""

    COMMAND_TIMEOUT: Final[float] = 8.0
    """Default per-command timeout."""

    LONG_COMMAND_TIMEOUT: Final[float] = 12.0
    """Timeout for info, program download and program upload."""

    # ===== Response waits =====

    RESPONSE_TIMEOUT: Final[float] = 5.0
    """Default wait for a reply line."""

    LONG_RESPONSE_TIMEOUT: Final[float] = 8.0
    """Wait for large reply lines (memory, symbols, transports)."""

    PROGRAM_RESPONSE_TIMEOUT: Final[float] = 12.0
    """Wait for program download/upload replies."""

    INFO_FIRST_BYTE_TIMEOUT: Final[float] = 5.0
    """Wait for the first byte of the info reply."""

    INFO_BUDGET: Final[float] = 8.0
    """Overall wait for a complete bracketed info record."""

    INFO_IDLE_TIMEOUT: Final[float] = 2.0
    """Give up on info when nothing at all arrived for this long."""

    INFO_POLL_INTERVAL: Final[float] = 0.3
    """Wait between accumulator polls (USB-CDC latency is variable)."""

    INFO_TRAILING_DELAY: Final[float] = 0.05
    """Pause after a complete info record to let trailing bytes land."""

    WAKE_UP_TIMEOUT: Final[float] = 5.0
    """Wait for the device to answer the wake-up command."""

    WAKE_UP_DRAIN_GAP: Final[float] = 0.1
    """Quiet gap that ends the wake-up drain."""

    # ===== Chunked writes =====

    CHUNK_SIZE: Final[int] = 64
    """Slice size for large command writes."""

    CHUNK_DELAY: Final[float] = 0.005
    """Pause between chunks."""

    DOWNLOAD_SETTLE_DELAY: Final[float] = 0.1
    """Pause after a program download before flushing stray bytes."""

    FLUSH_GAP: Final[float] = 0.05
    """Quiet gap between flush passes."""

    STALE_REPLY_SETTLE: Final[float] = 0.1
    """Wait for a late reply after a command timed out, before it is discarded."""

    # ===== Memory monitoring =====

    MONITOR_INTERVAL: Final[float] = 0.1
    """Default period between memory subscription polls."""

    # ===== Field limits =====

    MAX_U32: Final[int] = 0xFFFFFFFF
    """Upper bound of address/size fields."""

    HEALTH_MIN_HEX: Final[int] = 48
    """Minimum hex characters in a health reply."""
