"""
Command builders.

Each builder returns the complete command text (without the terminating
newline) in uppercase ASCII:

    <CODE><hex fields...><CRC8>

Addresses, sizes and offsets are u32 fields (8 hex characters), data is
two hex characters per byte. The CRC-8 chains over the ASCII code followed
by the binary value of every field, matching the runtime's parser.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from plclink.models.records import MemorySubscription
from plclink.protocol.checksums import encode_checksum, frame_checksum
from plclink.protocol.constants import FIXED_COMMANDS, CommandCode, ProtocolConstants
from plclink.protocol.encoding import encode_byte, encode_bytes, encode_uint32


def _frame(code: CommandCode, *fields: str) -> str:
    body = code.value + "".join(fields)
    return body + encode_checksum(frame_checksum(body))


def build_simple_command(code: CommandCode | str) -> str:
    """
    Build a fixed command: the two-letter code followed by its checksum.

    Args:
        code: One of the fixed commands (``PI``, ``PH``, ``RH``, ``SL``,
            ``TI``, ``PM``, ``PU``, ``PR``, ``PS``, ``RS``, ``DA``).

    Raises:
        ValueError: If the code needs parameters or is unknown.

    Example:
        >>> build_simple_command(CommandCode.PROGRAM_INFO)
        'PI52'
    """
    command = CommandCode(code)
    if command not in FIXED_COMMANDS:
        raise ValueError(f"{command.value} is not a fixed command")
    return _frame(command)


def build_memory_read(address: int, size: int) -> str:
    """
    Build a memory read command.

    Format: ``MR<address u32><size u32><crc>``
    """
    return _frame(CommandCode.MEMORY_READ, encode_uint32(address), encode_uint32(size))


def create_memory_subscription(address: int, size: int) -> MemorySubscription:
    """
    Describe a memory region to poll, with its read command built once.

    Raises:
        ValueError: If ``size`` is not positive or a field is out of range.

    Example:
        >>> subscription = create_memory_subscription(64, 8)
        >>> subscription.command == build_memory_read(64, 8)
        True
    """
    if size <= 0:
        raise ValueError(f"Subscription size must be positive, got {size}")
    return MemorySubscription(address=address, size=size, command=build_memory_read(address, size))


def build_memory_write(address: int, data: Sequence[int] | bytes) -> str:
    """
    Build a memory write command.

    Format: ``MW<address u32><size u32><data><crc>``
    """
    return _frame(
        CommandCode.MEMORY_WRITE,
        encode_uint32(address),
        encode_uint32(len(data)),
        encode_bytes(data),
    )


def build_memory_write_masked(
    address: int,
    data: Sequence[int] | bytes,
    mask: Sequence[int] | bytes,
) -> str:
    """
    Build a masked memory write command.

    Only bits set in ``mask`` are written. ``data`` and ``mask`` must have
    the same length.

    Format: ``MM<address u32><size u32><data><mask><crc>``

    Raises:
        ValueError: If data and mask lengths differ.
    """
    if len(data) != len(mask):
        raise ValueError(f"Mask length {len(mask)} does not match data length {len(data)}")
    return _frame(
        CommandCode.MEMORY_WRITE_MASKED,
        encode_uint32(address),
        encode_uint32(len(data)),
        encode_bytes(data),
        encode_bytes(mask),
    )


def build_memory_format(address: int, size: int, value: int) -> str:
    """
    Build a memory format (fill) command.

    Format: ``MF<address u32><size u32><value u8><crc>``
    """
    return _frame(
        CommandCode.MEMORY_FORMAT,
        encode_uint32(address),
        encode_uint32(size),
        encode_byte(value),
    )


def build_program_download(bytecode: Sequence[int] | bytes) -> str:
    """
    Build a program download command.

    Format: ``PD<size u32><bytecode><crc>``

    The result is usually too long for the device's receive buffer in one
    write; send it with :func:`chunk_command`.
    """
    return _frame(
        CommandCode.PROGRAM_DOWNLOAD,
        encode_uint32(len(bytecode)),
        encode_bytes(bytecode),
    )


def build_tc_config(timer_offset: int, counter_offset: int) -> str:
    """
    Build a timer/counter offset configuration command.

    Format: ``TC<timer offset u32><counter offset u32><crc>``
    """
    return _frame(
        CommandCode.TC_CONFIG,
        encode_uint32(timer_offset),
        encode_uint32(counter_offset),
    )


def chunk_command(
    text: str,
    chunk_size: int = ProtocolConstants.CHUNK_SIZE,
) -> Iterator[str]:
    """
    Slice command text into pieces of at most ``chunk_size`` characters.

    Raises:
        ValueError: If chunk_size is not positive.
    """
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    for start in range(0, len(text), chunk_size):
        yield text[start : start + chunk_size]
