"""
CRC-8 calculation and validation.

The runtime validates every command with a CRC-8 using polynomial 0x31,
initial value 0x00, most significant bit first, no reflection and no final
XOR. The checksum covers the two command letters followed by the *binary*
value of each hex field (not the hex text), and is sent as two uppercase
ASCII hex characters in front of the newline.

The table below is computed once at import, exactly like the firmware's
lookup table.
"""

from __future__ import annotations

from typing import Final

from plclink.exceptions import ChecksumMismatchError

CRC8_POLYNOMIAL: Final[int] = 0x31


def _build_table(polynomial: int) -> tuple[int, ...]:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            crc = ((crc << 1) ^ polynomial) if crc & 0x80 else (crc << 1)
        table.append(crc & 0xFF)
    return tuple(table)


_CRC8_TABLE: Final[tuple[int, ...]] = _build_table(CRC8_POLYNOMIAL)

# Pre-computed lookup table for hex encoding
_HEX_CHARS: Final[bytes] = b"0123456789ABCDEF"


def crc8(data: bytes | bytearray | memoryview | str | int, initial: int = 0) -> int:
    """
    Calculate the runtime's CRC-8 over the given bytes.

    Args:
        data: Bytes to checksum. A ``str`` is encoded as ASCII; an ``int``
            is treated as a single byte.
        initial: Running CRC to continue from, so that fields can be
            chained: ``crc8(b, crc8(a)) == crc8(a + b)``.

    Returns:
        8-bit checksum value (0-255).

    Raises:
        ValueError: If an integer input is outside 0-255.

    Example:
        >>> crc8(b"PI")
        82
    """
    if isinstance(data, int):
        if not 0 <= data <= 255:
            raise ValueError(f"Invalid byte: {data}")
        data = bytes([data])
    elif isinstance(data, str):
        data = data.encode("ascii")

    crc = initial & 0xFF
    for byte in bytes(data):
        crc = _CRC8_TABLE[crc ^ byte]
    return crc


def encode_checksum(checksum: int) -> str:
    """
    Encode a checksum value as 2 uppercase hex characters.

    Raises:
        ValueError: If checksum is not in range 0-255.
    """
    if not 0 <= checksum <= 255:
        raise ValueError(f"Checksum must be 0-255, got {checksum}")
    return chr(_HEX_CHARS[checksum >> 4]) + chr(_HEX_CHARS[checksum & 0x0F])


def append_checksum(command: str) -> str:
    """
    Append the CRC-8 of a plain ASCII command as 2 hex characters.

    Only suitable for commands without hex fields (``PI``, ``PH``...).
    Parametrized commands checksum the binary field values instead; see
    :func:`frame_checksum`.

    Example:
        >>> append_checksum("PI")
        'PI52'
    """
    return command + encode_checksum(crc8(command))


def frame_checksum(frame_body: str) -> int:
    """
    Compute the checksum the device expects for a frame body.

    The frame body is the two command letters followed by hex fields. The
    letters are checksummed as ASCII; the remaining hex text is checksummed
    as the bytes it encodes.

    Raises:
        ValueError: If the hex part has odd length or non-hex characters.
    """
    code, fields = frame_body[:2], frame_body[2:]
    return crc8(bytes.fromhex(fields), crc8(code))


def verify_frame(frame: str) -> str:
    """
    Validate the trailing checksum of a complete command frame.

    Args:
        frame: Command text including its 2-character checksum. A trailing
            newline is ignored.

    Returns:
        The frame body without checksum.

    Raises:
        ChecksumMismatchError: If the checksum does not match.
        ValueError: If the frame is too short or not hex where hex is required.
    """
    frame = frame.strip()
    if len(frame) < 4:
        raise ValueError(f"Frame too short: {frame!r}")

    body, checksum_chars = frame[:-2], frame[-2:]
    received = int(checksum_chars, 16)
    expected = frame_checksum(body)
    if expected != received:
        raise ChecksumMismatchError(
            f"Checksum mismatch for {body[:2]!r} frame",
            expected=expected,
            received=received,
        )
    return body
