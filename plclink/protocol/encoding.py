"""
Hex encoding and decoding utilities.

Command fields and most reply payloads are ASCII hex: each byte is two
characters, and u32 fields are eight characters, most significant first.

For example:
- Byte 0x8F is transmitted as "8F"
- Address 10 is transmitted as "0000000A"
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Final

_NON_HEX: Final[re.Pattern[str]] = re.compile(r"[^0-9a-fA-F]")


def encode_byte(value: int) -> str:
    """
    Encode a byte value as 2 uppercase hex characters.

    Raises:
        ValueError: If value is not in range 0-255.

    Example:
        >>> encode_byte(0x8F)
        '8F'
    """
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Byte value must be 0-255, got {value}")
    return f"{value:02X}"


def encode_uint32(value: int) -> str:
    """
    Encode a 32-bit unsigned value as 8 uppercase hex characters.

    Raises:
        ValueError: If value is not in range 0-0xFFFFFFFF.

    Example:
        >>> encode_uint32(10)
        '0000000A'
    """
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"UInt32 value must be 0-4294967295, got {value}")
    return f"{value:08X}"


def encode_bytes(data: Iterable[int]) -> str:
    """
    Encode a byte sequence as uppercase hex.

    Accepts ``bytes``, ``bytearray`` or any iterable of ints, validating
    each value.

    Raises:
        ValueError: If any value is outside 0-255.
    """
    return "".join(encode_byte(b) for b in data)


def string_to_hex(text: str) -> str:
    """
    Hex-encode the ASCII characters of a string.

    Example:
        >>> string_to_hex("PI")
        '5049'
    """
    return text.encode("ascii").hex()


def strip_non_hex(text: str) -> str:
    """Remove every character that is not a hex digit."""
    return _NON_HEX.sub("", text)


def parse_hex(text: str) -> bytes:
    """
    Decode a hex string to bytes, ignoring non-hex characters.

    Raises:
        ValueError: If the remaining hex digits have odd length.

    Example:
        >>> parse_hex("01 02 0a")
        b'\\x01\\x02\\n'
    """
    clean = strip_non_hex(text)
    if len(clean) % 2 != 0:
        raise ValueError(f"Invalid hex string length: {len(clean)}")
    return bytes.fromhex(clean)


def decode_uint32(hex_text: str, offset: int = 0) -> int | None:
    """
    Decode 8 hex characters at ``offset`` as an unsigned 32-bit value.

    Returns:
        The decoded value, or None if fewer than 8 characters remain.
    """
    chunk = hex_text[offset : offset + 8]
    if len(chunk) < 8:
        return None
    return int(chunk, 16)


def decode_uint16(hex_text: str, offset: int = 0) -> int | None:
    """
    Decode 4 hex characters at ``offset`` as an unsigned 16-bit value.

    Returns:
        The decoded value, or None if fewer than 4 characters remain.
    """
    chunk = hex_text[offset : offset + 4]
    if len(chunk) < 4:
        return None
    return int(chunk, 16)
