"""
Protocol layer for the VovkPLC serial dialect.

This module contains the low-level protocol handling:
- Command codes and protocol constants
- CRC-8 calculation and frame validation
- Hex encoding/decoding utilities
- Command builders and chunking
- Accumulation of fragmented bracketed replies
"""

from plclink.protocol.accumulator import BracketAccumulator
from plclink.protocol.checksums import (
    append_checksum,
    crc8,
    encode_checksum,
    frame_checksum,
    verify_frame,
)
from plclink.protocol.commands import (
    build_memory_format,
    build_memory_read,
    build_memory_write,
    build_memory_write_masked,
    build_program_download,
    build_simple_command,
    build_tc_config,
    chunk_command,
    create_memory_subscription,
)
from plclink.protocol.constants import FIXED_COMMANDS, CommandCode, ProtocolConstants
from plclink.protocol.encoding import (
    decode_uint16,
    decode_uint32,
    encode_byte,
    encode_bytes,
    encode_uint32,
    parse_hex,
    string_to_hex,
    strip_non_hex,
)

__all__ = [
    # Constants
    "CommandCode",
    "FIXED_COMMANDS",
    "ProtocolConstants",
    # Checksums
    "crc8",
    "encode_checksum",
    "append_checksum",
    "frame_checksum",
    "verify_frame",
    # Encoding
    "encode_byte",
    "encode_bytes",
    "encode_uint32",
    "decode_uint16",
    "decode_uint32",
    "parse_hex",
    "string_to_hex",
    "strip_non_hex",
    # Builders
    "build_simple_command",
    "build_memory_read",
    "build_memory_write",
    "build_memory_write_masked",
    "build_memory_format",
    "build_program_download",
    "build_tc_config",
    "chunk_command",
    "create_memory_subscription",
    # Accumulation
    "BracketAccumulator",
]
