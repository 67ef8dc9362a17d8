"""
Data block table parser.

The runtime answers ``DA`` with ``DA`` followed by unsigned 16-bit values,
four hex digits each:

    DA <slots><active><table offset><free space><lowest address>
       <db><offset><size> <db><offset><size> ...

Unused slots carry data block number 0 and are left out.
"""

from __future__ import annotations

import logging
from typing import Final

from plclink.models.records import DataBlockEntry, DataBlockInfo
from plclink.protocol.constants import ProtocolConstants
from plclink.protocol.encoding import decode_uint16, strip_non_hex

logger = logging.getLogger(__name__)

HEADER_HEX: Final[int] = 20
ENTRY_HEX: Final[int] = 12


def parse_data_block_info(raw: str) -> DataBlockInfo:
    """
    Parse a data block table reply.

    Header values missing from a short reply read as 0, as does a trailing
    partial entry.

    Args:
        raw: Reply line.

    Returns:
        The table; empty when the reply does not start with ``DA``.

    Example:
        >>> info = parse_data_block_info("DA" "0004" "0001" "0100" "0200" "0300" "0001" "0300" "0010")
        >>> info.slots, [(e.db, e.offset, e.size) for e in info.entries]
        (4, [(1, 768, 16)])
    """
    text = raw.strip()
    tag = ProtocolConstants.DATA_BLOCK_TAG
    if not text.startswith(tag):
        logger.debug("No data block table in reply %r", text[:40])
        return DataBlockInfo()

    payload = strip_non_hex(text[len(tag) :])

    def word(offset: int) -> int:
        value = decode_uint16(payload, offset)
        return value if value is not None else 0

    entries: list[DataBlockEntry] = []
    for position in range(HEADER_HEX, len(payload) - ENTRY_HEX + 1, ENTRY_HEX):
        db = word(position)
        if db == 0:
            continue
        entries.append(DataBlockEntry(db=db, offset=word(position + 4), size=word(position + 8)))

    info = DataBlockInfo(
        slots=word(0),
        active=word(4),
        table_offset=word(8),
        free_space=word(12),
        lowest_address=word(16),
        entries=tuple(entries),
    )
    logger.debug("Parsed data block table: %d of %d slots in use", len(entries), info.slots)
    return info
