"""
Parsers for brace-delimited record lists.

Symbol and transport lists share one reply shape:

    [TAG,count,{field,field,...},{field,field,...}]

The header before the first ``{`` names the list and the record count.
Each ``{...}`` group is one record.
"""

from __future__ import annotations

import logging
import re
from typing import Final

from plclink.exceptions import MalformedResponseError
from plclink.models.records import (
    NetworkTransportConfig,
    SerialTransportConfig,
    SymbolEntry,
    TransportInfo,
)
from plclink.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)

_GROUP: Final[re.Pattern[str]] = re.compile(r"\{([^}]*)\}")

SYMBOL_STRICT_FIELDS: Final[int] = 5
TRANSPORT_MIN_FIELDS: Final[int] = 5
SERIAL_CONFIG_FIELDS: Final[int] = 6
NETWORK_CONFIG_FIELDS: Final[int] = 10


def _to_int(value: str) -> int:
    """Lenient integer conversion; anything unparseable becomes 0."""
    try:
        return int(value.strip())
    except ValueError:
        return 0


def split_record_list(raw: str, tag: str) -> list[list[str]]:
    """
    Validate the list header and split every record group on commas.

    Args:
        raw: Reply line.
        tag: Expected two-letter list tag.

    Returns:
        The comma-split fields of each group. Empty when the reply is empty,
        announces zero records, or carries no groups.

    Raises:
        MalformedResponseError: If the reply is not bracketed or the header
            carries a different tag.
    """
    text = raw.strip()
    if not text:
        return []
    if not (text.startswith("[") and text.endswith("]")):
        raise MalformedResponseError(
            "Record list is not bracketed",
            response_type=tag,
            raw_data=raw,
        )

    content = text[1:-1]
    brace = content.find("{")
    header = content if brace < 0 else content[:brace]
    header_parts = [part.strip() for part in header.split(",") if part.strip()]

    received_tag = header_parts[0] if header_parts else ""
    if received_tag != tag:
        logger.warning("Unexpected record list header %r, expected %r", received_tag, tag)
        raise MalformedResponseError(
            f"Unexpected list header {received_tag!r}, expected {tag!r}",
            response_type=tag,
            raw_data=raw,
        )

    if brace < 0:
        return []
    count = _to_int(header_parts[1]) if len(header_parts) > 1 else 0
    if count == 0:
        return []

    groups = [match.group(1).split(",") for match in _GROUP.finditer(content)]
    if len(groups) != count:
        logger.debug("List %s announced %d records, received %d", tag, count, len(groups))
    return groups


def parse_symbol_list(raw: str) -> list[SymbolEntry]:
    """
    Parse a symbol list reply.

    The first five fields of a group are split strictly; everything after
    them is the comment, which may itself contain commas. Groups with fewer
    than five fields are skipped.

    Example:
        >>> entries = parse_symbol_list("[PS,1,{start,M,4,0,bit,Start, main}]")
        >>> entries[0].name, entries[0].address, entries[0].comment
        ('start', 4, 'Start, main')
    """
    entries: list[SymbolEntry] = []
    for parts in split_record_list(raw, ProtocolConstants.SYMBOL_LIST_TAG):
        if len(parts) < SYMBOL_STRICT_FIELDS:
            continue
        entries.append(
            SymbolEntry(
                name=parts[0],
                area=parts[1],
                address=_to_int(parts[2]),
                bit=_to_int(parts[3]),
                type=parts[4] or "byte",
                comment=",".join(parts[SYMBOL_STRICT_FIELDS:]),
            )
        )
    return entries


def parse_transport_list(raw: str) -> list[TransportInfo]:
    """
    Parse a transport list reply.

    Group fields are ``type,name,is_network,requires_auth,is_connected``
    followed by the configuration: a baud rate for serial interfaces, or
    ``ip,gateway,subnet,port,mac`` for network interfaces.
    """
    transports: list[TransportInfo] = []
    for parts in split_record_list(raw, ProtocolConstants.TRANSPORT_LIST_TAG):
        if len(parts) < TRANSPORT_MIN_FIELDS:
            continue
        is_network = parts[2] == "1"

        config: SerialTransportConfig | NetworkTransportConfig | None = None
        if not is_network and len(parts) >= SERIAL_CONFIG_FIELDS:
            config = SerialTransportConfig(baudrate=_to_int(parts[5]))
        elif is_network and len(parts) >= NETWORK_CONFIG_FIELDS:
            config = NetworkTransportConfig(
                ip=parts[5],
                gateway=parts[6],
                subnet=parts[7],
                port=_to_int(parts[8]),
                mac=parts[9],
            )

        transports.append(
            TransportInfo(
                type=_to_int(parts[0]),
                name=parts[1],
                is_network=is_network,
                requires_auth=parts[3] == "1",
                is_connected=parts[4] == "1",
                config=config,
            )
        )
    return transports
