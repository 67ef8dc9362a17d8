"""
Health reply parser.

The runtime answers ``PH`` with ``PH`` followed by up to thirteen
big-endian u32 values, each as eight hex digits. Older firmware sends
only the cycle and RAM counters.
"""

from __future__ import annotations

import logging

from plclink.exceptions import MalformedResponseError
from plclink.models.records import HealthSnapshot
from plclink.protocol.constants import CommandCode, ProtocolConstants
from plclink.protocol.encoding import decode_uint32, strip_non_hex

logger = logging.getLogger(__name__)

HEALTH_FIELDS: tuple[str, ...] = (
    "last_cycle_time_us",
    "min_cycle_time_us",
    "max_cycle_time_us",
    "ram_free",
    "min_ram_free",
    "max_ram_free",
    "total_ram_size",
    "last_period_us",
    "min_period_us",
    "max_period_us",
    "last_jitter_us",
    "min_jitter_us",
    "max_jitter_us",
)
"""Snapshot fields in wire order; field ``i`` sits at hex offset ``8 * i``."""


def parse_health(raw: str) -> HealthSnapshot:
    """
    Parse a health reply.

    Args:
        raw: Reply line. Anything before the ``PH`` tag is ignored.

    Returns:
        Health snapshot; fields beyond the received payload are None.

    Raises:
        MalformedResponseError: If the payload has fewer than 48 hex digits.

    Example:
        >>> snapshot = parse_health("PH" + "00000001" * 6)
        >>> snapshot.ram_free, snapshot.total_ram_size
        (1, None)
    """
    text = raw.strip()
    tag = CommandCode.HEALTH.value
    index = text.find(tag)
    if index >= 0:
        text = text[index + len(tag) :]

    payload = strip_non_hex(text)
    if len(payload) < ProtocolConstants.HEALTH_MIN_HEX:
        raise MalformedResponseError(
            f"Health payload has {len(payload)} hex digits, "
            f"expected at least {ProtocolConstants.HEALTH_MIN_HEX}",
            response_type="health",
            raw_data=raw,
        )

    values = {name: decode_uint32(payload, 8 * i) for i, name in enumerate(HEALTH_FIELDS)}
    logger.debug("Parsed health snapshot from %d hex digits", len(payload))
    return HealthSnapshot(**values)
