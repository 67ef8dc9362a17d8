"""
Parsers for device replies.

This package turns raw reply text into structured records:

1. **Device info**: field-count dispatch over the firmware layouts
2. **Health**: u32 counters decoded from a hex payload
3. **Record lists**: brace-delimited symbol and transport lists
4. **Data blocks**: the u16 data block table
5. **Line replies**: hex payloads and acknowledgements

Parse failures raise ProtocolError subclasses and never touch the
connection.

Example:
    >>> from plclink.parsers import parse_health
    >>> parse_health("PH" + "00000001" * 6).last_cycle_time_us
    1
"""

from plclink.parsers.data_block_parser import parse_data_block_info
from plclink.parsers.health_parser import HEALTH_FIELDS, parse_health
from plclink.parsers.info_parser import parse_device_info, strip_info_framing
from plclink.parsers.record_list_parser import (
    parse_symbol_list,
    parse_transport_list,
    split_record_list,
)
from plclink.parsers.response_parser import (
    is_error_reply,
    parse_acknowledgement,
    parse_hex_payload,
)

__all__ = [
    # Device info
    "parse_device_info",
    "strip_info_framing",
    # Data blocks
    "parse_data_block_info",
    # Health
    "HEALTH_FIELDS",
    "parse_health",
    # Record lists
    "parse_symbol_list",
    "parse_transport_list",
    "split_record_list",
    # Line replies
    "is_error_reply",
    "parse_acknowledgement",
    "parse_hex_payload",
]
