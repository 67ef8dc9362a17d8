"""
Parsers for single-line replies: hex payloads and acknowledgements.
"""

from __future__ import annotations

import logging

from plclink.exceptions import DeviceRejectedError, MalformedResponseError
from plclink.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)


def is_error_reply(text: str) -> bool:
    """Check whether a reply line is a device error (``ERR...`` or ``E:...``)."""
    return text.strip().upper().startswith(ProtocolConstants.ERROR_PREFIXES)


def _raise_if_rejected(text: str) -> None:
    if is_error_reply(text):
        logger.error("Device rejected command: %s", text)
        raise DeviceRejectedError(text)


def parse_hex_payload(raw: str) -> bytes:
    """
    Decode a hex payload reply such as a memory read or program upload.

    The payload may be preceded by ``OK``; whitespace inside it is ignored.

    Raises:
        DeviceRejectedError: If the device answered with an error line.
        MalformedResponseError: If the payload is not valid hex.

    Example:
        >>> parse_hex_payload("OK 01020A")
        b'\\x01\\x02\\n'
    """
    text = raw.strip()
    _raise_if_rejected(text)
    if text.upper().startswith(ProtocolConstants.OK_PREFIX):
        text = text[len(ProtocolConstants.OK_PREFIX) :].strip()

    compact = "".join(text.split())
    try:
        if len(compact) % 2 != 0:
            raise ValueError(f"odd length {len(compact)}")
        return bytes.fromhex(compact)
    except ValueError as e:
        raise MalformedResponseError(
            f"Invalid hex payload: {e}",
            response_type="hex_payload",
            raw_data=raw,
        ) from e


def parse_acknowledgement(raw: str) -> str:
    """
    Check an acknowledgement line.

    Anything that is not an error line counts as success; the firmware
    answers ``OK`` but older builds echo other text.

    Returns:
        The stripped reply text.

    Raises:
        DeviceRejectedError: If the device answered with an error line.
    """
    text = raw.strip()
    _raise_if_rejected(text)
    return text
