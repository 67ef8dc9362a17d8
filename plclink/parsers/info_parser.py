"""
Device info record parser.

The runtime answers ``PI`` with one bracketed, comma-separated record,
sometimes preceded by ``::`` banner lines and a ``PLC INFO - `` label:

    [VovkPLCRuntime,WASM,0,1,0,324,2025-03-16 19:16:44,1024,104857,104857,
     0,16,16,16,32,16,48,16,64,16,Simulator]

The first ten fields are common to every firmware generation. The layout of
the remaining fields is selected by the total field count, and the checks
are ordered newest first with ``>=`` so that a newer firmware that appends
fields is still read with the newest layout this library knows.

| Fields | Layout |
|--------|--------|
| >= 26  | system, input, output, marker, timer, counter, flags, device |
| >= 25  | system, input, output, marker, timer, counter, device |
| >= 21  | control, input, output, system, marker, device |
| >= 15  | input, output, device |
"""

from __future__ import annotations

import logging
from typing import Final

from pydantic import ValidationError

from plclink.exceptions import MalformedResponseError, UnknownFormatGenerationError
from plclink.models.records import (
    DeviceInfo,
    FirmwareVersion,
    FlaggedDeviceInfo,
    LegacyControlDeviceInfo,
    LegacyIODeviceInfo,
    SegmentedDeviceInfo,
)
from plclink.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)

BASE_FIELD_COUNT: Final[int] = 10
LEGACY_IO_FIELD_COUNT: Final[int] = 15
LEGACY_CONTROL_FIELD_COUNT: Final[int] = 21
SEGMENTED_FIELD_COUNT: Final[int] = 25
FLAGGED_FIELD_COUNT: Final[int] = 26

_FLAG_LITTLE_ENDIAN: Final[int] = 0x01


def strip_info_framing(raw: str) -> str:
    """
    Remove banner lines and the info label, leaving the bracketed record.

    Args:
        raw: Raw reply text, possibly spanning several lines.

    Returns:
        The stripped text (not yet checked for brackets).
    """
    lines = [
        line.strip()
        for line in raw.splitlines()
        if line.strip() and not line.strip().startswith(ProtocolConstants.INTRO_PREFIX)
    ]
    text = " ".join(lines).strip()

    label = ProtocolConstants.INFO_LABEL
    if text.startswith(label):
        # Only the first label is framing; a repeated one stays in the record
        text = text[len(label) :].strip()
    elif label in text and "[" in text and text.index(label) < text.index("["):
        text = text[text.index(label) + len(label) :].strip()
    return text


class _FieldReader:
    """Sequential reader over the split record fields."""

    def __init__(self, fields: list[str], raw: str) -> None:
        self._fields = fields
        self._raw = raw
        self.position = 0

    def text(self) -> str:
        value = self._fields[self.position].strip()
        self.position += 1
        return value

    def number(self) -> int:
        value = self.text()
        try:
            return int(value)
        except ValueError:
            raise MalformedResponseError(
                f"Field {self.position - 1} is not a number: {value!r}",
                response_type="device_info",
                raw_data=self._raw,
            ) from None

    def area(self) -> tuple[int, int]:
        return self.number(), self.number()


def parse_device_info(raw: str) -> DeviceInfo:
    """
    Parse a device info reply.

    Args:
        raw: Reply text as received (banner lines and label allowed).

    Returns:
        A device info record whose ``layout`` names the detected generation.

    Raises:
        MalformedResponseError: If the record is not bracketed, has fewer
            than the ten common fields, or a numeric field is not a number
            or is out of range.
        UnknownFormatGenerationError: If the field count is between the
            common fields and the oldest known layout.

    Example:
        >>> info = parse_device_info(
        ...     "[VovkPLCRuntime,WASM,0,1,0,324,2025-03-16 19:16:44,1024,104857,"
        ...     "104857,0,16,16,16,32,16,48,16,64,16,Simulator]"
        ... )
        >>> info.layout.name, info.device, info.input_offset
        ('LEGACY_CONTROL', 'Simulator', 16)
    """
    text = strip_info_framing(raw)
    if not (text.startswith("[") and text.endswith("]")):
        raise MalformedResponseError(
            "Device info is not a bracketed record",
            response_type="device_info",
            raw_data=raw,
        )

    fields = text[1:-1].split(",")
    count = len(fields)
    if count < BASE_FIELD_COUNT:
        raise MalformedResponseError(
            f"Device info has only {count} fields",
            response_type="device_info",
            raw_data=raw,
        )
    if count < LEGACY_IO_FIELD_COUNT:
        raise UnknownFormatGenerationError(count)

    reader = _FieldReader(fields, raw)
    try:
        info = _build_info(reader, count)
    except ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise MalformedResponseError(
            f"Device info field {location or 'record'} is invalid: {error['msg']}",
            response_type="device_info",
            raw_data=raw,
        ) from e

    if count > FLAGGED_FIELD_COUNT:
        logger.debug("Device info has %d fields, extra fields ignored", count)
    logger.debug("Parsed device info layout=%s device=%s", info.layout.name, info.device)
    return info


def _build_info(reader: _FieldReader, count: int) -> DeviceInfo:
    base = {
        "header": reader.text(),
        "arch": reader.text(),
        "version": FirmwareVersion(
            major=reader.number(),
            minor=reader.number(),
            patch=reader.number(),
            build=reader.number(),
        ),
        "date": reader.text(),
        "stack_size": reader.number(),
        "memory_size": reader.number(),
        "program_size": reader.number(),
    }

    if count >= SEGMENTED_FIELD_COUNT:
        return _parse_segmented(reader, base, flagged=count >= FLAGGED_FIELD_COUNT)
    if count >= LEGACY_CONTROL_FIELD_COUNT:
        return _parse_legacy_control(reader, base)
    return _parse_legacy_io(reader, base)


def _parse_segmented(reader: _FieldReader, base: dict, *, flagged: bool) -> DeviceInfo:
    system_offset, system_size = reader.area()
    input_offset, input_size = reader.area()
    output_offset, output_size = reader.area()
    marker_offset, marker_size = reader.area()
    timer_offset, timer_count, timer_struct_size = reader.number(), reader.number(), reader.number()
    counter_offset, counter_count, counter_struct_size = (
        reader.number(),
        reader.number(),
        reader.number(),
    )
    areas = {
        "system_offset": system_offset,
        "system_size": system_size,
        "input_offset": input_offset,
        "input_size": input_size,
        "output_offset": output_offset,
        "output_size": output_size,
        "marker_offset": marker_offset,
        "marker_size": marker_size,
        "timer_offset": timer_offset,
        "timer_count": timer_count,
        "timer_struct_size": timer_struct_size,
        "counter_offset": counter_offset,
        "counter_count": counter_count,
        "counter_struct_size": counter_struct_size,
    }

    if flagged:
        flags = reader.number()
        return FlaggedDeviceInfo(
            **base,
            **areas,
            flags=flags,
            is_little_endian=bool(flags & _FLAG_LITTLE_ENDIAN),
            device=reader.text(),
        )
    return SegmentedDeviceInfo(**base, **areas, device=reader.text())


def _parse_legacy_control(reader: _FieldReader, base: dict) -> DeviceInfo:
    control_offset, control_size = reader.area()
    input_offset, input_size = reader.area()
    output_offset, output_size = reader.area()
    system_offset, system_size = reader.area()
    marker_offset, marker_size = reader.area()
    return LegacyControlDeviceInfo(
        **base,
        control_offset=control_offset,
        control_size=control_size,
        input_offset=input_offset,
        input_size=input_size,
        output_offset=output_offset,
        output_size=output_size,
        system_offset=system_offset,
        system_size=system_size,
        marker_offset=marker_offset,
        marker_size=marker_size,
        device=reader.text(),
    )


def _parse_legacy_io(reader: _FieldReader, base: dict) -> DeviceInfo:
    input_offset, input_size = reader.area()
    output_offset, output_size = reader.area()
    return LegacyIODeviceInfo(
        **base,
        input_offset=input_offset,
        input_size=input_size,
        output_offset=output_offset,
        output_size=output_size,
        device=reader.text(),
    )
