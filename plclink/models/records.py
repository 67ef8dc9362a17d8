"""
Pydantic models for device replies.

All records are frozen and created fresh for every reply; the client keeps
no device state of its own.

Device info is a tagged union: the firmware generation is detected from the
field count of the reply and recorded in ``layout``, so callers match on
the layout instead of probing optional fields.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class DeviceLayout(IntEnum):
    """Info record layouts, oldest first."""

    LEGACY_IO = 1
    """Input/output areas only (15 fields)."""

    LEGACY_CONTROL = 2
    """Control/input/output/system/marker areas (21 fields)."""

    SEGMENTED = 3
    """System/input/output/marker areas plus timers and counters (25 fields)."""

    SEGMENTED_FLAGS = 4
    """As SEGMENTED with a flags field carrying the byte order (26 fields)."""


class FirmwareVersion(BaseModel):
    """
    Runtime firmware version.

    Example:
        >>> str(FirmwareVersion(major=0, minor=1, patch=0, build=324))
        '0.1.0 Build 324'
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)
    build: int = Field(ge=0)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch} Build {self.build}"


class _DeviceInfoBase(BaseModel):
    """Fields present in every info layout."""

    model_config = ConfigDict(frozen=True)

    header: str = Field(description="Runtime identifier, e.g. VovkPLCRuntime")
    arch: str = Field(description="Target architecture")
    version: FirmwareVersion
    date: str = Field(description="Firmware build date")
    stack_size: int = Field(ge=0)
    memory_size: int = Field(ge=0)
    program_size: int = Field(ge=0, description="Program capacity in bytes")
    device: str = Field(description="Device name")


class LegacyIODeviceInfo(_DeviceInfoBase):
    """Oldest layout: only input and output areas are reported."""

    layout: Literal[DeviceLayout.LEGACY_IO] = DeviceLayout.LEGACY_IO

    input_offset: int
    input_size: int
    output_offset: int
    output_size: int


class LegacyControlDeviceInfo(_DeviceInfoBase):
    """Layout using the ``control`` naming for the first area."""

    layout: Literal[DeviceLayout.LEGACY_CONTROL] = DeviceLayout.LEGACY_CONTROL

    control_offset: int
    control_size: int
    input_offset: int
    input_size: int
    output_offset: int
    output_size: int
    system_offset: int
    system_size: int
    marker_offset: int
    marker_size: int


class _SegmentedDeviceInfoBase(_DeviceInfoBase):
    """Fields shared by the two segmented layouts."""

    system_offset: int
    system_size: int
    input_offset: int
    input_size: int
    output_offset: int
    output_size: int
    marker_offset: int
    marker_size: int
    timer_offset: int
    timer_count: int
    timer_struct_size: int
    counter_offset: int
    counter_count: int
    counter_struct_size: int
    flags: int = 0
    is_little_endian: bool = True

    @property
    def control_offset(self) -> int:
        """Legacy alias for the system area offset."""
        return self.system_offset

    @property
    def control_size(self) -> int:
        """Legacy alias for the system area size."""
        return self.system_size


class SegmentedDeviceInfo(_SegmentedDeviceInfoBase):
    """
    Layout with system/input/output/marker areas, timers and counters.

    The firmware does not report its byte order; little endian is assumed.
    """

    layout: Literal[DeviceLayout.SEGMENTED] = DeviceLayout.SEGMENTED


class FlaggedDeviceInfo(_SegmentedDeviceInfoBase):
    """Newest layout: the flags field reports the device byte order."""

    layout: Literal[DeviceLayout.SEGMENTED_FLAGS] = DeviceLayout.SEGMENTED_FLAGS


DeviceInfo = Annotated[
    Union[LegacyIODeviceInfo, LegacyControlDeviceInfo, SegmentedDeviceInfo, FlaggedDeviceInfo],
    Field(discriminator="layout"),
]
"""Any device info record, discriminated by ``layout``."""


class HealthSnapshot(BaseModel):
    """
    Runtime health counters.

    Thirteen unsigned 32-bit fields. Older firmware sends only the first six
    or seven; fields the reply did not cover are None.
    """

    model_config = ConfigDict(frozen=True)

    last_cycle_time_us: int | None = None
    min_cycle_time_us: int | None = None
    max_cycle_time_us: int | None = None
    ram_free: int | None = None
    min_ram_free: int | None = None
    max_ram_free: int | None = None
    total_ram_size: int | None = None
    last_period_us: int | None = None
    min_period_us: int | None = None
    max_period_us: int | None = None
    last_jitter_us: int | None = None
    min_jitter_us: int | None = None
    max_jitter_us: int | None = None

    @property
    def is_extended(self) -> bool:
        """True when the reply carried the period and jitter counters."""
        return self.max_jitter_us is not None


class SymbolEntry(BaseModel):
    """One entry of the device symbol table."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    area: str = ""
    address: int = 0
    bit: int = 0
    type: str = "byte"
    comment: str = ""


class SerialTransportConfig(BaseModel):
    """Configuration of a device-side serial transport."""

    model_config = ConfigDict(frozen=True)

    baudrate: int = 0


class NetworkTransportConfig(BaseModel):
    """Configuration of a device-side network transport."""

    model_config = ConfigDict(frozen=True)

    ip: str = ""
    gateway: str = ""
    subnet: str = ""
    port: int = 0
    mac: str = ""


class TransportInfo(BaseModel):
    """One communication interface reported by the device."""

    model_config = ConfigDict(frozen=True)

    type: int = 0
    name: str = ""
    is_network: bool = False
    requires_auth: bool = False
    is_connected: bool = False
    config: SerialTransportConfig | NetworkTransportConfig | None = None


class DataBlockEntry(BaseModel):
    """One allocated data block."""

    model_config = ConfigDict(frozen=True)

    db: int = Field(ge=1, description="Data block number")
    offset: int = Field(ge=0, description="Start address in device memory")
    size: int = Field(ge=0, description="Size in bytes")


class DataBlockInfo(BaseModel):
    """
    The device's data block allocation table.

    All header values are unsigned 16-bit. A device without data block
    support reports the empty table.
    """

    model_config = ConfigDict(frozen=True)

    slots: int = 0
    active: int = 0
    table_offset: int = 0
    free_space: int = 0
    lowest_address: int = 0
    entries: tuple[DataBlockEntry, ...] = ()


class MemorySubscription(BaseModel):
    """A memory region polled by a subscription, with its read command."""

    model_config = ConfigDict(frozen=True)

    address: int = Field(ge=0)
    size: int = Field(gt=0)
    command: str = Field(description="Pre-built memory read command")


class MemoryReadResult(BaseModel):
    """Data read for one subscribed region during a poll."""

    model_config = ConfigDict(frozen=True)

    address: int
    size: int
    data: bytes
