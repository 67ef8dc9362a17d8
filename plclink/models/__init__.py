"""
Data models for device replies and connection settings.

This module contains Pydantic models representing:

- Device info records for every firmware layout
- Health snapshots
- Symbol table and transport list entries
- Serial and simulation connection options
"""

from plclink.models.config import (
    ConnectionOptions,
    FlowControl,
    Parity,
    SerialConfig,
    SerialOptions,
    SimulationOptions,
)
from plclink.models.records import (
    DataBlockEntry,
    DataBlockInfo,
    DeviceInfo,
    DeviceLayout,
    FirmwareVersion,
    FlaggedDeviceInfo,
    HealthSnapshot,
    LegacyControlDeviceInfo,
    LegacyIODeviceInfo,
    MemoryReadResult,
    MemorySubscription,
    NetworkTransportConfig,
    SegmentedDeviceInfo,
    SerialTransportConfig,
    SymbolEntry,
    TransportInfo,
)

__all__ = [
    # Device info
    "DeviceInfo",
    "DeviceLayout",
    "FirmwareVersion",
    "LegacyIODeviceInfo",
    "LegacyControlDeviceInfo",
    "SegmentedDeviceInfo",
    "FlaggedDeviceInfo",
    # Records
    "HealthSnapshot",
    "SymbolEntry",
    "TransportInfo",
    "SerialTransportConfig",
    "NetworkTransportConfig",
    "DataBlockInfo",
    "DataBlockEntry",
    "MemorySubscription",
    "MemoryReadResult",
    # Configuration
    "SerialConfig",
    "Parity",
    "FlowControl",
    "SerialOptions",
    "SimulationOptions",
    "ConnectionOptions",
]
