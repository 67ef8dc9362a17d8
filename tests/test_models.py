"""Tests for data models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from plclink.models import (
    ConnectionOptions,
    DeviceInfo,
    DeviceLayout,
    FirmwareVersion,
    FlowControl,
    HealthSnapshot,
    LegacyIODeviceInfo,
    Parity,
    SerialConfig,
    SerialOptions,
    SimulationOptions,
    SymbolEntry,
    TransportInfo,
)


class TestFirmwareVersion:
    """Tests for FirmwareVersion model."""

    def test_str(self):
        """Test display format."""
        assert str(FirmwareVersion(major=0, minor=1, patch=0, build=324)) == "0.1.0 Build 324"

    def test_negative_rejected(self):
        """Test that version parts are non-negative."""
        with pytest.raises(ValidationError):
            FirmwareVersion(major=-1, minor=0, patch=0, build=0)

    def test_frozen(self):
        """Test that records are immutable."""
        version = FirmwareVersion(major=1, minor=0, patch=0, build=0)
        with pytest.raises(ValidationError):
            version.major = 2


class TestDeviceInfo:
    """Tests for the device info union."""

    def test_discriminated_by_layout(self):
        """Test that the layout field selects the record type."""
        adapter = TypeAdapter(DeviceInfo)
        info = adapter.validate_python(
            {
                "layout": DeviceLayout.LEGACY_IO,
                "header": "VovkPLCRuntime",
                "arch": "AVR",
                "version": {"major": 0, "minor": 1, "patch": 0, "build": 1},
                "date": "2024-01-01",
                "stack_size": 64,
                "memory_size": 512,
                "program_size": 1024,
                "input_offset": 0,
                "input_size": 4,
                "output_offset": 4,
                "output_size": 4,
                "device": "Nano",
            }
        )
        assert isinstance(info, LegacyIODeviceInfo)

    def test_layout_order(self):
        """Test that layouts are numbered oldest first."""
        assert DeviceLayout.LEGACY_IO < DeviceLayout.LEGACY_CONTROL < DeviceLayout.SEGMENTED
        assert DeviceLayout.SEGMENTED < DeviceLayout.SEGMENTED_FLAGS


class TestRecords:
    """Tests for health, symbol and transport records."""

    def test_health_defaults(self):
        """Test that missing counters are None."""
        snapshot = HealthSnapshot(last_cycle_time_us=10)
        assert snapshot.ram_free is None
        assert snapshot.is_extended is False

    def test_symbol_defaults(self):
        """Test symbol entry defaults."""
        entry = SymbolEntry(name="x")
        assert entry.type == "byte"
        assert entry.comment == ""

    def test_transport_defaults(self):
        """Test transport record defaults."""
        transport = TransportInfo()
        assert transport.config is None
        assert transport.is_network is False


class TestSerialConfig:
    """Tests for SerialConfig model."""

    def test_defaults(self):
        """Test the standard port settings."""
        config = SerialConfig(port="/dev/ttyACM0")
        assert config.baudrate == 115200
        assert config.data_bits == 8
        assert config.stop_bits == 1
        assert config.parity == Parity.NONE
        assert config.flow_control == FlowControl.NONE

    def test_enum_values_from_text(self):
        """Test parsing settings from configuration text."""
        config = SerialConfig(port="COM3", parity="odd", flow_control="software", stop_bits=1.5)
        assert config.parity == Parity.ODD
        assert config.flow_control == FlowControl.SOFTWARE

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"port": ""},
            {"port": "COM3", "baudrate": 0},
            {"port": "COM3", "data_bits": 9},
            {"port": "COM3", "stop_bits": 3},
            {"port": "COM3", "parity": "sometimes"},
        ],
    )
    def test_invalid(self, kwargs):
        """Test rejected settings."""
        with pytest.raises(ValidationError):
            SerialConfig(**kwargs)


class TestConnectionOptions:
    """Tests for connection selection."""

    @pytest.fixture
    def adapter(self):
        """Create an adapter for the options union."""
        return TypeAdapter(ConnectionOptions)

    def test_serial(self, adapter):
        """Test selecting a serial connection."""
        options = adapter.validate_python({"target": "serial", "serial": {"port": "COM3"}})
        assert isinstance(options, SerialOptions)
        assert options.serial.port == "COM3"
        assert options.queue_capacity == 50
        assert options.command_timeout == 8.0

    def test_simulation(self, adapter):
        """Test selecting a simulation."""
        options = adapter.validate_python({"target": "simulation"})
        assert isinstance(options, SimulationOptions)
        assert options.run_interval == 0.2

    def test_unknown_target(self, adapter):
        """Test that the target must be known."""
        with pytest.raises(ValidationError):
            adapter.validate_python({"target": "bluetooth"})

    def test_serial_requires_port(self, adapter):
        """Test that serial options need port settings."""
        with pytest.raises(ValidationError):
            adapter.validate_python({"target": "serial"})
