"""Tests for the connection factory."""

import pytest
from pydantic import ValidationError

from plclink import DeviceClient, DeviceConnection, SimulationClient, open_connection
from plclink.models import SerialConfig, SerialOptions, SimulationOptions


class TestOpenConnection:
    """Tests for open_connection."""

    @pytest.mark.asyncio
    async def test_simulation(self, vm):
        """Test building a simulation connection."""
        connection = await open_connection(SimulationOptions(run_interval=0.01), vm=vm)
        try:
            assert isinstance(connection, SimulationClient)
            assert isinstance(connection, DeviceConnection)
            assert connection.is_connected
            assert vm.initialized == 1
        finally:
            await connection.disconnect()

    @pytest.mark.asyncio
    async def test_simulation_from_mapping(self, vm):
        """Test options given as a plain mapping."""
        connection = await open_connection({"target": "simulation", "run_interval": 0.01}, vm=vm)
        try:
            assert isinstance(connection, SimulationClient)
        finally:
            await connection.disconnect()

    @pytest.mark.asyncio
    async def test_simulation_requires_vm(self):
        """Test that a simulation needs a machine."""
        with pytest.raises(ValueError):
            await open_connection(SimulationOptions())

    @pytest.mark.asyncio
    async def test_serial(self, serial_link):
        """Test building a serial connection."""
        options = SerialOptions(serial=SerialConfig(port="/dev/ttyACM0"), queue_capacity=5)
        connection = await open_connection(options)
        try:
            assert isinstance(connection, DeviceClient)
            assert connection.is_connected
            assert connection.transport.port_name == "/dev/ttyACM0"
            assert connection.queue.capacity == 5
        finally:
            await connection.disconnect()
        assert not connection.is_connected

    @pytest.mark.asyncio
    async def test_serial_from_mapping(self, serial_link):
        """Test serial options given as a plain mapping."""
        connection = await open_connection({"target": "serial", "serial": {"port": "COM3", "baudrate": 9600}})
        try:
            assert connection.transport.config.baudrate == 9600
        finally:
            await connection.disconnect()

    @pytest.mark.asyncio
    async def test_invalid_mapping(self):
        """Test that invalid options are rejected before connecting."""
        with pytest.raises(ValidationError):
            await open_connection({"target": "serial", "serial": {"port": ""}})
