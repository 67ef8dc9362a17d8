"""Shared fixtures."""

import asyncio
import time

import pytest
import serial
import serial_asyncio


class FakeVM:
    """Minimal virtual machine with a flat memory."""

    def __init__(self, memory_size=1024):
        self.memory = bytearray(memory_size)
        self.memory_size = memory_size
        self.program = b""
        self.initialized = 0
        self.cycles = 0

    def initialize(self):
        self.initialized += 1
        self.memory = bytearray(self.memory_size)

    def run(self):
        self.cycles += 1

    def read_memory(self, address, size):
        return self.memory[address : address + size]

    def write_memory(self, address, data):
        self.memory[address : address + len(data)] = data

    def write_memory_masked(self, address, data, mask):
        for i, (value, bits) in enumerate(zip(data, mask)):
            current = self.memory[address + i]
            self.memory[address + i] = (current & ~bits & 0xFF) | (value & bits)

    def download_program(self, bytecode):
        self.program = bytes(bytecode)

    def upload_program(self):
        return self.program


class FakePort:
    """Stands in for an opened pyserial port."""

    def __init__(self, url, **settings):
        self.port = url
        self.settings = settings
        self.closed = False

    def close(self):
        self.closed = True


class FakeSerialTransport(asyncio.Transport):
    """Stands in for the pyserial-asyncio SerialTransport."""

    def __init__(self, protocol, port, *, fail_writes=False, hang_on_close=False):
        super().__init__()
        self.protocol = protocol
        self.port = port
        self.data = bytearray()
        self.closed = False
        self.fail_writes = fail_writes
        self.hang_on_close = hang_on_close

    def write(self, data):
        if self.fail_writes:
            raise serial.SerialException("write failed")
        self.data.extend(data)

    def is_closing(self):
        return self.closed

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.port.close()
        if not self.hang_on_close:
            asyncio.get_running_loop().call_soon(self.protocol.connection_lost, None)


class FakeSerialLink:
    """In-memory replacement for pyserial's open and pyserial-asyncio's attach."""

    def __init__(self):
        self.ports = []
        self.transports = []
        self.open_delay = 0.0
        self.open_error = None
        self.fail_writes = False
        self.hang_on_close = False

    @property
    def port(self):
        return self.ports[-1]

    @property
    def transport(self):
        return self.transports[-1]

    def serial_for_url(self, url, **settings):
        # Blocks like a stalled driver; runs in the open worker thread
        if self.open_delay:
            time.sleep(self.open_delay)
        if self.open_error is not None:
            raise self.open_error
        port = FakePort(url, **settings)
        self.ports.append(port)
        return port

    async def connection_for_serial(self, loop, protocol_factory, serial_instance):
        protocol = protocol_factory()
        transport = FakeSerialTransport(
            protocol,
            serial_instance,
            fail_writes=self.fail_writes,
            hang_on_close=self.hang_on_close,
        )
        self.transports.append(transport)
        protocol.connection_made(transport)
        return transport, protocol

    def receive(self, data):
        """Deliver bytes as if the device sent them."""
        self.transport.protocol.data_received(data)

    def lose_connection(self, exc=None):
        """Drop the link as if the device was unplugged."""
        self.transport.protocol.connection_lost(exc)


@pytest.fixture
def vm():
    """Create a fake virtual machine."""
    return FakeVM()


@pytest.fixture
def serial_link(monkeypatch):
    """Patch the serial port open and attach with in-memory fakes."""
    link = FakeSerialLink()
    monkeypatch.setattr(serial, "serial_for_url", link.serial_for_url)
    monkeypatch.setattr(serial_asyncio, "connection_for_serial", link.connection_for_serial)
    return link
