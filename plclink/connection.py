"""
Connection contract and factory.

``DeviceConnection`` is what applications program against. It is
implemented by ``DeviceClient`` (a runtime on a serial port) and by
``SimulationClient`` (an in-process virtual machine), so editor-style
applications can switch between hardware and simulation without code
changes.

Example:
    >>> from plclink import open_connection
    >>> from plclink.models import SerialConfig, SerialOptions
    >>>
    >>> conn = await open_connection(SerialOptions(serial=SerialConfig(port="/dev/ttyACM0")))
    >>> info = await conn.get_info(initial=True)
    >>> await conn.disconnect()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter

from plclink.models.config import ConnectionOptions, SerialOptions, SimulationOptions
from plclink.models.records import MemoryReadResult
from plclink.protocol.commands import create_memory_subscription
from plclink.protocol.constants import ProtocolConstants
from plclink.subscriptions import MemoryDataCallback, MemoryPoller

if TYPE_CHECKING:
    from types import TracebackType

    from plclink.models.records import (
        DataBlockInfo,
        DeviceInfo,
        HealthSnapshot,
        MemorySubscription,
        SymbolEntry,
        TransportInfo,
    )
    from plclink.simulation import VirtualMachine

logger = logging.getLogger(__name__)

DisconnectedCallback = Callable[[BaseException], None]

_OPTIONS_ADAPTER: TypeAdapter[SerialOptions | SimulationOptions] = TypeAdapter(ConnectionOptions)


class DeviceConnection(ABC):
    """
    Operations every device connection provides.

    Attributes:
        on_disconnected: Called when the connection is lost without
            disconnect() being called.
        on_memory_data: Called with each round of subscribed memory reads.
    """

    on_disconnected: DisconnectedCallback | None = None
    on_memory_data: MemoryDataCallback | None = None
    _poller: MemoryPoller | None = None

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the connection is usable."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection; safe to call when already closed."""
        ...

    @abstractmethod
    async def get_info(self, initial: bool = False) -> DeviceInfo:
        """Read the device info record."""
        ...

    @abstractmethod
    async def get_health(self) -> HealthSnapshot:
        """Read the runtime health counters."""
        ...

    @abstractmethod
    async def reset_health(self) -> None:
        """Reset the runtime health counters."""
        ...

    @abstractmethod
    async def run(self) -> None:
        """Start program execution."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop program execution."""
        ...

    @abstractmethod
    async def reboot(self) -> None:
        """Reset the runtime."""
        ...

    @abstractmethod
    async def monitor(self) -> None:
        """Enable monitoring on the runtime."""
        ...

    @abstractmethod
    async def download_program(self, bytecode: bytes | Sequence[int]) -> None:
        """Load a compiled program onto the device."""
        ...

    @abstractmethod
    async def upload_program(self) -> bytes:
        """Read the program currently on the device."""
        ...

    @abstractmethod
    async def read_memory(self, address: int, size: int) -> bytes:
        """Read ``size`` bytes of device memory starting at ``address``."""
        ...

    @abstractmethod
    async def write_memory(self, address: int, data: bytes | Sequence[int]) -> None:
        """Write bytes to device memory."""
        ...

    @abstractmethod
    async def write_memory_masked(
        self,
        address: int,
        data: bytes | Sequence[int],
        mask: bytes | Sequence[int],
    ) -> None:
        """Write only the bits of ``data`` selected by ``mask``."""
        ...

    @abstractmethod
    async def format_memory(self, address: int, size: int, value: int) -> None:
        """Fill ``size`` bytes of memory with ``value``."""
        ...

    @abstractmethod
    async def configure_tc_offsets(self, timer_offset: int, counter_offset: int) -> None:
        """Set the timer and counter memory offsets."""
        ...

    @abstractmethod
    async def get_symbol_list(self) -> list[SymbolEntry]:
        """Read the device symbol table."""
        ...

    @abstractmethod
    async def get_transport_info(self) -> list[TransportInfo]:
        """Read the device's communication interfaces."""
        ...

    @abstractmethod
    async def get_data_block_info(self) -> DataBlockInfo:
        """Read the device data block table."""
        ...

    # ===== Memory subscriptions =====

    @property
    def is_subscribed(self) -> bool:
        """Check if subscribed regions are being polled."""
        return self._poller is not None and self._poller.is_running

    def subscribe_memory(
        self,
        regions: Sequence[tuple[int, int]],
        interval: float = ProtocolConstants.MONITOR_INTERVAL,
    ) -> list[MemorySubscription]:
        """
        Read ``regions`` every ``interval`` seconds until unsubscribed.

        Each round is passed to ``on_memory_data`` as one list of results, in
        region order. A running subscription must be ended with
        unsubscribe_memory() before a new one starts.

        Args:
            regions: ``(address, size)`` pairs.
            interval: Seconds between rounds.

        Returns:
            The subscriptions, with their pre-built read commands.

        Raises:
            ValueError: If no regions are given, a region is invalid or the
                interval is not positive.
            RuntimeError: If a subscription is already running.
        """
        subscriptions = [create_memory_subscription(address, size) for address, size in regions]
        if self._poller is None:
            self._poller = MemoryPoller(self.read_subscriptions)
        self._poller.start(subscriptions, interval, self._deliver_memory_data)
        return subscriptions

    async def unsubscribe_memory(self) -> None:
        """Stop polling subscribed regions; safe to call when not subscribed."""
        if self._poller is not None:
            await self._poller.stop()

    async def read_subscriptions(self, subscriptions: Sequence[MemorySubscription]) -> list[MemoryReadResult]:
        """Read every subscribed region once."""
        results = []
        for subscription in subscriptions:
            data = await self.read_memory(subscription.address, subscription.size)
            results.append(MemoryReadResult(address=subscription.address, size=subscription.size, data=data))
        return results

    def _deliver_memory_data(self, results: list[MemoryReadResult]) -> None:
        if self.on_memory_data is not None:
            self.on_memory_data(results)

    async def __aenter__(self) -> DeviceConnection:
        """Async context manager entry - connects."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - disconnects."""
        await self.disconnect()


async def open_connection(
    options: SerialOptions | SimulationOptions | Mapping[str, Any],
    vm: VirtualMachine | None = None,
) -> DeviceConnection:
    """
    Build the connection selected by ``options`` and connect it.

    Args:
        options: Connection options, or a mapping validated into them
            (``{"target": "serial", "serial": {"port": "COM3"}}``).
        vm: Virtual machine driven by a simulation connection.

    Returns:
        A connected DeviceConnection.

    Raises:
        ValueError: If a simulation is requested without a virtual machine.
        pydantic.ValidationError: If a mapping does not describe valid options.
    """
    # Imported here: both clients depend on this module
    from plclink.client import DeviceClient
    from plclink.simulation import SimulationClient
    from plclink.transport.serial_async import AsyncSerialTransport

    if not isinstance(options, (SerialOptions, SimulationOptions)):
        options = _OPTIONS_ADAPTER.validate_python(options)

    connection: DeviceConnection
    if isinstance(options, SimulationOptions):
        if vm is None:
            raise ValueError("A virtual machine is required for a simulation connection")
        connection = SimulationClient(vm, run_interval=options.run_interval)
    else:
        transport = AsyncSerialTransport(
            options.serial,
            open_timeout=options.open_timeout,
            buffer_size=options.buffer_size,
        )
        connection = DeviceClient(
            transport,
            queue_capacity=options.queue_capacity,
            command_timeout=options.command_timeout,
        )

    logger.debug("Opening %s connection", options.target)
    await connection.connect()
    return connection
