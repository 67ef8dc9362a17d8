"""
Simulation connection.

``SimulationClient`` exposes an in-process virtual machine through the same
``DeviceConnection`` contract as the serial client. The virtual machine
itself is supplied by the caller; any object with the ``VirtualMachine``
methods works, and each method may be a plain function or a coroutine
function.

While started, a background scan loop calls ``vm.run()`` every
``run_interval`` seconds.

Example:
    >>> sim = SimulationClient(vm)
    >>> async with sim:
    ...     await sim.download_program(bytecode)
    ...     data = await sim.read_memory(64, 8)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter

from plclink.connection import DeviceConnection
from plclink.exceptions import UnsupportedOperationError
from plclink.models.records import (
    DataBlockInfo,
    DeviceInfo,
    FirmwareVersion,
    HealthSnapshot,
    SegmentedDeviceInfo,
    SymbolEntry,
    TransportInfo,
)
from plclink.parsers.info_parser import parse_device_info
from plclink.protocol.encoding import encode_bytes

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RUN_INTERVAL = 0.2
DEFAULT_MEMORY_SIZE = 32768

_INFO_ADAPTER: TypeAdapter[DeviceInfo] = TypeAdapter(DeviceInfo)


@runtime_checkable
class VirtualMachine(Protocol):
    """
    The virtual machine driven by a simulation connection.

    Optional extras, used when present: ``get_info()``, ``get_health()``,
    ``reset_health()``, ``get_data_block_info()``, ``configure_tc_offsets()``,
    ``memory_size`` and ``program_size``.
    """

    def initialize(self) -> Any: ...

    def run(self) -> Any: ...

    def read_memory(self, address: int, size: int) -> Any: ...

    def write_memory(self, address: int, data: bytes) -> Any: ...

    def write_memory_masked(self, address: int, data: bytes, mask: bytes) -> Any: ...

    def download_program(self, bytecode: bytes) -> Any: ...

    def upload_program(self) -> Any: ...


async def _resolve(value: T) -> T:
    """Await ``value`` if the virtual machine returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


def _as_bytes(data: bytes | Sequence[int]) -> bytes:
    # Validates every value as a byte, as the serial builders do
    encode_bytes(data)
    return bytes(data)


class SimulationClient(DeviceConnection):
    """
    Device connection backed by an in-process virtual machine.

    Attributes:
        vm: The virtual machine.
        is_running: True while the scan loop is active.
    """

    def __init__(self, vm: VirtualMachine, *, run_interval: float = DEFAULT_RUN_INTERVAL) -> None:
        """
        Args:
            vm: Virtual machine to drive.
            run_interval: Scan loop period in seconds.
        """
        if run_interval <= 0:
            raise ValueError(f"Run interval must be positive, got {run_interval}")
        self.vm = vm
        self._run_interval = run_interval
        self._run_task: asyncio.Task[None] | None = None
        self._connected = False
        self.scan_errors = 0
        self.on_disconnected = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_running(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    # ===== Lifecycle =====

    async def connect(self) -> None:
        """Initialize the virtual machine and start the scan loop."""
        await _resolve(self.vm.initialize())
        self._connected = True
        self._start_run_loop()
        logger.info("Simulation started (scan every %.3fs)", self._run_interval)

    async def disconnect(self) -> None:
        """Stop memory polling and the scan loop."""
        await self.unsubscribe_memory()
        await self._stop_run_loop()
        if self._connected:
            logger.info("Simulation stopped")
        self._connected = False

    async def reboot(self) -> None:
        """Re-initialize the virtual machine and restart the scan loop."""
        await self._stop_run_loop()
        await self.connect()

    def _start_run_loop(self) -> None:
        if self.is_running:
            return
        self._run_task = asyncio.get_running_loop().create_task(
            self._run_loop(),
            name="plclink-simulation-scan",
        )

    async def _stop_run_loop(self) -> None:
        task = self._run_task
        self._run_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _run_loop(self) -> None:
        while True:
            try:
                await _resolve(self.vm.run())
            except Exception:
                # A failing scan must not end the simulation
                self.scan_errors += 1
                logger.warning("Simulation scan cycle failed", exc_info=True)
            await asyncio.sleep(self._run_interval)

    # ===== Execution control =====

    async def run(self) -> None:
        """Start (or keep running) the scan loop."""
        self._start_run_loop()

    async def stop(self) -> None:
        """Halt the scan loop."""
        await self._stop_run_loop()

    async def monitor(self) -> None:
        """Monitoring is always on in simulation."""

    # ===== Device info and health =====

    async def get_info(self, initial: bool = False) -> DeviceInfo:
        """
        Return the virtual machine's info record.

        Uses ``vm.get_info()`` when available (a record, a mapping or the raw
        info text); otherwise a default "Simulator" record.
        """
        get_info = getattr(self.vm, "get_info", None)
        if callable(get_info):
            info = await _resolve(get_info())
            if isinstance(info, str):
                return parse_device_info(info)
            if isinstance(info, Mapping):
                return _INFO_ADAPTER.validate_python(dict(info))
            if info is not None:
                return info
        return self._default_info()

    def _default_info(self) -> DeviceInfo:
        memory_size = getattr(self.vm, "memory_size", DEFAULT_MEMORY_SIZE)
        return SegmentedDeviceInfo(
            header="VovkPLCRuntime",
            arch="WASM",
            version=FirmwareVersion(major=0, minor=1, patch=0, build=0),
            date=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            stack_size=1024,
            memory_size=memory_size,
            program_size=getattr(self.vm, "program_size", DEFAULT_MEMORY_SIZE),
            system_offset=192,
            system_size=256,
            input_offset=64,
            input_size=64,
            output_offset=128,
            output_size=64,
            marker_offset=448,
            marker_size=256,
            timer_offset=704,
            timer_count=16,
            timer_struct_size=9,
            counter_offset=848,
            counter_count=16,
            counter_struct_size=5,
            device="Simulator",
        )

    async def get_health(self) -> HealthSnapshot:
        """
        Raises:
            UnsupportedOperationError: If the virtual machine has no health.
        """
        get_health = getattr(self.vm, "get_health", None)
        if not callable(get_health):
            raise UnsupportedOperationError("Device health not supported")
        health = await _resolve(get_health())
        if isinstance(health, HealthSnapshot):
            return health
        return HealthSnapshot.model_validate(health)

    async def reset_health(self) -> None:
        """
        Raises:
            UnsupportedOperationError: If the virtual machine has no health.
        """
        reset_health = getattr(self.vm, "reset_health", None)
        if not callable(reset_health):
            raise UnsupportedOperationError("Device health not supported")
        await _resolve(reset_health())

    # ===== Program and memory =====

    async def download_program(self, bytecode: bytes | Sequence[int]) -> None:
        await _resolve(self.vm.download_program(_as_bytes(bytecode)))

    async def upload_program(self) -> bytes:
        return bytes(await _resolve(self.vm.upload_program()))

    async def read_memory(self, address: int, size: int) -> bytes:
        return bytes(await _resolve(self.vm.read_memory(address, size)))

    async def write_memory(self, address: int, data: bytes | Sequence[int]) -> None:
        await _resolve(self.vm.write_memory(address, _as_bytes(data)))

    async def write_memory_masked(
        self,
        address: int,
        data: bytes | Sequence[int],
        mask: bytes | Sequence[int],
    ) -> None:
        data_bytes = _as_bytes(data)
        mask_bytes = _as_bytes(mask)
        if len(data_bytes) != len(mask_bytes):
            raise ValueError(f"Mask length {len(mask_bytes)} does not match data length {len(data_bytes)}")
        await _resolve(self.vm.write_memory_masked(address, data_bytes, mask_bytes))

    async def format_memory(self, address: int, size: int, value: int) -> None:
        """Write ``size`` copies of ``value``."""
        await self.write_memory(address, [value] * size)

    async def configure_tc_offsets(self, timer_offset: int, counter_offset: int) -> None:
        """
        Raises:
            UnsupportedOperationError: If the virtual machine cannot relocate
                its timers and counters.
        """
        configure = getattr(self.vm, "configure_tc_offsets", None)
        if not callable(configure):
            raise UnsupportedOperationError("Timer/counter offsets not supported")
        await _resolve(configure(timer_offset, counter_offset))

    # ===== Device tables =====

    async def get_symbol_list(self) -> list[SymbolEntry]:
        """The simulator has no device symbols."""
        return []

    async def get_transport_info(self) -> list[TransportInfo]:
        """The simulator has no physical transports."""
        return []

    async def get_data_block_info(self) -> DataBlockInfo:
        """
        Raises:
            UnsupportedOperationError: If the virtual machine has no data
                block table.
        """
        get_data_block_info = getattr(self.vm, "get_data_block_info", None)
        if not callable(get_data_block_info):
            raise UnsupportedOperationError("Data block info not supported")
        info = await _resolve(get_data_block_info())
        if isinstance(info, DataBlockInfo):
            return info
        return DataBlockInfo.model_validate(info)

    def __repr__(self) -> str:
        status = "running" if self.is_running else "stopped"
        return f"SimulationClient({type(self.vm).__name__}, {status})"
