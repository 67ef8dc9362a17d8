"""
Connection configuration models.

``SerialConfig`` validates the settings handed to the serial transport.
``SerialOptions`` and ``SimulationOptions`` select which connection
:func:`plclink.connection.open_connection` builds.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from plclink.protocol.constants import ProtocolConstants


class Parity(str, Enum):
    """Serial parity setting."""

    NONE = "none"
    EVEN = "even"
    ODD = "odd"
    MARK = "mark"
    SPACE = "space"


class FlowControl(str, Enum):
    """Serial flow control setting."""

    NONE = "none"
    HARDWARE = "hardware"
    SOFTWARE = "software"


class SerialConfig(BaseModel):
    """
    Serial port settings.

    Example:
        >>> config = SerialConfig(port="/dev/ttyACM0")
        >>> config.baudrate
        115200
    """

    model_config = ConfigDict(frozen=True)

    port: str = Field(min_length=1, description="Port path, e.g. /dev/ttyACM0 or COM3")
    baudrate: int = Field(default=ProtocolConstants.DEFAULT_BAUD_RATE, gt=0)
    data_bits: Literal[5, 6, 7, 8] = 8
    stop_bits: Literal[1, 1.5, 2] = 1
    parity: Parity = Parity.NONE
    flow_control: FlowControl = FlowControl.NONE


class SerialOptions(BaseModel):
    """Connect to a physical device over a serial port."""

    model_config = ConfigDict(frozen=True)

    target: Literal["serial"] = "serial"
    serial: SerialConfig
    open_timeout: float = Field(default=ProtocolConstants.OPEN_TIMEOUT, gt=0)
    buffer_size: int = Field(default=ProtocolConstants.DEFAULT_BUFFER_SIZE, gt=0)
    queue_capacity: int = Field(default=ProtocolConstants.QUEUE_CAPACITY, gt=0)
    command_timeout: float = Field(default=ProtocolConstants.COMMAND_TIMEOUT, gt=0)


class SimulationOptions(BaseModel):
    """Drive an in-process virtual machine instead of hardware."""

    model_config = ConfigDict(frozen=True)

    target: Literal["simulation"] = "simulation"
    run_interval: float = Field(default=0.2, gt=0, description="Scan loop period in seconds")


ConnectionOptions = Annotated[
    Union[SerialOptions, SimulationOptions],
    Field(discriminator="target"),
]
"""Connection selection, discriminated by ``target``."""
