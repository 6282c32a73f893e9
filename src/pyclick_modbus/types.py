"""Core data model: channel types, operation kinds, Modbus function codes, records and results."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ChannelType(str, Enum):
    """CLICK channel types addressable by a name prefix."""

    DISCRETE_INPUT = "discrete_input"
    DISCRETE_OUTPUT = "discrete_output"
    CONTROL_RELAY = "control_relay"
    SYSTEM_CONTROL_RELAY = "system_control_relay"
    TIMER = "timer"
    COUNTER = "counter"
    REGISTER_INT16 = "register_int16"
    REGISTER_INT32 = "register_int32"
    REGISTER_HEX = "register_hex"
    REGISTER_FLOAT32 = "register_float32"
    INPUT_REGISTER = "input_register"
    OUTPUT_REGISTER = "output_register"
    TIMER_REGISTER = "timer_register"
    COUNTER_REGISTER = "counter_register"

    @property
    def is_bit(self) -> bool:
        return self in _BIT_TYPES

    @property
    def width(self) -> int:
        """Number of 16-bit registers one channel index spans (bit types count as 1)."""
        return 2 if self in _DOUBLE_WIDTH_TYPES else 1


_BIT_TYPES = frozenset(
    {
        ChannelType.DISCRETE_INPUT,
        ChannelType.DISCRETE_OUTPUT,
        ChannelType.CONTROL_RELAY,
        ChannelType.SYSTEM_CONTROL_RELAY,
        ChannelType.TIMER,
        ChannelType.COUNTER,
    }
)

_DOUBLE_WIDTH_TYPES = frozenset({ChannelType.REGISTER_FLOAT32, ChannelType.REGISTER_INT32})


class OperationKind(str, Enum):
    SINGLE_READ = "single_read"
    SINGLE_WRITE = "single_write"
    MULTI_READ = "multi_read"
    MULTI_WRITE = "multi_write"

    @property
    def is_write(self) -> bool:
        return self in (OperationKind.SINGLE_WRITE, OperationKind.MULTI_WRITE)


class FunctionCode(IntEnum):
    """Modbus function codes used as function selectors."""

    READ_COILS = 1
    READ_DISCRETE_INPUTS = 2
    READ_HOLDING_REGISTERS = 3
    READ_INPUT_REGISTERS = 4
    WRITE_SINGLE_COIL = 5
    WRITE_SINGLE_REGISTER = 6
    WRITE_MULTIPLE_COILS = 15
    WRITE_MULTIPLE_REGISTERS = 16


class WordOrder(str, Enum):
    """Order of the two 16-bit halves of a 32-bit value across consecutive registers."""

    LOW_HIGH = "low_high"
    HIGH_LOW = "high_low"


class SwitchState(str, Enum):
    ON = "on"
    OFF = "off"
    UNKNOWN = "unknown"

    @classmethod
    def from_bit(cls, bit: Any) -> "SwitchState":
        return cls.ON if bit else cls.OFF


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ResolvedAddress:
    """Protocol address and function selector for a channel name and operation kind."""

    channel_type: ChannelType
    address: int
    function_code: FunctionCode

    def __post_init__(self) -> None:
        if self.address < 0:
            raise ValueError(f"address must be >= 0, got {self.address}")


@dataclass(frozen=True)
class ErrorRecord:
    severity: Severity
    operation: str
    message: str
    code: int
    timestamp: datetime


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """
    Outcome of a typed read. On failure ``value`` holds the sentinel for the
    requested type (UNKNOWN, NaN, -1 or 0xFFFF) and ``error`` the recorded error.
    """

    ok: bool
    value: T
    error: Optional[ErrorRecord] = None

    def __bool__(self) -> bool:
        return self.ok
