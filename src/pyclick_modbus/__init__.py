"""pyclick-modbus: CLICK PLC channel read/write via pymodbus using native names (X1, DS100, DF3)."""

__version__ = "0.1.0"

from .addressing import AddressMap
from .catalogue import ChannelCatalogue, get_default_catalogue
from .config import DriverConfiguration, InterfaceConfiguration, NetworkConfiguration
from .driver import ClickModbusDriver, create_driver
from .errors import (
    ClickErrorCode,
    ConfigurationError,
    ConversionError,
    InvalidIndexError,
    InvalidPrefixError,
    PyClickModbusError,
    TransportError,
    UnsupportedChannelTypeError,
    describe,
)
from .normalize import normalize_name, parse_channel_name
from .transport import ModbusTransport, Transport
from .types import (
    ChannelType,
    ErrorRecord,
    FunctionCode,
    OperationKind,
    ReadResult,
    ResolvedAddress,
    Severity,
    SwitchState,
    WordOrder,
)

__all__ = [
    "__version__",
    "AddressMap",
    "ChannelCatalogue",
    "get_default_catalogue",
    "DriverConfiguration",
    "InterfaceConfiguration",
    "NetworkConfiguration",
    "ClickModbusDriver",
    "create_driver",
    "ClickErrorCode",
    "ConfigurationError",
    "ConversionError",
    "InvalidIndexError",
    "InvalidPrefixError",
    "PyClickModbusError",
    "TransportError",
    "UnsupportedChannelTypeError",
    "describe",
    "normalize_name",
    "parse_channel_name",
    "ModbusTransport",
    "Transport",
    "ChannelType",
    "ErrorRecord",
    "FunctionCode",
    "OperationKind",
    "ReadResult",
    "ResolvedAddress",
    "Severity",
    "SwitchState",
    "WordOrder",
]
