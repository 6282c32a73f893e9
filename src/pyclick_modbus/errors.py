"""Error codes and exceptions for pyclick-modbus: addressing, conversion, configuration and Modbus I/O."""

from enum import IntEnum


class ClickErrorCode(IntEnum):
    """Numeric codes stored in ErrorRecord.code."""

    NO_ERROR = 0
    CONFIGURATION_NOT_SET = 1
    CONFIGURATION_IS_NOT_PROVIDED = 2
    CONFIG_DESERIALIZATION_ERROR = 3
    PROHIBITED_WHEN_CONNECTED = 4
    OPEN_FAILED = 10
    CLOSE_FAILED = 11
    NOT_CONNECTED = 12
    INVALID_CONTROL_NAME_PREFIX = 20
    INVALID_CONTROL_NAME_INDEX = 21
    IO_NOT_SUPPORTED = 22
    INVALID_CONTROL_NAME = 23
    NOT_WRITABLE_CONTROL = 30
    GROUP_IO_WRITE_FAILED = 31
    FAILED_TO_CONVERT_REGISTERS_TO_FLOAT = 40


_DESCRIPTIONS: dict[ClickErrorCode, str] = {
    ClickErrorCode.NO_ERROR: "No error.",
    ClickErrorCode.CONFIGURATION_NOT_SET: "Driver configuration is not set.",
    ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED: "Configuration was not provided.",
    ClickErrorCode.CONFIG_DESERIALIZATION_ERROR: "Failed to deserialize configuration.",
    ClickErrorCode.PROHIBITED_WHEN_CONNECTED: "Operation is prohibited while the controller is connected.",
    ClickErrorCode.OPEN_FAILED: "Failed to open connection to the controller.",
    ClickErrorCode.CLOSE_FAILED: "Failed to close connection to the controller.",
    ClickErrorCode.NOT_CONNECTED: "Controller is not connected.",
    ClickErrorCode.INVALID_CONTROL_NAME_PREFIX: "Control name prefix is not recognized.",
    ClickErrorCode.INVALID_CONTROL_NAME_INDEX: "Control name index is not a valid number.",
    ClickErrorCode.IO_NOT_SUPPORTED: "Channel type has no registered start address.",
    ClickErrorCode.INVALID_CONTROL_NAME: "Invalid control name.",
    ClickErrorCode.NOT_WRITABLE_CONTROL: "Control is not accessible.",
    ClickErrorCode.GROUP_IO_WRITE_FAILED: "Group I/O operation failed.",
    ClickErrorCode.FAILED_TO_CONVERT_REGISTERS_TO_FLOAT: "Failed to convert registers to float.",
}


def describe(code: int) -> str:
    """Human description for an error code; unknown codes get a generic text."""
    try:
        return _DESCRIPTIONS[ClickErrorCode(code)]
    except ValueError:
        return f"Unknown error code {code}."


class PyClickModbusError(Exception):
    """Base exception for pyclick-modbus."""

    code: ClickErrorCode = ClickErrorCode.INVALID_CONTROL_NAME


class InvalidPrefixError(PyClickModbusError):
    """Raised when a channel name does not start with any known prefix."""

    code = ClickErrorCode.INVALID_CONTROL_NAME_PREFIX

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Invalid channel prefix: {name!r}")


class InvalidIndexError(PyClickModbusError):
    """Raised when the part after the prefix is not a non-negative decimal number."""

    code = ClickErrorCode.INVALID_CONTROL_NAME_INDEX

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Invalid channel index: {name!r}")


class UnsupportedChannelTypeError(PyClickModbusError):
    """Raised when the channel type has no start address in the catalogue."""

    code = ClickErrorCode.IO_NOT_SUPPORTED

    def __init__(self, name: str, channel_type: str) -> None:
        self.name = name
        self.channel_type = channel_type
        super().__init__(f"IO {channel_type} not supported (channel {name!r})")


class ConversionError(PyClickModbusError):
    """Raised when registers cannot be converted to the requested value type."""

    code = ClickErrorCode.FAILED_TO_CONVERT_REGISTERS_TO_FLOAT


class ConfigurationError(PyClickModbusError):
    """Raised when a configuration is missing or malformed."""

    def __init__(
        self,
        message: str,
        code: ClickErrorCode = ClickErrorCode.CONFIG_DESERIALIZATION_ERROR,
    ) -> None:
        self.code = code
        super().__init__(message)


class TransportError(PyClickModbusError):
    """Raised when a Modbus read/write fails (wraps pymodbus or connection errors)."""

    def __init__(
        self,
        message: str,
        *,
        address: int | None = None,
        function_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.address = address
        self.function_code = function_code
        self.cause = cause
        super().__init__(message)
