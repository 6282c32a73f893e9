"""ClickModbusDriver: read/write CLICK PLC channels by name ("X1", "DS100", "DF3") over Modbus TCP."""

import logging
import math
import struct
from typing import Any, Mapping, Sequence, Union

from .addressing import AddressMap
from .catalogue import ChannelCatalogue
from .codec import (
    float_to_words,
    int16_from_word,
    int32_to_words,
    uint16_from_word,
    word_from_int16,
    word_from_uint16,
    words_to_float,
    words_to_int32,
)
from .config import DriverConfiguration
from .errors import (
    ClickErrorCode,
    ConfigurationError,
    ConversionError,
    PyClickModbusError,
    TransportError,
)
from .session import SessionState
from .transport import ModbusTransport, Transport
from .types import ErrorRecord, OperationKind, ReadResult, ResolvedAddress, SwitchState, WordOrder

logger = logging.getLogger(__name__)

ConfigurationInput = Union[DriverConfiguration, Mapping[str, Any], str, None]
SwitchInput = Union[SwitchState, bool]

_FAILURES = (PyClickModbusError, OSError, ValueError, struct.error)

INT16_SENTINEL = -1
UINT16_SENTINEL = 0xFFFF
INT32_SENTINEL = -1


def _to_bit(state: SwitchInput) -> bool:
    if isinstance(state, SwitchState):
        if state == SwitchState.UNKNOWN:
            raise ValueError("Cannot write UNKNOWN switch state")
        return state == SwitchState.ON
    return bool(state)


class ClickModbusDriver:
    """
    Driver for one CLICK PLC session. Every operation performs at most one
    transport round trip, returns a success flag (or a ReadResult for reads)
    and records failures in ``last_error``. Calls must not overlap.

    The transport defaults to pymodbus TCP; pass any ``Transport`` (e.g. a mock)
    for testing.
    """

    FLOAT_WORD_ORDER = WordOrder.LOW_HIGH

    def __init__(
        self,
        transport: Transport | None = None,
        catalogue: ChannelCatalogue | None = None,
    ) -> None:
        self._transport: Transport = transport if transport is not None else ModbusTransport()
        self._address_map = AddressMap(catalogue)
        self._session = SessionState(lambda: self._transport.is_connected)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._session.is_connected()

    @property
    def last_error(self) -> ErrorRecord | None:
        return self._session.last_error

    @property
    def configuration(self) -> DriverConfiguration | None:
        cfg = self._session.configuration
        return cfg.clone() if cfg is not None else None

    @property
    def address_map(self) -> AddressMap:
        return self._address_map

    def init(self, configuration: ConfigurationInput) -> bool:
        """Set the configuration from a DriverConfiguration, a mapping or JSON text."""
        if self.is_open:
            self._session.record_error("init", ClickErrorCode.PROHIBITED_WHEN_CONNECTED)
            return False
        if configuration is None:
            self._session.record_error(
                "init",
                ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED,
                'Provided configuration object is "None"',
            )
            return False
        try:
            if isinstance(configuration, DriverConfiguration):
                cfg = configuration
            elif isinstance(configuration, str):
                cfg = DriverConfiguration.from_json(configuration)
            elif isinstance(configuration, Mapping):
                cfg = DriverConfiguration.from_dict(configuration)
            else:
                raise ConfigurationError(
                    f"Unsupported configuration type: {type(configuration).__name__}",
                    code=ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED,
                )
        except ConfigurationError as e:
            self._session.record_error("init", e.code, str(e))
            return False
        return self._session.set_configuration(cfg)

    def open(self) -> bool:
        """Connect to the configured endpoint. Returns True if already connected."""
        cfg = self._session.configuration
        if cfg is None:
            self._session.record_error("open", ClickErrorCode.CONFIGURATION_NOT_SET)
            return False
        if self.is_open:
            return True
        network = cfg.network
        if network is None:
            self._session.record_error("open", ClickErrorCode.OPEN_FAILED, "Network configuration is not provided.")
            return False
        if not network.is_valid():
            self._session.record_error("open", ClickErrorCode.OPEN_FAILED, "IP configuration is not valid.")
            return False
        try:
            ok = self._transport.connect(
                network.host,
                network.port,
                unit_id=network.unit_id,
                timeout=network.timeout,
            )
        except _FAILURES as e:
            self._session.record_error("open", ClickErrorCode.OPEN_FAILED, str(e))
            return False
        if not ok:
            self._session.record_error(
                "open",
                ClickErrorCode.OPEN_FAILED,
                f"Failed to connect to {network.host}:{network.port}",
            )
            return False
        logger.debug("Connected to %s:%s", network.host, network.port)
        return True

    def close(self) -> bool:
        """Disconnect. Closing an already closed driver succeeds."""
        try:
            self._transport.disconnect()
        except _FAILURES as e:
            self._session.record_error("close", ClickErrorCode.CLOSE_FAILED, str(e))
            return False
        return True

    def __enter__(self) -> "ClickModbusDriver":
        if not self.open():
            error = self.last_error
            raise TransportError(error.message if error is not None else "Failed to open connection")
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def explain(self, name: str) -> dict[str, Any]:
        """Address details for a channel name; raises on invalid names. No I/O."""
        return self._address_map.explain(name)

    # ------------------------------------------------------------------
    # Discrete channels
    # ------------------------------------------------------------------

    def write_discrete(self, name: str, state: SwitchInput) -> bool:
        op = "write_discrete"
        target = self._prepare(op, name, OperationKind.SINGLE_WRITE)
        if target is None:
            return False
        try:
            self._transport.write_coil(target.address, _to_bit(state), target.function_code)
        except _FAILURES as e:
            self._session.record_error(
                op,
                ClickErrorCode.NOT_WRITABLE_CONTROL,
                f'"{name}" ({target.address}) control is not writable. {e}',
            )
            return False
        return True

    def write_discretes(self, start_name: str, states: Sequence[SwitchInput]) -> bool:
        """Write consecutive discrete channels starting at ``start_name``."""
        op = "write_discretes"
        target = self._prepare(op, start_name, OperationKind.MULTI_WRITE)
        if target is None:
            return False
        try:
            self._transport.write_coils(target.address, [_to_bit(s) for s in states])
        except _FAILURES as e:
            self._session.record_error(op, ClickErrorCode.GROUP_IO_WRITE_FAILED, str(e))
            return False
        return True

    def read_discrete(self, name: str) -> ReadResult[SwitchState]:
        op = "read_discrete"
        target = self._prepare(op, name, OperationKind.SINGLE_READ)
        if target is not None:
            try:
                bits = self._transport.read_coils(target.address, 1, target.function_code)
                if not bits:
                    raise TransportError("Empty bit response", address=target.address)
                return ReadResult(True, SwitchState.from_bit(bits[0]))
            except _FAILURES as e:
                self._session.record_error(op, ClickErrorCode.GROUP_IO_WRITE_FAILED, str(e))
        return ReadResult(False, SwitchState.UNKNOWN, self.last_error)

    def read_discretes(self, start_name: str, count: int) -> ReadResult[list[SwitchState]]:
        """
        Read ``count`` consecutive discrete channels. At least one channel is
        requested from the PLC, so ``count <= 0`` yields a one-entry list on
        success and on failure alike; on any failure every entry is UNKNOWN.
        """
        op = "read_discretes"
        target = self._prepare(op, start_name, OperationKind.MULTI_READ)
        if target is not None:
            n = max(1, count)
            try:
                bits = self._transport.read_coils(target.address, n, target.function_code)
                if bits is None or len(bits) < n:
                    raise TransportError("Short bit response", address=target.address)
                return ReadResult(True, [SwitchState.from_bit(b) for b in bits[:n]])
            except _FAILURES as e:
                self._session.record_error(op, ClickErrorCode.GROUP_IO_WRITE_FAILED, str(e))
        return ReadResult(False, [SwitchState.UNKNOWN] * max(1, count), self.last_error)

    # ------------------------------------------------------------------
    # 16-bit registers
    # ------------------------------------------------------------------

    def read_int16(self, name: str) -> ReadResult[int]:
        word = self._read_word("read_int16", name)
        if word is None:
            return ReadResult(False, INT16_SENTINEL, self.last_error)
        return ReadResult(True, int16_from_word(word))

    def read_uint16(self, name: str) -> ReadResult[int]:
        word = self._read_word("read_uint16", name)
        if word is None:
            return ReadResult(False, UINT16_SENTINEL, self.last_error)
        return ReadResult(True, uint16_from_word(word))

    def write_int16(self, name: str, value: int) -> bool:
        return self._write_word("write_int16", name, word_from_int16(value))

    def write_uint16(self, name: str, value: int) -> bool:
        return self._write_word("write_uint16", name, word_from_uint16(value))

    # ------------------------------------------------------------------
    # 32-bit integer registers (DD)
    # ------------------------------------------------------------------

    def read_int32(self, name: str) -> ReadResult[int]:
        """Read a signed 32-bit value from two consecutive registers, low word first."""
        op = "read_int32"
        target = self._prepare(op, name, OperationKind.SINGLE_READ)
        if target is not None:
            try:
                words = self._transport.read_registers(target.address, 2, target.function_code)
                return ReadResult(True, words_to_int32(words, self.FLOAT_WORD_ORDER))
            except _FAILURES as e:
                self._session.record_error(
                    op,
                    ClickErrorCode.NOT_WRITABLE_CONTROL,
                    f'"{name}" ({target.address}) control is not readable. {e}',
                )
        return ReadResult(False, INT32_SENTINEL, self.last_error)

    def write_int32(self, name: str, value: int) -> bool:
        op = "write_int32"
        target = self._prepare(op, name, OperationKind.SINGLE_WRITE)
        if target is None:
            return False
        try:
            self._transport.write_registers(target.address, int32_to_words(value, self.FLOAT_WORD_ORDER))
        except _FAILURES as e:
            self._session.record_error(
                op,
                ClickErrorCode.NOT_WRITABLE_CONTROL,
                f'"{name}" ({target.address}) control is not writable. {e}',
            )
            return False
        return True

    # ------------------------------------------------------------------
    # 32-bit float registers
    # ------------------------------------------------------------------

    def read_float32(self, name: str) -> ReadResult[float]:
        op = "read_float32"
        target = self._prepare(op, name, OperationKind.SINGLE_READ)
        if target is not None:
            try:
                words = self._transport.read_registers(target.address, 2, target.function_code)
            except _FAILURES as e:
                self._session.record_error(op, ClickErrorCode.INVALID_CONTROL_NAME, str(e))
                return ReadResult(False, math.nan, self.last_error)
            try:
                return ReadResult(True, words_to_float(words, self.FLOAT_WORD_ORDER))
            except ConversionError as e:
                self._session.record_error(op, ClickErrorCode.FAILED_TO_CONVERT_REGISTERS_TO_FLOAT, f"{op} {e}")
        return ReadResult(False, math.nan, self.last_error)

    def write_float32(self, name: str, value: float) -> bool:
        op = "write_float32"
        target = self._prepare(op, name, OperationKind.SINGLE_WRITE)
        if target is None:
            return False
        try:
            self._transport.write_registers(target.address, float_to_words(value, self.FLOAT_WORD_ORDER))
        except _FAILURES as e:
            self._session.record_error(op, ClickErrorCode.INVALID_CONTROL_NAME, str(e))
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(self, operation: str, name: str, kind: OperationKind) -> ResolvedAddress | None:
        """Check the connection and resolve ``name``; record the failure and return None otherwise."""
        if not self.is_open:
            self._session.record_error(operation, ClickErrorCode.NOT_CONNECTED, "Can't read/write when not connected.")
            return None
        try:
            return self._address_map.resolve(name, kind)
        except PyClickModbusError as e:
            self._session.record_error(operation, e.code, str(e))
            return None

    def _read_word(self, operation: str, name: str) -> int | None:
        target = self._prepare(operation, name, OperationKind.SINGLE_READ)
        if target is None:
            return None
        try:
            words = self._transport.read_registers(target.address, 1, target.function_code)
            if not words:
                raise TransportError("Empty register response", address=target.address)
            return words[0]
        except _FAILURES as e:
            self._session.record_error(
                operation,
                ClickErrorCode.NOT_WRITABLE_CONTROL,
                f'"{name}" ({target.address}) control is not readable. {e}',
            )
            return None

    def _write_word(self, operation: str, name: str, word: int) -> bool:
        target = self._prepare(operation, name, OperationKind.SINGLE_WRITE)
        if target is None:
            return False
        try:
            self._transport.write_register(target.address, word)
        except _FAILURES as e:
            self._session.record_error(
                operation,
                ClickErrorCode.NOT_WRITABLE_CONTROL,
                f'"{name}" ({target.address}) control is not writable. {e}',
            )
            return False
        return True


def create_driver(
    configuration: ConfigurationInput,
    transport: Transport | None = None,
    catalogue: ChannelCatalogue | None = None,
) -> ClickModbusDriver | None:
    """Create a driver and apply ``configuration``; None if the configuration is rejected."""
    driver = ClickModbusDriver(transport=transport, catalogue=catalogue)
    if not driver.init(configuration):
        logger.debug("create_driver: init failed: %s", driver.last_error)
        return None
    return driver
