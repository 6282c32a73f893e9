"""Tests for ClickModbusDriver: session state machine, preconditions and per-operation dispatch."""

import math
import struct
from typing import Sequence
from unittest.mock import MagicMock

import pytest

from pyclick_modbus import ClickModbusDriver, DriverConfiguration, create_driver
from pyclick_modbus.catalogue import ChannelCatalogue
from pyclick_modbus.errors import ClickErrorCode, TransportError
from pyclick_modbus.types import ChannelType, FunctionCode, ReadResult, Severity, SwitchState


class InMemoryTransport:
    """Transport backed by dicts of coils and registers."""

    def __init__(self) -> None:
        self.coils: dict[int, bool] = {}
        self.registers: dict[int, int] = {}
        self.connected = False
        self.calls = 0

    def connect(self, host: str, port: int, *, unit_id: int = 1, timeout: float = 3.0) -> bool:
        self.connected = True
        return True

    def disconnect(self) -> None:
        self.connected = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    def read_coils(self, address: int, count: int, function_code: FunctionCode) -> list[bool]:
        self.calls += 1
        return [self.coils.get(address + i, False) for i in range(count)]

    def write_coil(self, address: int, value: bool, function_code: FunctionCode) -> None:
        self.calls += 1
        self.coils[address] = value

    def write_coils(self, address: int, values: Sequence[bool]) -> None:
        self.calls += 1
        for i, v in enumerate(values):
            self.coils[address + i] = v

    def read_registers(self, address: int, count: int, function_code: FunctionCode) -> list[int]:
        self.calls += 1
        return [self.registers.get(address + i, 0) for i in range(count)]

    def write_register(self, address: int, value: int) -> None:
        self.calls += 1
        self.registers[address] = value

    def write_registers(self, address: int, values: Sequence[int]) -> None:
        self.calls += 1
        for i, v in enumerate(values):
            self.registers[address + i] = v


CONFIG = DriverConfiguration.from_endpoint("192.168.0.10", 502)


@pytest.fixture
def memory() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def driver(memory: InMemoryTransport) -> ClickModbusDriver:
    d = ClickModbusDriver(transport=memory)
    assert d.init(CONFIG)
    assert d.open()
    return d


@pytest.fixture
def mock_transport() -> MagicMock:
    transport = MagicMock()
    transport.is_connected = True
    transport.connect.return_value = True
    return transport


@pytest.fixture
def mocked_driver(mock_transport: MagicMock) -> ClickModbusDriver:
    d = ClickModbusDriver(transport=mock_transport)
    mock_transport.is_connected = False
    assert d.init(CONFIG)
    mock_transport.is_connected = True
    return d


# ============================================================================
# Session state machine
# ============================================================================


class TestSession:
    def test_open_without_configuration(self, memory: InMemoryTransport) -> None:
        d = ClickModbusDriver(transport=memory)
        assert d.open() is False
        assert d.last_error is not None
        assert d.last_error.code == ClickErrorCode.CONFIGURATION_NOT_SET
        assert d.last_error.operation == "open"
        assert d.last_error.severity == Severity.ERROR

    def test_open_and_close(self, driver: ClickModbusDriver) -> None:
        assert driver.is_open
        assert driver.close()
        assert not driver.is_open

    def test_close_twice_succeeds(self, driver: ClickModbusDriver) -> None:
        assert driver.close()
        assert driver.close()
        assert not driver.is_open

    def test_close_failure_recorded(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.disconnect.side_effect = OSError("socket gone")
        assert mocked_driver.close() is False
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.CLOSE_FAILED

    def test_open_when_already_open_does_not_reconnect(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        assert mocked_driver.open()
        mock_transport.connect.assert_not_called()

    def test_open_passes_endpoint(self, mock_transport: MagicMock) -> None:
        mock_transport.is_connected = False
        d = ClickModbusDriver(transport=mock_transport)
        assert d.init({"interface": {"network": {"host": "10.1.1.1", "port": 5020, "unit_id": 2}}})
        assert d.open()
        mock_transport.connect.assert_called_once_with("10.1.1.1", 5020, unit_id=2, timeout=3.0)

    def test_open_refused(self, mock_transport: MagicMock) -> None:
        mock_transport.is_connected = False
        mock_transport.connect.return_value = False
        d = create_driver(CONFIG, transport=mock_transport)
        assert d is not None
        assert d.open() is False
        assert d.last_error is not None
        assert d.last_error.code == ClickErrorCode.OPEN_FAILED

    @pytest.mark.parametrize(
        "config",
        [
            {"interface": {"network": {"host": None, "port": 502}}},
            {"interface": {"network": {"host": "10.0.0.1", "port": -1}}},
            {"interface": {}},
        ],
    )
    def test_open_invalid_endpoint(self, mock_transport: MagicMock, config: dict) -> None:
        mock_transport.is_connected = False
        d = ClickModbusDriver(transport=mock_transport)
        assert d.init(config)
        assert d.open() is False
        assert d.last_error is not None
        assert d.last_error.code == ClickErrorCode.OPEN_FAILED
        mock_transport.connect.assert_not_called()

    def test_init_rejected_while_connected(self, driver: ClickModbusDriver) -> None:
        assert driver.init(DriverConfiguration.from_endpoint("10.9.9.9")) is False
        assert driver.last_error is not None
        assert driver.last_error.code == ClickErrorCode.PROHIBITED_WHEN_CONNECTED
        assert driver.configuration is not None
        assert driver.configuration.network is not None
        assert driver.configuration.network.host == "192.168.0.10"

    def test_init_takes_snapshot(self, memory: InMemoryTransport) -> None:
        cfg = DriverConfiguration.from_endpoint("10.0.0.1")
        d = ClickModbusDriver(transport=memory)
        assert d.init(cfg)
        assert cfg.network is not None
        cfg.network.host = "10.0.0.2"
        assert d.configuration is not None
        assert d.configuration.network is not None
        assert d.configuration.network.host == "10.0.0.1"

    def test_init_from_json_text(self, memory: InMemoryTransport) -> None:
        d = ClickModbusDriver(transport=memory)
        assert d.init('{"Interface": {"Network": {"IpAddress": "10.0.0.3", "Port": 502}}}')
        assert d.open()

    @pytest.mark.parametrize(
        ("config", "code"),
        [
            (None, ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED),
            ("", ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED),
            ("{broken", ClickErrorCode.CONFIG_DESERIALIZATION_ERROR),
            (42, ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED),
        ],
    )
    def test_init_bad_input(self, memory: InMemoryTransport, config: object, code: ClickErrorCode) -> None:
        d = ClickModbusDriver(transport=memory)
        assert d.init(config) is False  # type: ignore[arg-type]
        assert d.last_error is not None
        assert d.last_error.code == code

    def test_create_driver_returns_none_on_bad_config(self, memory: InMemoryTransport) -> None:
        assert create_driver("{broken", transport=memory) is None

    def test_error_is_not_cleared_by_success(self, driver: ClickModbusDriver) -> None:
        assert not driver.read_int16("Z1")
        first = driver.last_error
        assert driver.read_int16("DS1")
        assert driver.last_error is first

    def test_last_error_is_overwritten(self, driver: ClickModbusDriver) -> None:
        driver.read_int16("Z1")
        driver.read_int16("X1A")
        assert driver.last_error is not None
        assert driver.last_error.code == ClickErrorCode.INVALID_CONTROL_NAME_INDEX

    def test_transport_disconnect_is_observed(self, driver: ClickModbusDriver, memory: InMemoryTransport) -> None:
        memory.connected = False
        assert not driver.is_open
        assert not driver.write_discrete("Y1", True)
        assert driver.last_error is not None
        assert driver.last_error.code == ClickErrorCode.NOT_CONNECTED

    def test_context_manager(self, memory: InMemoryTransport) -> None:
        d = create_driver(CONFIG, transport=memory)
        assert d is not None
        with d:
            assert d.is_open
        assert not d.is_open

    def test_context_manager_raises_when_open_fails(self, memory: InMemoryTransport) -> None:
        d = ClickModbusDriver(transport=memory)
        with pytest.raises(TransportError):
            with d:
                pass


# ============================================================================
# Preconditions
# ============================================================================


@pytest.mark.parametrize(
    ("operation", "args"),
    [
        ("write_discrete", ("Y1", SwitchState.ON)),
        ("write_discretes", ("Y1", [True, False])),
        ("read_discrete", ("X1",)),
        ("read_discretes", ("Y1", 4)),
        ("read_int16", ("DS1",)),
        ("read_uint16", ("DS1",)),
        ("write_int16", ("DS1", -5)),
        ("write_uint16", ("DS1", 5)),
        ("read_float32", ("DF1",)),
        ("read_int32", ("DD1",)),
        ("write_int32", ("DD1", 70000)),
        ("write_float32", ("DF1", 1.5)),
    ],
)
def test_not_connected_fails_without_transport_call(memory: InMemoryTransport, operation: str, args: tuple) -> None:
    d = ClickModbusDriver(transport=memory)
    assert d.init(CONFIG)
    result = getattr(d, operation)(*args)
    assert not result
    assert d.last_error is not None
    assert d.last_error.code == ClickErrorCode.NOT_CONNECTED
    assert memory.calls == 0


@pytest.mark.parametrize(
    ("name", "code"),
    [
        ("Z9", ClickErrorCode.INVALID_CONTROL_NAME_PREFIX),
        ("X1A", ClickErrorCode.INVALID_CONTROL_NAME_INDEX),
    ],
)
def test_bad_names_fail_without_transport_call(driver: ClickModbusDriver, memory: InMemoryTransport, name: str, code: ClickErrorCode) -> None:
    assert not driver.read_discrete(name)
    assert driver.last_error is not None
    assert driver.last_error.code == code
    assert memory.calls == 0


@pytest.mark.parametrize(
    ("operation", "args"),
    [
        ("write_int16", ("DS70000", 1)),
        ("write_uint16", ("DS70000", 1)),
        ("read_int16", ("DS70000",)),
        ("write_int16", ("DS65537", 1)),
        ("write_float32", ("DF40000", 1.0)),
        ("read_float32", ("DF18433",)),
        ("write_int32", ("DD40000", 1)),
    ],
)
def test_address_past_ceiling_fails_without_transport_call(
    driver: ClickModbusDriver, memory: InMemoryTransport, operation: str, args: tuple
) -> None:
    assert not getattr(driver, operation)(*args)
    assert driver.last_error is not None
    assert driver.last_error.code == ClickErrorCode.INVALID_CONTROL_NAME_INDEX
    assert memory.calls == 0


def test_last_addresses_below_ceiling(driver: ClickModbusDriver, memory: InMemoryTransport) -> None:
    assert driver.write_int16("DS65536", -3)
    assert memory.registers[0xFFFF] == 0xFFFD
    assert driver.write_float32("DF18432", 1.0)
    assert (memory.registers[0xFFFE], memory.registers[0xFFFF]) == (0x0000, 0x3F80)
    assert driver.read_float32("DF18432") == ReadResult(True, 1.0)


def test_unexpected_transport_exception_is_recorded(mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
    mock_transport.write_register.side_effect = struct.error("'H' format requires 0 <= number <= 65535")
    assert not mocked_driver.write_uint16("DS1", 5)
    assert mocked_driver.last_error is not None
    assert mocked_driver.last_error.code == ClickErrorCode.NOT_WRITABLE_CONTROL


def test_unsupported_channel_type(memory: InMemoryTransport) -> None:
    d = ClickModbusDriver(transport=memory, catalogue=ChannelCatalogue(catalogue_override={ChannelType.REGISTER_INT16: 0}))
    assert d.init(CONFIG) and d.open()
    result = d.read_float32("DF1")
    assert not result
    assert math.isnan(result.value)
    assert d.last_error is not None
    assert d.last_error.code == ClickErrorCode.IO_NOT_SUPPORTED


# ============================================================================
# Discrete channels
# ============================================================================


class TestDiscrete:
    def test_write_then_read(self, driver: ClickModbusDriver, memory: InMemoryTransport) -> None:
        assert driver.write_discrete("Y3", SwitchState.ON)
        assert memory.coils[0x2002] is True
        assert driver.read_discrete("Y3") == ReadResult(True, SwitchState.ON)
        assert driver.write_discrete("y3", False)
        assert driver.read_discrete("Y3").value == SwitchState.OFF

    def test_write_unknown_state_rejected(self, driver: ClickModbusDriver, memory: InMemoryTransport) -> None:
        assert not driver.write_discrete("Y1", SwitchState.UNKNOWN)
        assert driver.last_error is not None
        assert driver.last_error.code == ClickErrorCode.NOT_WRITABLE_CONTROL
        assert memory.coils == {}

    def test_write_many_then_read_many(self, driver: ClickModbusDriver) -> None:
        assert driver.write_discretes("C10", [SwitchState.ON, SwitchState.OFF, True])
        result = driver.read_discretes("C10", 3)
        assert result.ok
        assert result.value == [SwitchState.ON, SwitchState.OFF, SwitchState.ON]

    def test_read_many_zero_requests_one(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_coils.return_value = [True]
        result = mocked_driver.read_discretes("Y1", 0)
        assert result.ok
        assert result.value == [SwitchState.ON]
        mock_transport.read_coils.assert_called_once_with(0x2000, 1, FunctionCode.READ_COILS)

    def test_read_many_failure_fills_unknown(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_coils.side_effect = TransportError("Exception response")
        result = mocked_driver.read_discretes("Y1", 4)
        assert result.ok is False
        assert result.value == [SwitchState.UNKNOWN] * 4
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.GROUP_IO_WRITE_FAILED
        assert result.error is mocked_driver.last_error

    def test_read_many_zero_failure_has_one_entry(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_coils.side_effect = TransportError("timeout")
        result = mocked_driver.read_discretes("Y1", 0)
        assert not result
        assert result.value == [SwitchState.UNKNOWN]

    def test_read_many_short_response_fills_unknown(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_coils.return_value = [True, True]
        result = mocked_driver.read_discretes("C1", 4)
        assert not result
        assert result.value == [SwitchState.UNKNOWN] * 4

    def test_read_single_failure(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_coils.side_effect = TransportError("timeout")
        result = mocked_driver.read_discrete("X1")
        assert result == ReadResult(False, SwitchState.UNKNOWN, mocked_driver.last_error)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.GROUP_IO_WRITE_FAILED

    def test_input_read_uses_discrete_inputs(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_coils.return_value = [False]
        assert mocked_driver.read_discrete("X5").value == SwitchState.OFF
        mock_transport.read_coils.assert_called_once_with(4, 1, FunctionCode.READ_DISCRETE_INPUTS)

    def test_write_single_failure(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.write_coil.side_effect = TransportError("Illegal address")
        assert not mocked_driver.write_discrete("X1", True)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.NOT_WRITABLE_CONTROL
        mock_transport.write_coil.assert_called_once_with(0, True, FunctionCode.WRITE_SINGLE_COIL)

    def test_write_many_failure(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.write_coils.side_effect = TransportError("Illegal address")
        assert not mocked_driver.write_discretes("Y1", [True])
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.GROUP_IO_WRITE_FAILED


# ============================================================================
# 16-bit registers
# ============================================================================


class TestInt16Registers:
    def test_signed_round_trip(self, driver: ClickModbusDriver, memory: InMemoryTransport) -> None:
        assert driver.write_int16("DS10", -2)
        assert memory.registers[9] == 0xFFFE
        assert driver.read_int16("DS10") == ReadResult(True, -2)
        assert driver.read_uint16("DS10") == ReadResult(True, 0xFFFE)

    def test_unsigned_round_trip(self, driver: ClickModbusDriver) -> None:
        assert driver.write_uint16("DH1", 0xABCD)
        assert driver.read_uint16("DH1").value == 0xABCD
        assert driver.read_int16("DH1").value == 0xABCD - 0x10000

    def test_read_failure_sentinels(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.side_effect = TransportError("timeout")
        assert mocked_driver.read_int16("DS1") == ReadResult(False, -1, mocked_driver.last_error)
        assert mocked_driver.read_uint16("DS1") == ReadResult(False, 0xFFFF, mocked_driver.last_error)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.NOT_WRITABLE_CONTROL

    def test_write_failure(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.write_register.side_effect = TransportError("Illegal address")
        assert not mocked_driver.write_int16("DS1", 1)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.NOT_WRITABLE_CONTROL

    def test_input_register_uses_fc4(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.return_value = [7]
        assert mocked_driver.read_int16("XD2").value == 7
        mock_transport.read_registers.assert_called_once_with(0xE001, 1, FunctionCode.READ_INPUT_REGISTERS)


# ============================================================================
# Float registers
# ============================================================================


class TestFloat32Registers:
    def test_write_then_read_preserves_bits(self, driver: ClickModbusDriver, memory: InMemoryTransport) -> None:
        assert driver.write_float32("DF1", 3.14)
        assert (memory.registers[0x7000], memory.registers[0x7001]) == (0xF5C3, 0x4048)
        result = driver.read_float32("DF1")
        assert result.ok
        assert struct.pack("<f", result.value) == struct.pack("<f", 3.14)

    def test_df3_address(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.return_value = [0x0000, 0x3F80]
        assert mocked_driver.read_float32("DF3").value == 1.0
        mock_transport.read_registers.assert_called_once_with(0x7004, 2, FunctionCode.READ_HOLDING_REGISTERS)

    def test_short_read_is_conversion_failure(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.return_value = [0x3F80]
        result = mocked_driver.read_float32("DF1")
        assert not result
        assert math.isnan(result.value)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.FAILED_TO_CONVERT_REGISTERS_TO_FLOAT

    def test_transport_failure(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.side_effect = TransportError("timeout")
        result = mocked_driver.read_float32("DF1")
        assert not result
        assert math.isnan(result.value)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.INVALID_CONTROL_NAME

    def test_write_overflow_fails(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        assert not mocked_driver.write_float32("DF1", 1.0e39)
        mock_transport.write_registers.assert_not_called()
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.INVALID_CONTROL_NAME

    def test_write_uses_low_high_order(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        assert mocked_driver.write_float32("DF2", 1.0)
        mock_transport.write_registers.assert_called_once_with(0x7002, [0x0000, 0x3F80])


# ============================================================================
# 32-bit integer registers
# ============================================================================


class TestInt32Registers:
    def test_write_then_read(self, driver: ClickModbusDriver, memory: InMemoryTransport) -> None:
        assert driver.write_int32("DD2", -70000)
        assert (memory.registers[0x4002], memory.registers[0x4003]) == (0xEE90, 0xFFFE)
        assert driver.read_int32("DD2") == ReadResult(True, -70000)

    def test_dd1_address_and_order(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.return_value = [0x0001, 0x0002]
        assert mocked_driver.read_int32("DD1").value == 0x00020001
        mock_transport.read_registers.assert_called_once_with(0x4000, 2, FunctionCode.READ_HOLDING_REGISTERS)

    def test_read_failure_sentinel(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.side_effect = TransportError("timeout")
        assert mocked_driver.read_int32("DD1") == ReadResult(False, -1, mocked_driver.last_error)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.NOT_WRITABLE_CONTROL

    def test_short_read_fails(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.read_registers.return_value = [0x0001]
        assert not mocked_driver.read_int32("DD1")

    def test_write_failure(self, mocked_driver: ClickModbusDriver, mock_transport: MagicMock) -> None:
        mock_transport.write_registers.side_effect = TransportError("Illegal address")
        assert not mocked_driver.write_int32("DD1", 5)
        assert mocked_driver.last_error is not None
        assert mocked_driver.last_error.code == ClickErrorCode.NOT_WRITABLE_CONTROL
        mock_transport.write_registers.assert_called_once_with(0x4000, [5, 0])
