"""Transport: the Modbus exchange consumed by the driver, and its pymodbus TCP implementation."""

import logging
import struct
from typing import Any, Callable, Protocol, Sequence

from pymodbus.client import ModbusTcpClient
from pymodbus.exceptions import ModbusException as PymodbusException

from .errors import TransportError
from .types import FunctionCode

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Request/response Modbus exchange. Failures raise TransportError."""

    def connect(self, host: str, port: int, *, unit_id: int = 1, timeout: float = 3.0) -> bool: ...

    def disconnect(self) -> None: ...

    @property
    def is_connected(self) -> bool: ...

    def read_coils(self, address: int, count: int, function_code: FunctionCode) -> list[bool]: ...

    def write_coil(self, address: int, value: bool, function_code: FunctionCode) -> None: ...

    def write_coils(self, address: int, values: Sequence[bool]) -> None: ...

    def read_registers(self, address: int, count: int, function_code: FunctionCode) -> list[int]: ...

    def write_register(self, address: int, value: int) -> None: ...

    def write_registers(self, address: int, values: Sequence[int]) -> None: ...


class ModbusTransport:
    """
    Transport over pymodbus ModbusTcpClient. One instance holds at most one
    TCP session; pymodbus retries are disabled.
    """

    def __init__(self) -> None:
        self._client: ModbusTcpClient | None = None
        self._unit_id = 1

    def connect(self, host: str, port: int, *, unit_id: int = 1, timeout: float = 3.0) -> bool:
        self.disconnect()
        self._unit_id = unit_id
        self._client = ModbusTcpClient(host=host, port=port, timeout=timeout, retries=0)
        try:
            ok = bool(self._client.connect())
        except PymodbusException as e:
            raise TransportError(f"Failed to connect to {host}:{port}: {e}", cause=e) from e
        if not ok:
            logger.debug("Connection to %s:%s refused or timed out", host, port)
        return ok

    def disconnect(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            client.close()

    @property
    def is_connected(self) -> bool:
        return self._client is not None and bool(self._client.connected)

    def _call(
        self,
        call: Callable[..., Any],
        address: int,
        function_code: FunctionCode,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        try:
            rr = call(address, *args, device_id=self._unit_id, **kwargs)
        except PymodbusException as e:
            raise TransportError(str(e), address=address, function_code=function_code, cause=e) from e
        except (struct.error, ValueError, TypeError, OverflowError) as e:
            raise TransportError(
                f"Request rejected before sending: {e}",
                address=address,
                function_code=function_code,
                cause=e,
            ) from e
        if rr.isError():
            raise TransportError(
                str(rr),
                address=address,
                function_code=function_code,
                cause=getattr(rr, "exception", None),
            )
        return rr

    def read_coils(self, address: int, count: int, function_code: FunctionCode) -> list[bool]:
        client = self._require_client(address, function_code)
        if function_code == FunctionCode.READ_DISCRETE_INPUTS:
            call = client.read_discrete_inputs
        elif function_code == FunctionCode.READ_COILS:
            call = client.read_coils
        else:
            raise TransportError(f"Function {function_code} cannot read bits", address=address, function_code=function_code)
        rr = self._call(call, address, function_code, count=count)
        bits = getattr(rr, "bits", None)
        if not bits or len(bits) < count:
            raise TransportError("Short bit response", address=address, function_code=function_code)
        return [bool(b) for b in bits[:count]]

    def write_coil(self, address: int, value: bool, function_code: FunctionCode = FunctionCode.WRITE_SINGLE_COIL) -> None:
        client = self._require_client(address, function_code)
        self._call(client.write_coil, address, function_code, bool(value))

    def write_coils(self, address: int, values: Sequence[bool]) -> None:
        client = self._require_client(address, FunctionCode.WRITE_MULTIPLE_COILS)
        self._call(client.write_coils, address, FunctionCode.WRITE_MULTIPLE_COILS, [bool(v) for v in values])

    def read_registers(self, address: int, count: int, function_code: FunctionCode) -> list[int]:
        client = self._require_client(address, function_code)
        if function_code == FunctionCode.READ_INPUT_REGISTERS:
            call = client.read_input_registers
        elif function_code == FunctionCode.READ_HOLDING_REGISTERS:
            call = client.read_holding_registers
        else:
            raise TransportError(f"Function {function_code} cannot read registers", address=address, function_code=function_code)
        rr = self._call(call, address, function_code, count=count)
        registers = getattr(rr, "registers", None)
        if not registers or len(registers) < count:
            raise TransportError("Short register response", address=address, function_code=function_code)
        return [int(r) for r in registers[:count]]

    def write_register(self, address: int, value: int) -> None:
        client = self._require_client(address, FunctionCode.WRITE_SINGLE_REGISTER)
        self._call(client.write_register, address, FunctionCode.WRITE_SINGLE_REGISTER, int(value))

    def write_registers(self, address: int, values: Sequence[int]) -> None:
        client = self._require_client(address, FunctionCode.WRITE_MULTIPLE_REGISTERS)
        self._call(client.write_registers, address, FunctionCode.WRITE_MULTIPLE_REGISTERS, [int(v) for v in values])

    def _require_client(self, address: int, function_code: FunctionCode) -> ModbusTcpClient:
        if self._client is None:
            raise TransportError("Not connected", address=address, function_code=function_code)
        return self._client
