#!/usr/bin/env python3
"""Command line interface for pyclick-modbus using Typer."""

import json
import logging
import math
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .addressing import AddressMap
from .config import DriverConfiguration, InterfaceConfiguration, NetworkConfiguration
from .driver import ClickModbusDriver
from .errors import ClickErrorCode, ConfigurationError, PyClickModbusError
from .normalize import parse_channel_name
from .types import ChannelType, ErrorRecord, SwitchState

app = typer.Typer(
    name="pyclick",
    help="Read and write CLICK PLC channels (X1, Y2, DS100, DF3, ...) via Modbus TCP.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

_ADDRESSING_CODES = frozenset(
    {
        ClickErrorCode.INVALID_CONTROL_NAME_PREFIX,
        ClickErrorCode.INVALID_CONTROL_NAME_INDEX,
        ClickErrorCode.IO_NOT_SUPPORTED,
    }
)

# ============================================================================
# Shared options and helpers
# ============================================================================

HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="PLC hostname or IP address", envvar="PYCLICK_HOST"),
]
PortOption = Annotated[
    Optional[int],
    typer.Option("--port", "-p", help="Modbus TCP port (default 502)", envvar="PYCLICK_PORT"),
]
UnitIdOption = Annotated[
    int,
    typer.Option("--unit-id", "-u", help="Modbus unit ID", envvar="PYCLICK_UNIT_ID"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Connection timeout in seconds", envvar="PYCLICK_TIMEOUT"),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="JSON driver configuration file", envvar="PYCLICK_CONFIG"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


class ValueType(str, Enum):
    AUTO = "auto"
    BOOL = "bool"
    INT16 = "int16"
    UINT16 = "uint16"
    INT32 = "int32"
    FLOAT = "float"


TypeOption = Annotated[
    ValueType,
    typer.Option("--type", help="Value type; auto picks from the channel prefix"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_configuration(
    config: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    unit_id: int,
    timeout: float,
) -> DriverConfiguration:
    """Load the JSON configuration file (if any) and apply command line overrides."""
    cfg = DriverConfiguration.from_json(config.read_text(encoding="utf-8")) if config else DriverConfiguration()
    network = cfg.network or NetworkConfiguration()
    cfg.interface = InterfaceConfiguration(network)
    if host:
        network.host = host
    if port is not None:
        network.port = port
    network.unit_id = unit_id
    network.timeout = timeout
    return cfg


def open_driver(
    config: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    unit_id: int,
    timeout: float,
) -> ClickModbusDriver:
    """Create, configure and open a driver; exit with a CLI error code on failure."""
    try:
        cfg = build_configuration(config, host, port, unit_id, timeout)
    except (ConfigurationError, OSError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(2)
    if cfg.network is None or not cfg.network.host:
        typer.echo("Error: --host (or a configuration file with a host) is required for this command", err=True)
        raise typer.Exit(2)
    driver = ClickModbusDriver()
    if not driver.init(cfg):
        fail(driver.last_error)
    if not driver.open():
        fail(driver.last_error)
    return driver


def fail(error: Optional[ErrorRecord]) -> NoReturn:
    """Report a driver error and exit: 2 for bad channel names, 3 for connection/Modbus errors."""
    if error is None:
        typer.echo("Error: Unknown failure", err=True)
        raise typer.Exit(4)
    typer.echo(f"Error: {error.operation}: {error.message}", err=True)
    raise typer.Exit(2 if error.code in _ADDRESSING_CODES else 3)


def resolve_value_type(name: str, value_type: ValueType) -> ValueType:
    """Pick the value type implied by the channel prefix when ``value_type`` is auto."""
    if value_type != ValueType.AUTO:
        return value_type
    channel_type = parse_channel_name(name).channel_type
    if channel_type.is_bit:
        return ValueType.BOOL
    if channel_type == ChannelType.REGISTER_FLOAT32:
        return ValueType.FLOAT
    if channel_type == ChannelType.REGISTER_INT32:
        return ValueType.INT32
    if channel_type == ChannelType.REGISTER_HEX:
        return ValueType.UINT16
    return ValueType.INT16


def parse_bool(value: str) -> bool:
    """Parse boolean value from string."""
    v = value.lower().strip()
    if v in ("true", "1", "on", "yes"):
        return True
    if v in ("false", "0", "off", "no"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def parse_int(value: str, signed: bool = False, bits: int = 16) -> int:
    """Parse integer value from string, supporting hex and validation."""
    v = value.strip()
    if v.lower().startswith("0x"):
        num = int(v, 16)
    else:
        num = int(v)

    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        if not (low <= num <= high):
            raise ValueError(f"Signed {bits}-bit integer out of range: {num}")
    else:
        if not (0 <= num <= (1 << bits) - 1):
            raise ValueError(f"Unsigned {bits}-bit integer out of range: {num}")

    return num


def format_value(value: Any) -> str:
    """Format value for display."""
    if isinstance(value, SwitchState):
        return value.value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return "nan" if math.isnan(value) else repr(value)
    return str(value)


def json_value(value: Any) -> Any:
    """JSON-friendly form: switch states as strings, NaN as null."""
    if isinstance(value, SwitchState):
        return value.value
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, list):
        return [json_value(v) for v in value]
    return value


# ============================================================================
# Commands
# ============================================================================


@app.command()
def info(
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """Show package version and the default channel catalogue."""
    setup_logging(verbose)

    catalogue = AddressMap().catalogue
    info_data = {
        "version": __version__,
        "profile": catalogue.profile,
        "start_addresses": {t.value: f"0x{a:04X}" for t, a in catalogue.start_addresses.items()},
    }

    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
    else:
        typer.echo(f"pyclick-modbus version: {info_data['version']}")
        typer.echo(f"Profile: {info_data['profile']}")
        for name, address in info_data["start_addresses"].items():
            typer.echo(f"  {name:<22}{address}")


@app.command()
def explain(
    name: Annotated[str, typer.Argument(help="Channel name to explain (e.g. ds10, DF3, CTD2)")],
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show canonical name, channel type, Modbus address and function codes.

    Does not require a connection.
    """
    setup_logging(verbose)

    try:
        details = AddressMap().explain(name)
    except PyClickModbusError as e:
        typer.echo(f"Error: Invalid channel name: {e}", err=True)
        raise typer.Exit(2)

    if json_output:
        typer.echo(json.dumps(details, indent=2))
    else:
        typer.echo(f"Channel:         {details['name']}")
        typer.echo(f"Type:            {details['channel_type']}")
        typer.echo(f"Address:         {details['address']} ({details['address_hex']})")
        typer.echo(f"Width:           {details['width']}")
        typer.echo(f"Read function:   {details['read_function']}")
        typer.echo(f"Write function:  {details['write_function']}")


@app.command()
def read(
    name: Annotated[str, typer.Argument(help="Channel to read (e.g. X1, DS100, DF3)")],
    host: HostOption = None,
    port: PortOption = None,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    config: ConfigOption = None,
    value_type: TypeOption = ValueType.AUTO,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """Read a single channel from the PLC."""
    setup_logging(verbose)

    try:
        kind = resolve_value_type(name, value_type)
    except PyClickModbusError as e:
        typer.echo(f"Error: Invalid channel name: {e}", err=True)
        raise typer.Exit(2)

    driver = open_driver(config, host, port, unit_id, timeout)
    with driver:
        if kind == ValueType.BOOL:
            result: Any = driver.read_discrete(name)
        elif kind == ValueType.FLOAT:
            result = driver.read_float32(name)
        elif kind == ValueType.INT32:
            result = driver.read_int32(name)
        elif kind == ValueType.UINT16:
            result = driver.read_uint16(name)
        else:
            result = driver.read_int16(name)
        if not result:
            fail(result.error)

    if json_output:
        typer.echo(json.dumps({"name": name, "value": json_value(result.value)}))
    else:
        typer.echo(format_value(result.value))


@app.command()
def write(
    name: Annotated[str, typer.Argument(help="Channel to write (e.g. Y1, DS100, DF3)")],
    value: Annotated[str, typer.Argument(help="Value (bool: true/false/1/0/on/off; int: decimal or 0x hex; float)")],
    host: HostOption = None,
    port: PortOption = None,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    config: ConfigOption = None,
    value_type: TypeOption = ValueType.AUTO,
    verbose: VerboseOption = False,
) -> None:
    """Write a value to a single channel on the PLC."""
    setup_logging(verbose)

    try:
        kind = resolve_value_type(name, value_type)
    except PyClickModbusError as e:
        typer.echo(f"Error: Invalid channel name: {e}", err=True)
        raise typer.Exit(2)

    parsed: Any
    try:
        if kind == ValueType.BOOL:
            parsed = parse_bool(value)
        elif kind == ValueType.FLOAT:
            parsed = float(value)
        elif kind == ValueType.INT32:
            parsed = parse_int(value, signed=True, bits=32)
        else:
            parsed = parse_int(value, signed=kind == ValueType.INT16)
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(2)

    driver = open_driver(config, host, port, unit_id, timeout)
    with driver:
        if kind == ValueType.BOOL:
            ok = driver.write_discrete(name, parsed)
        elif kind == ValueType.FLOAT:
            ok = driver.write_float32(name, parsed)
        elif kind == ValueType.INT32:
            ok = driver.write_int32(name, parsed)
        elif kind == ValueType.UINT16:
            ok = driver.write_uint16(name, parsed)
        else:
            ok = driver.write_int16(name, parsed)
        if not ok:
            fail(driver.last_error)
    typer.echo(f"OK: Wrote {name} = {value}")


@app.command(name="read-bits")
def read_bits(
    name: Annotated[str, typer.Argument(help="First discrete channel (e.g. Y1, C10)")],
    count: Annotated[int, typer.Argument(help="Number of consecutive channels to read")],
    host: HostOption = None,
    port: PortOption = None,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Read consecutive discrete channels; prints a JSON array of on/off states."""
    setup_logging(verbose)

    driver = open_driver(config, host, port, unit_id, timeout)
    with driver:
        result = driver.read_discretes(name, count)
        if not result:
            fail(result.error)
    typer.echo(json.dumps(json_value(result.value)))


@app.command(name="write-bits")
def write_bits(
    name: Annotated[str, typer.Argument(help="First discrete channel (e.g. Y1, C10)")],
    values: Annotated[list[str], typer.Argument(help="Values to write (true/false/1/0/on/off)")],
    host: HostOption = None,
    port: PortOption = None,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Write consecutive discrete channels starting at NAME."""
    setup_logging(verbose)

    try:
        states = [parse_bool(v) for v in values]
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(2)

    driver = open_driver(config, host, port, unit_id, timeout)
    with driver:
        if not driver.write_discretes(name, states):
            fail(driver.last_error)
    typer.echo(f"OK: Wrote {len(states)} channels from {name}")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyclick-modbus {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pyclick - read and write CLICK PLC channels via Modbus TCP."""
    pass


if __name__ == "__main__":
    app()
