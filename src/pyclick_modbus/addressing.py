"""AddressMap: resolve a channel name to a Modbus address and function code for an operation kind."""

import logging
from typing import Any

from .catalogue import ChannelCatalogue, get_default_catalogue
from .errors import InvalidIndexError
from .normalize import parse_channel_name
from .types import ChannelType, FunctionCode, OperationKind, ResolvedAddress

logger = logging.getLogger(__name__)

MAX_ADDRESS = 0xFFFF


def address_offset(channel_type: ChannelType, index: int) -> int:
    """Offset from the type's start address for a 1-based index. Index <= 1 gives 0."""
    return max(0, index - 1) * channel_type.width


def select_function_code(channel_type: ChannelType, kind: OperationKind) -> FunctionCode:
    """Function code for accessing ``channel_type`` with the given operation kind."""
    if channel_type.is_bit:
        if kind == OperationKind.SINGLE_WRITE:
            return FunctionCode.WRITE_SINGLE_COIL
        if kind == OperationKind.MULTI_WRITE:
            return FunctionCode.WRITE_MULTIPLE_COILS
        if channel_type == ChannelType.DISCRETE_INPUT:
            return FunctionCode.READ_DISCRETE_INPUTS
        return FunctionCode.READ_COILS

    if kind == OperationKind.SINGLE_WRITE:
        return FunctionCode.WRITE_SINGLE_REGISTER
    if kind == OperationKind.MULTI_WRITE:
        return FunctionCode.WRITE_MULTIPLE_REGISTERS
    if channel_type == ChannelType.INPUT_REGISTER:
        return FunctionCode.READ_INPUT_REGISTERS
    return FunctionCode.READ_HOLDING_REGISTERS


class AddressMap:
    """
    Pure name -> ResolvedAddress resolution over a ChannelCatalogue.
    Defaults to the packaged click catalogue; pass one explicitly for other layouts.
    """

    def __init__(self, catalogue: ChannelCatalogue | None = None) -> None:
        self._catalogue = catalogue if catalogue is not None else get_default_catalogue()

    @property
    def catalogue(self) -> ChannelCatalogue:
        return self._catalogue

    def resolve(self, name: str, kind: OperationKind) -> ResolvedAddress:
        """
        Resolve ``name`` (e.g. "DS10", "df3", "CTD2") for an operation kind.

        Raises InvalidPrefixError, InvalidIndexError (also when the channel would
        extend past Modbus address 0xFFFF) or UnsupportedChannelTypeError.
        """
        channel = parse_channel_name(name)
        start = self._catalogue.start_address(channel.channel_type, name)
        address = start + address_offset(channel.channel_type, channel.index)
        if address + channel.channel_type.width - 1 > MAX_ADDRESS:
            raise InvalidIndexError(
                name,
                f"Channel {name!r} maps to address {address}, beyond Modbus address 0x{MAX_ADDRESS:04X}",
            )
        resolved = ResolvedAddress(
            channel_type=channel.channel_type,
            address=address,
            function_code=select_function_code(channel.channel_type, kind),
        )
        logger.debug("Resolved %s (%s) -> %s", name, kind.value, resolved)
        return resolved

    def explain(self, name: str) -> dict[str, Any]:
        """Return canonical name, channel type, address, width and function codes (for debugging)."""
        channel = parse_channel_name(name)
        read = self.resolve(name, OperationKind.SINGLE_READ)
        return {
            "name": str(channel),
            "channel_type": read.channel_type.value,
            "address": read.address,
            "address_hex": f"0x{read.address:04X}",
            "width": read.channel_type.width,
            "read_function": int(read.function_code),
            "write_function": int(select_function_code(channel.channel_type, OperationKind.SINGLE_WRITE)),
            "multi_write_function": int(select_function_code(channel.channel_type, OperationKind.MULTI_WRITE)),
        }
