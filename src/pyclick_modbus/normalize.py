"""Parse and normalize CLICK channel names (prefix + 1-based index)."""

import re
from dataclasses import dataclass

from .errors import InvalidIndexError, InvalidPrefixError
from .types import ChannelType

PREFIX_TYPES: dict[str, ChannelType] = {
    "X": ChannelType.DISCRETE_INPUT,
    "Y": ChannelType.DISCRETE_OUTPUT,
    "C": ChannelType.CONTROL_RELAY,
    "SC": ChannelType.SYSTEM_CONTROL_RELAY,
    "T": ChannelType.TIMER,
    "CT": ChannelType.COUNTER,
    "DS": ChannelType.REGISTER_INT16,
    "DD": ChannelType.REGISTER_INT32,
    "DH": ChannelType.REGISTER_HEX,
    "DF": ChannelType.REGISTER_FLOAT32,
    "XD": ChannelType.INPUT_REGISTER,
    "YD": ChannelType.OUTPUT_REGISTER,
    "TD": ChannelType.TIMER_REGISTER,
    "CTD": ChannelType.COUNTER_REGISTER,
}

# Longest first: "CTD" must win over "CT" and "C", "TD" over "T".
_PREFIXES_BY_LENGTH: tuple[str, ...] = tuple(sorted(PREFIX_TYPES, key=len, reverse=True))

_INDEX_PATTERN = re.compile(r"^\d+$", re.ASCII)


@dataclass(frozen=True)
class ChannelName:
    """A parsed channel name. ``str()`` gives the canonical form, e.g. ``DS10``."""

    prefix: str
    channel_type: ChannelType
    index: int

    def __str__(self) -> str:
        return f"{self.prefix}{self.index}"


def match_prefix(name: str) -> str:
    """Return the longest known prefix that ``name`` starts with (case-insensitive)."""
    upper = name.strip().upper()
    for prefix in _PREFIXES_BY_LENGTH:
        if upper.startswith(prefix):
            return prefix
    raise InvalidPrefixError(name)


def parse_channel_name(raw: str) -> ChannelName:
    """
    Split a channel name into prefix, channel type and index.

    - Prefix match is case-insensitive and longest-first.
    - The remainder must be a non-negative decimal integer; index 0 is accepted
      and addresses the same register as index 1.

    Raises InvalidPrefixError or InvalidIndexError.
    """
    if raw is None or not str(raw).strip():
        raise InvalidPrefixError(str(raw), "Channel name cannot be empty")
    s = str(raw).strip().upper()
    prefix = match_prefix(s)
    suffix = s[len(prefix):]
    if not _INDEX_PATTERN.match(suffix):
        raise InvalidIndexError(raw, f"Channel index must be a non-negative integer: {raw!r}")
    return ChannelName(prefix=prefix, channel_type=PREFIX_TYPES[prefix], index=int(suffix))


def normalize_name(raw: str) -> str:
    """Canonical upper-case form without leading zeros: ``ds010`` -> ``DS10``."""
    return str(parse_channel_name(raw))
