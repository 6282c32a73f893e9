"""ChannelCatalogue: immutable channel type -> start address table, loaded from packaged JSON per profile."""

import json
import logging
from importlib import resources
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from .errors import UnsupportedChannelTypeError
from .normalize import PREFIX_TYPES
from .types import ChannelType

logger = logging.getLogger(__name__)

_PROFILE_RESOURCE: dict[str, str] = {
    "click": "pyclick_modbus.data.click_catalogue",
}


def _parse_start(value: Any) -> int:
    """Start addresses may be given as ints or as strings in any Python int literal base ("0x7000")."""
    start = int(value, 0) if isinstance(value, str) else int(value)
    if start < 0 or start > 0xFFFF:
        raise ValueError(f"Start address out of Modbus range 0..0xFFFF: {value!r}")
    return start


def _parse_entry(raw: dict[str, Any]) -> tuple[ChannelType, int]:
    """Build (ChannelType, start) from a JSON entry (type, start, optional prefix)."""
    type_str = raw["type"]
    try:
        channel_type = ChannelType(type_str)
    except ValueError:
        raise ValueError(f"Unknown channel type {type_str!r}")
    prefix = raw.get("prefix")
    if prefix is not None and PREFIX_TYPES.get(str(prefix).upper()) != channel_type:
        raise ValueError(f"Prefix {prefix!r} does not name channel type {type_str!r}")
    return channel_type, _parse_start(raw["start"])


class ChannelCatalogue:
    """
    Read-only map of ChannelType to 0-based Modbus start address.
    Loaded from packaged JSON for a profile (default click), or from an override
    mapping. Types absent from the catalogue are unsupported for addressing.
    """

    def __init__(
        self,
        profile: str = "click",
        catalogue_override: Mapping[ChannelType | str, int] | None = None,
    ) -> None:
        self._profile = profile.lower()
        starts: dict[ChannelType, int] = {}

        if catalogue_override is not None:
            for key, start in catalogue_override.items():
                starts[ChannelType(key)] = _parse_start(start)
            self._starts = MappingProxyType(starts)
            logger.debug("ChannelCatalogue loaded from override: %d types", len(starts))
            return

        resource_name = _PROFILE_RESOURCE.get(self._profile)
        if not resource_name:
            raise ValueError(f"Unknown profile: {profile!r}")

        pkg, name = resource_name.rsplit(".", 1)
        json_name = f"{name}.json"
        try:
            with resources.files(pkg).joinpath(json_name).open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Catalogue resource not found: {pkg}/{json_name}") from None

        entries = data.get("entries", []) if isinstance(data, dict) else data
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            channel_type, start = _parse_entry(entry)
            if channel_type in starts:
                raise ValueError(f"Duplicate channel type in catalogue: {channel_type.value}")
            starts[channel_type] = start

        self._starts = MappingProxyType(starts)
        logger.debug("ChannelCatalogue loaded for profile %s: %d types", self._profile, len(starts))

    def start_address(self, channel_type: ChannelType, name: str = "") -> int:
        """Return the start address; raise UnsupportedChannelTypeError if the type is not registered."""
        if channel_type not in self._starts:
            raise UnsupportedChannelTypeError(name, channel_type.value)
        return self._starts[channel_type]

    def __contains__(self, channel_type: object) -> bool:
        return channel_type in self._starts

    def __iter__(self) -> Iterator[ChannelType]:
        return iter(self._starts)

    def __len__(self) -> int:
        return len(self._starts)

    @property
    def profile(self) -> str:
        return self._profile

    @property
    def start_addresses(self) -> Mapping[ChannelType, int]:
        return self._starts


_default_catalogues: dict[str, ChannelCatalogue] = {}


def get_default_catalogue(profile: str = "click") -> ChannelCatalogue:
    """Load (once per process) and return the catalogue for the given profile."""
    key = profile.lower()
    if key not in _default_catalogues:
        _default_catalogues[key] = ChannelCatalogue(profile=key)
    return _default_catalogues[key]
