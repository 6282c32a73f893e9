"""Driver configuration: network endpoint of the PLC, loadable from a mapping or JSON text."""

import copy
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from .errors import ClickErrorCode, ConfigurationError

DEFAULT_PORT = 502


def _folded(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Fold keys so snake_case and PascalCase spellings match ("ip_address", "IpAddress" -> "ipaddress")."""
    return {str(k).replace("_", "").lower(): v for k, v in raw.items()}


@dataclass
class NetworkConfiguration:
    host: str | None = None
    port: int = DEFAULT_PORT
    unit_id: int = 1
    timeout: float = 3.0

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "NetworkConfiguration":
        d = _folded(raw)
        host = d.get("host", d.get("ipaddress"))
        try:
            return cls(
                host=None if host is None else str(host),
                port=int(d.get("port", DEFAULT_PORT)),
                unit_id=int(d.get("unitid", 1)),
                timeout=float(d.get("timeout", 3.0)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid network configuration: {e}") from e

    def is_valid(self) -> bool:
        return bool(self.host) and self.port >= 0


@dataclass
class InterfaceConfiguration:
    network: NetworkConfiguration | None = field(default_factory=NetworkConfiguration)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "InterfaceConfiguration":
        network = _folded(raw).get("network")
        if network is None:
            return cls(network=None)
        if not isinstance(network, Mapping):
            raise ConfigurationError(f"'network' must be an object, got {type(network).__name__}")
        return cls(network=NetworkConfiguration.from_dict(network))


@dataclass
class DriverConfiguration:
    """
    Top-level driver configuration. JSON shape::

        {"interface": {"network": {"host": "192.168.0.10", "port": 502}}}

    PascalCase keys ("Interface", "Network", "IpAddress", "Port") are accepted too.
    A flat {"host": ..., "port": ...} object is read as the network section.
    """

    interface: InterfaceConfiguration | None = field(default_factory=InterfaceConfiguration)

    @classmethod
    def from_endpoint(cls, host: str, port: int = DEFAULT_PORT, **network: Any) -> "DriverConfiguration":
        return cls(InterfaceConfiguration(NetworkConfiguration(host=host, port=port, **network)))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DriverConfiguration":
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"Configuration must be an object, got {type(raw).__name__}")
        d = _folded(raw)
        if "interface" in d:
            interface = d["interface"]
            if interface is None:
                return cls(interface=None)
            if not isinstance(interface, Mapping):
                raise ConfigurationError(f"'interface' must be an object, got {type(interface).__name__}")
            return cls(interface=InterfaceConfiguration.from_dict(interface))
        if "network" in d:
            return cls(interface=InterfaceConfiguration.from_dict(raw))
        return cls(interface=InterfaceConfiguration(NetworkConfiguration.from_dict(raw)))

    @classmethod
    def from_json(cls, text: str) -> "DriverConfiguration":
        if text is None or not text.strip():
            raise ConfigurationError(
                "Provided configuration string is empty",
                code=ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED,
            )
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Malformed configuration JSON: {e}") from e
        return cls.from_dict(raw)

    @property
    def network(self) -> NetworkConfiguration | None:
        return self.interface.network if self.interface is not None else None

    def clone(self) -> "DriverConfiguration":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
