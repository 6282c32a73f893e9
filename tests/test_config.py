"""Tests for driver configuration loading and cloning."""

import pytest

from pyclick_modbus import DriverConfiguration
from pyclick_modbus.errors import ClickErrorCode, ConfigurationError


def test_from_json_snake_case() -> None:
    cfg = DriverConfiguration.from_json('{"interface": {"network": {"host": "10.0.0.5", "port": 5020, "unit_id": 3}}}')
    assert cfg.network is not None
    assert cfg.network.host == "10.0.0.5"
    assert cfg.network.port == 5020
    assert cfg.network.unit_id == 3
    assert cfg.network.timeout == 3.0


def test_from_json_pascal_case() -> None:
    cfg = DriverConfiguration.from_json('{"Interface": {"Network": {"IpAddress": "192.168.0.10", "Port": 502}}}')
    assert cfg.network is not None
    assert cfg.network.host == "192.168.0.10"
    assert cfg.network.port == 502


def test_from_dict_flat_endpoint() -> None:
    cfg = DriverConfiguration.from_dict({"host": "plc.local"})
    assert cfg.network is not None
    assert cfg.network.host == "plc.local"
    assert cfg.network.port == 502


def test_missing_network_section() -> None:
    cfg = DriverConfiguration.from_dict({"interface": {}})
    assert cfg.interface is not None
    assert cfg.network is None


def test_empty_json_is_not_provided() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        DriverConfiguration.from_json("   ")
    assert exc_info.value.code == ClickErrorCode.CONFIGURATION_IS_NOT_PROVIDED


@pytest.mark.parametrize(
    "text",
    [
        "{not json",
        "[1, 2]",
        '{"interface": {"network": {"host": "a", "port": "abc"}}}',
        '{"interface": 5}',
    ],
)
def test_malformed_json_raises(text: str) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        DriverConfiguration.from_json(text)
    assert exc_info.value.code == ClickErrorCode.CONFIG_DESERIALIZATION_ERROR


def test_clone_is_deep() -> None:
    cfg = DriverConfiguration.from_endpoint("10.0.0.1", 502)
    clone = cfg.clone()
    assert clone == cfg
    assert cfg.network is not None
    cfg.network.host = "10.0.0.2"
    assert clone.network is not None
    assert clone.network.host == "10.0.0.1"


def test_endpoint_validity() -> None:
    assert DriverConfiguration.from_endpoint("h", 0).network.is_valid()  # type: ignore[union-attr]
    assert not DriverConfiguration.from_endpoint("", 502).network.is_valid()  # type: ignore[union-attr]
    assert not DriverConfiguration.from_endpoint("h", -1).network.is_valid()  # type: ignore[union-attr]
