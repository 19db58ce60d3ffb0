from __future__ import annotations

import pytest

from aquasense.config import AquaSenseConfig
from aquasense.exceptions import AquaSenseConfigError


def test_defaults_match_documented_timing() -> None:
    config = AquaSenseConfig()

    assert config.tick_interval == 0.5
    assert config.staleness_threshold == 3.0
    assert config.offline_grace == 3.0
    assert config.server_increment == 2.0
    assert config.client_increment == 0.5
    assert config.durable_capacity == 500
    assert config.memory_capacity == 50
    assert config.database_path is None


def test_from_env_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AQUASENSE_PORT", "8080")
    monkeypatch.setenv("AQUASENSE_DATABASE_PATH", "/tmp/tank.db")
    monkeypatch.setenv("AQUASENSE_STALENESS_THRESHOLD", "4.5")
    monkeypatch.setenv("AQUASENSE_MQTT_ENABLED", "yes")

    config = AquaSenseConfig.from_env()

    assert config.port == 8080
    assert config.database_path == "/tmp/tank.db"
    assert config.staleness_threshold == 4.5
    assert config.mqtt_enabled is True


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AQUASENSE_PORT", "8080")
    monkeypatch.setenv("AQUASENSE_MQTT_ENABLED", "1")

    config = AquaSenseConfig.from_env(port=9000, mqtt_enabled=False)

    assert config.port == 9000
    assert config.mqtt_enabled is False


def test_unrecognized_bool_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AQUASENSE_MQTT_ENABLED", "maybe")

    assert AquaSenseConfig.from_env().mqtt_enabled is False


def test_non_numeric_env_value_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AQUASENSE_DURABLE_CAPACITY", "lots")

    with pytest.raises(AquaSenseConfigError, match="AQUASENSE_DURABLE_CAPACITY"):
        AquaSenseConfig.from_env()


@pytest.mark.parametrize(
    "overrides",
    [
        {"durable_capacity": 0},
        {"memory_capacity": -1},
        {"history_limit": 0},
        {"tick_interval": 0.0},
        {"capacity_unit": -100.0},
    ],
)
def test_non_positive_sizes_are_rejected(overrides: dict[str, float]) -> None:
    with pytest.raises(AquaSenseConfigError):
        AquaSenseConfig(**overrides)  # type: ignore[arg-type]
