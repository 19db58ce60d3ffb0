"""Runtime configuration for aquasense."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from aquasense import _constants as c
from aquasense.exceptions import AquaSenseConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, raw: str, kind: type) -> Any:
    try:
        return kind(raw)
    except ValueError as exc:
        raise AquaSenseConfigError(f"{env_key} must be a {kind.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class AquaSenseConfig:
    """Server and agent configuration.

    Parameters
    ----------
    host : str
        Interface the HTTP/WebSocket server binds to.
    port : int
        Server port.
    database_path : str or None
        SQLite file for the durable reading tier. ``None`` runs on the
        volatile tier only.
    durable_capacity : int
        Maximum readings kept by the durable tier.
    memory_capacity : int
        Maximum readings kept by the volatile fallback tier.
    history_limit : int
        Size of the history slice served to clients.
    capacity_unit : float
        Level reported for an empty tank (level is empty space).
    tick_interval : float
        Simulation tick period in seconds.
    staleness_threshold : float
        Seconds without real data before simulation takes over.
    server_increment : float
        Percentage added per server simulation tick while the motor runs.
    client_increment : float
        Percentage added per client fallback tick while the motor runs.
    offline_grace : float
        Seconds an agent waits after losing the channel before it
        switches to local simulation.
    reconnect_delay : float
        Seconds between agent reconnection attempts.
    client_view_window : int
        Points an agent keeps when appending pushed readings.
    observer_queue_size : int
        Pending messages per observer before further ones are dropped.
    server_url : str
        Base URL agents connect to.
    mqtt_enabled : bool
        Start the MQTT sensor bridge alongside the server.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic : str
        Topic sensors publish readings to.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    """

    host: str = "0.0.0.0"
    port: int = 5000
    database_path: str | None = None
    durable_capacity: int = c.DURABLE_CAPACITY
    memory_capacity: int = c.MEMORY_CAPACITY
    history_limit: int = c.HISTORY_LIMIT
    capacity_unit: float = c.CAPACITY_UNIT
    tick_interval: float = c.TICK_INTERVAL_S
    staleness_threshold: float = c.STALENESS_THRESHOLD_S
    server_increment: float = c.SERVER_SIM_INCREMENT
    client_increment: float = c.CLIENT_SIM_INCREMENT
    offline_grace: float = c.OFFLINE_GRACE_S
    reconnect_delay: float = 2.0
    client_view_window: int = c.CLIENT_VIEW_WINDOW
    observer_queue_size: int = 100
    server_url: str = "http://localhost:5000"
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = "aquasense/readings"
    mqtt_keepalive: int = 60

    def __post_init__(self) -> None:
        for name in ("durable_capacity", "memory_capacity", "history_limit", "client_view_window"):
            if getattr(self, name) <= 0:
                raise AquaSenseConfigError(f"{name} must be positive")
        if self.tick_interval <= 0:
            raise AquaSenseConfigError("tick_interval must be positive")
        if self.capacity_unit <= 0:
            raise AquaSenseConfigError("capacity_unit must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> AquaSenseConfig:
        """Create configuration from ``AQUASENSE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "AQUASENSE_HOST": "host",
            "AQUASENSE_DATABASE_PATH": "database_path",
            "AQUASENSE_SERVER_URL": "server_url",
            "AQUASENSE_MQTT_HOST": "mqtt_host",
            "AQUASENSE_MQTT_TOPIC": "mqtt_topic",
        }
        _ENV_INT_MAP = {
            "AQUASENSE_PORT": "port",
            "AQUASENSE_DURABLE_CAPACITY": "durable_capacity",
            "AQUASENSE_MEMORY_CAPACITY": "memory_capacity",
            "AQUASENSE_HISTORY_LIMIT": "history_limit",
            "AQUASENSE_MQTT_PORT": "mqtt_port",
            "AQUASENSE_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        _ENV_FLOAT_MAP = {
            "AQUASENSE_CAPACITY_UNIT": "capacity_unit",
            "AQUASENSE_TICK_INTERVAL": "tick_interval",
            "AQUASENSE_STALENESS_THRESHOLD": "staleness_threshold",
            "AQUASENSE_SERVER_INCREMENT": "server_increment",
            "AQUASENSE_CLIENT_INCREMENT": "client_increment",
            "AQUASENSE_OFFLINE_GRACE": "offline_grace",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, int)
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, float)

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("AQUASENSE_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
