"""MQTT sensor ingestion.

Sensors that publish instead of POSTing send JSON ``{"level", "percentage"}``
to a topic. The paho network loop runs in its own thread; validated
readings are handed to the event loop with ``call_soon_threadsafe`` so the
broadcaster only ever runs on the loop thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from aquasense.exceptions import MalformedCommandError
from aquasense.models.commands import ReadingCommand, parse_command


def decode_reading_payload(payload: bytes) -> ReadingCommand:
    """Parse an MQTT payload into a validated reading command."""
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedCommandError("MQTT reading payload is not JSON", payload=payload) from exc
    return parse_command(ReadingCommand, parsed)


class MqttReadingBridge:
    """Threaded paho-mqtt subscriber that feeds real readings to the loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_reading: Callable[[float, float], Any],
        host: str,
        port: int = 1883,
        topic: str = "aquasense/readings",
        keepalive: int = 60,
        client_id: str = "aquasense-server",
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_reading = on_reading
        self._host = host
        self._port = port
        self._topic = topic
        self._keepalive = keepalive
        self._client_id = client_id
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def handle_payload(self, topic: str, payload: bytes) -> bool:
        """Validate one payload and schedule it; returns ``False`` when dropped."""
        try:
            command = decode_reading_payload(payload)
        except MalformedCommandError as exc:
            self._logger.warning("Dropping malformed reading on %s: %s", topic, exc)
            return False
        self._logger.debug("MQTT reading topic=%s level=%s pct=%s", topic, command.level, command.percentage)
        self._loop.call_soon_threadsafe(self._on_reading, command.level, command.percentage)
        return True

    def start(self) -> None:
        """Connect and subscribe. Blocking; run it in an executor."""
        self.stop()
        self._logger.debug(
            "MQTT bridge start host=%s port=%s topic=%s",
            self._host,
            self._port,
            self._topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
        )
        client.enable_logger(self._logger)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.info("MQTT connected; subscribing %s", self._topic)
            c.subscribe(self._topic, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self.handle_payload(msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(self._host, self._port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True

    def stop(self) -> None:
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT bridge stopped")
