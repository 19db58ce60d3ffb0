"""Sensor ingestion paths other than the REST API."""

from aquasense.ingestion.mqtt import MqttReadingBridge, decode_reading_payload

__all__ = ["MqttReadingBridge", "decode_reading_payload"]
