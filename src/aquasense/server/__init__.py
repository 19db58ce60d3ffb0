"""HTTP and WebSocket surface for the reconciliation engine."""

from aquasense.server.app import BROADCASTER_KEY, CONFIG_KEY, create_app, run_server
from aquasense.server.observers import WebSocketObserver

__all__ = ["BROADCASTER_KEY", "CONFIG_KEY", "WebSocketObserver", "create_app", "run_server"]
