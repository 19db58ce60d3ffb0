"""Command line entry point.

``aquasense serve`` runs the server; ``aquasense watch`` runs a headless
sync agent and logs every view change.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from aquasense.agent.sync import AgentSnapshot, ClientSyncAgent
from aquasense.config import AquaSenseConfig
from aquasense.exceptions import AquaSenseConfigError
from aquasense.server.app import run_server

_LOG = logging.getLogger("aquasense")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aquasense", description="Tank level monitor")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP/WebSocket server")
    serve.add_argument("--host", default=None, help="Bind address (default: AQUASENSE_HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: AQUASENSE_PORT or 5000)")
    serve.add_argument("--db", dest="database_path", default=None, help="SQLite file for durable history")
    serve.add_argument("--mqtt", action="store_true", help="Also ingest readings from MQTT")

    watch = sub.add_parser("watch", help="Follow a server as a headless observer")
    watch.add_argument("--url", dest="server_url", default=None, help="Server base URL")
    return parser


def _log_snapshot(snapshot: AgentSnapshot) -> None:
    _LOG.info(
        "[%s] %.1f%% level=%.1f motor=%s points=%d",
        snapshot.connectivity,
        snapshot.reading.percentage,
        snapshot.reading.level,
        "on" if snapshot.motor_on else "off",
        len(snapshot.history),
    )


async def _watch(config: AquaSenseConfig) -> None:
    async with ClientSyncAgent(config, on_change=_log_snapshot) as agent:
        task = asyncio.create_task(agent.run())
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, task.cancel)
        with contextlib.suppress(asyncio.CancelledError):
            await task


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        key: value
        for key, value in vars(args).items()
        if key in {"host", "port", "database_path", "server_url"} and value is not None
    }
    if getattr(args, "mqtt", False):
        overrides["mqtt_enabled"] = True

    try:
        config = AquaSenseConfig.from_env(**overrides)
    except AquaSenseConfigError as exc:
        _LOG.error("Invalid configuration: %s", exc)
        return 2

    if args.command == "serve":
        run_server(config)
    else:
        asyncio.run(_watch(config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
