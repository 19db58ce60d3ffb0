"""aiohttp application: REST routes, WebSocket observers and the simulation ticker."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

from aiohttp import WSMsgType, web

from aquasense.config import AquaSenseConfig
from aquasense.engine.broadcaster import ReconciliationBroadcaster
from aquasense.engine.context import TankContext
from aquasense.exceptions import MalformedCommandError
from aquasense.ingestion.mqtt import MqttReadingBridge
from aquasense.models.commands import MotorCommand, ReadingCommand, parse_command
from aquasense.server.observers import WebSocketObserver

_logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", AquaSenseConfig)
BROADCASTER_KEY = web.AppKey("broadcaster", ReconciliationBroadcaster)


async def _read_json(request: web.Request) -> Any:
    if not request.can_read_body:
        return {}
    try:
        return await request.json()
    except ValueError as exc:
        raise MalformedCommandError("Request body is not valid JSON") from exc


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    try:
        return await handler(request)
    except MalformedCommandError as exc:
        _logger.debug("Rejected %s %s: %s", request.method, request.path, exc)
        return web.json_response({"success": False, "error": str(exc)}, status=400)


# ----------------------------------------------------------------------
# REST handlers
# ----------------------------------------------------------------------


async def post_reading(request: web.Request) -> web.Response:
    command = parse_command(ReadingCommand, await _read_json(request))
    broadcaster = request.app[BROADCASTER_KEY]
    broadcaster.on_real_reading(command.level, command.percentage)
    return web.json_response({"success": True, "motorOn": broadcaster.motor_on})


async def get_history(request: web.Request) -> web.Response:
    broadcaster = request.app[BROADCASTER_KEY]
    return web.json_response([r.to_wire() for r in broadcaster.history()])


async def post_motor(request: web.Request) -> web.Response:
    command = parse_command(MotorCommand, await _read_json(request))
    state = request.app[BROADCASTER_KEY].on_motor_command(command.state)
    return web.json_response({"success": True, "motorOn": state})


async def post_reset(request: web.Request) -> web.Response:
    request.app[BROADCASTER_KEY].on_reset()
    return web.json_response({"success": True})


async def get_status(request: web.Request) -> web.Response:
    broadcaster = request.app[BROADCASTER_KEY]
    return web.json_response(
        {
            "motorOn": broadcaster.motor_on,
            "simulating": broadcaster.simulating,
            "storage": broadcaster.context.store.mode,
            "observers": broadcaster.observer_count,
        }
    )


# ----------------------------------------------------------------------
# Push channel
# ----------------------------------------------------------------------


async def ws_handler(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse(heartbeat=20)
    await ws.prepare(request)

    config = request.app[CONFIG_KEY]
    broadcaster = request.app[BROADCASTER_KEY]
    observer = WebSocketObserver(ws, queue_size=config.observer_queue_size, peer=str(request.remote))
    pump = asyncio.create_task(observer.pump())
    broadcaster.attach(observer)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                _logger.debug("Observer %s socket error: %s", observer.peer, ws.exception())
                break
    finally:
        broadcaster.detach(observer)
        pump.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pump
    return ws


# ----------------------------------------------------------------------
# Background tasks
# ----------------------------------------------------------------------


async def _simulation_ticker(broadcaster: ReconciliationBroadcaster, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            broadcaster.on_simulated_tick()
        except Exception:
            _logger.exception("Simulation tick failed")


async def _start_mqtt(app: web.Application) -> MqttReadingBridge | None:
    config = app[CONFIG_KEY]
    if not config.mqtt_enabled:
        return None
    loop = asyncio.get_running_loop()
    bridge = MqttReadingBridge(
        loop=loop,
        on_reading=app[BROADCASTER_KEY].on_real_reading,
        host=config.mqtt_host,
        port=config.mqtt_port,
        topic=config.mqtt_topic,
        keepalive=config.mqtt_keepalive,
    )
    try:
        await loop.run_in_executor(None, bridge.start)
    except Exception:
        _logger.warning("MQTT bridge start failed; continuing with REST ingestion only", exc_info=True)
        return None
    return bridge


def _background_tasks(*, start_ticker: bool) -> Any:
    async def ctx(app: web.Application) -> AsyncIterator[None]:
        broadcaster = app[BROADCASTER_KEY]
        ticker: asyncio.Task[None] | None = None
        if start_ticker:
            ticker = asyncio.create_task(_simulation_ticker(broadcaster, app[CONFIG_KEY].tick_interval))
        bridge = await _start_mqtt(app)
        yield
        try:
            if bridge is not None:
                await asyncio.get_running_loop().run_in_executor(None, bridge.stop)
        finally:
            try:
                if ticker is not None:
                    ticker.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await ticker
            finally:
                broadcaster.context.store.close()

    return ctx


def create_app(
    config: AquaSenseConfig | None = None,
    *,
    context: TankContext | None = None,
    start_ticker: bool = True,
) -> web.Application:
    """Build the web application around one :class:`TankContext`."""
    config = config or AquaSenseConfig()
    context = context or TankContext.from_config(config)

    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app[BROADCASTER_KEY] = ReconciliationBroadcaster(context)

    app.router.add_post("/api/reading", post_reading)
    app.router.add_get("/api/history", get_history)
    app.router.add_post("/api/motor", post_motor)
    app.router.add_post("/api/reset", post_reset)
    app.router.add_get("/api/status", get_status)
    app.router.add_get("/ws", ws_handler)

    app.cleanup_ctx.append(_background_tasks(start_ticker=start_ticker))
    return app


def run_server(config: AquaSenseConfig) -> None:
    app = create_app(config)
    _logger.info("Serving on %s:%s (storage=%s)", config.host, config.port, config.database_path or "volatile")
    web.run_app(app, host=config.host, port=config.port, print=None)
