"""Agent-side HTTP and WebSocket transport."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import aiohttp

from aquasense.exceptions import ChannelUnavailableError, MalformedCommandError
from aquasense.models.messages import ChannelMessage
from aquasense.models.reading import Reading

_logger = logging.getLogger(__name__)


class AgentTransport(Protocol):
    """Structural transport interface used by the sync agent.

    Every method raises :class:`ChannelUnavailableError` when the server
    cannot be reached. Test doubles only need to match this shape.
    """

    async def fetch_history(self) -> list[Reading]:
        ...

    async def post_motor(self, state: bool) -> bool:
        ...

    async def post_reset(self) -> None:
        ...

    def connect(self) -> contextlib.AbstractAsyncContextManager[AsyncIterator[ChannelMessage]]:
        ...


class HttpAgentTransport:
    """REST calls plus the ``/ws`` push channel over one aiohttp session."""

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        request_timeout: float = 5.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)

    async def _request(self, method: str, endpoint: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}{endpoint}"
        _logger.debug("%s %s", method, url)
        try:
            async with self._http.request(method, url, json=payload, timeout=self._timeout) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise ChannelUnavailableError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        endpoint=endpoint,
                    )
                return await resp.json()
        except ChannelUnavailableError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ChannelUnavailableError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc

    async def fetch_history(self) -> list[Reading]:
        body = await self._request("GET", "/api/history")
        if not isinstance(body, list):
            raise ChannelUnavailableError("History response is not a list", endpoint="/api/history")
        try:
            return [Reading.model_validate(item) for item in body]
        except ValueError as exc:
            raise ChannelUnavailableError(f"History response invalid: {exc}", endpoint="/api/history") from exc

    async def post_motor(self, state: bool) -> bool:
        body = await self._request("POST", "/api/motor", {"state": state})
        return bool(body.get("motorOn", state)) if isinstance(body, dict) else state

    async def post_reset(self) -> None:
        await self._request("POST", "/api/reset")

    @contextlib.asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncIterator[ChannelMessage]]:
        url = f"{self._base_url}/ws"
        try:
            ws = await self._http.ws_connect(url, heartbeat=20)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ChannelUnavailableError(f"Push channel connect failed: {exc}", endpoint="/ws") from exc
        _logger.debug("Push channel open: %s", url)
        try:
            yield self._messages(ws)
        finally:
            await ws.close()

    @staticmethod
    async def _messages(ws: aiohttp.ClientWebSocketResponse) -> AsyncIterator[ChannelMessage]:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    yield ChannelMessage.from_json(msg.data)
                except MalformedCommandError:
                    _logger.debug("Ignoring malformed channel message", exc_info=True)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise ChannelUnavailableError(f"Push channel error: {ws.exception()}", endpoint="/ws")
