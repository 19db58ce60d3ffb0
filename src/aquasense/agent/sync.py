"""Per-observer sync agent.

While the push channel is live the agent mirrors server pushes verbatim.
Once the channel has been gone for the grace period it runs its own
simulator so the view keeps moving; on reconnection it drops that local
state and takes the server's history as-is.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import aiohttp

from aquasense._constants import EVENT_HISTORY_DATA, EVENT_MOTOR_UPDATE, EVENT_NEW_READING
from aquasense.agent.connectivity import ConnectivityEvent, ConnectivityState, transition
from aquasense.agent.transport import AgentTransport, HttpAgentTransport
from aquasense.config import AquaSenseConfig
from aquasense.engine.motor import MotorController
from aquasense.engine.simulation import SimulationEngine
from aquasense.exceptions import AquaSenseError, ChannelUnavailableError, MalformedCommandError
from aquasense.models.messages import ChannelMessage
from aquasense.models.reading import Reading

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgentSnapshot:
    """What an agent currently displays."""

    connectivity: ConnectivityState
    reading: Reading
    motor_on: bool
    history: tuple[Reading, ...]

    @property
    def simulated(self) -> bool:
        return self.connectivity is ConnectivityState.OFFLINE_SIMULATED


class ClientSyncAgent:
    """Keeps one observer's view consistent with the server, or simulates it.

    Usage::

        async with ClientSyncAgent(config, on_change=print) as agent:
            await agent.run()
    """

    def __init__(
        self,
        config: AquaSenseConfig,
        *,
        transport: AgentTransport | None = None,
        session: aiohttp.ClientSession | None = None,
        on_change: Callable[[AgentSnapshot], None] | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._http_session = session
        self._owns_session = False
        self._on_change = on_change

        self._state = ConnectivityState.CONNECTING
        self._motor = MotorController()
        # Local fallback simulator: never fed real data, so always stale.
        self._simulator = SimulationEngine(
            increment=config.client_increment,
            staleness_threshold=0.0,
            capacity_unit=config.capacity_unit,
        )
        self._reading = Reading.empty(capacity_unit=config.capacity_unit)
        self._history: list[Reading] = []

        self._grace: asyncio.TimerHandle | None = None
        self._sim_task: asyncio.Task[None] | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ClientSyncAgent:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_session = True
            self._transport = HttpAgentTransport(self._config.server_url, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()
        if self._owns_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def close(self) -> None:
        """Cancel every timer the agent owns."""
        self._closed = True
        self._cancel_grace()
        self._stop_simulation()

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def motor_on(self) -> bool:
        return self._motor.is_on

    @property
    def reading(self) -> Reading:
        return self._reading

    @property
    def history(self) -> list[Reading]:
        return list(self._history)

    @property
    def simulating(self) -> bool:
        return self._sim_task is not None and not self._sim_task.done()

    def snapshot(self) -> AgentSnapshot:
        return AgentSnapshot(
            connectivity=self._state,
            reading=self._reading,
            motor_on=self._motor.is_on,
            history=tuple(self._history),
        )

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.snapshot())
        except Exception:
            _logger.exception("on_change callback failed")

    def _append(self, reading: Reading) -> None:
        self._reading = reading
        self._history.append(reading)
        overflow = len(self._history) - self._config.client_view_window
        if overflow > 0:
            del self._history[:overflow]

    def _replace_history(self, readings: list[Reading]) -> None:
        self._history = list(readings)
        if readings:
            self._reading = readings[-1]
        else:
            self._reading = Reading.empty(capacity_unit=self._config.capacity_unit)

    # ------------------------------------------------------------------
    # Connectivity dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: ConnectivityEvent) -> ConnectivityState:
        """Feed one lifecycle event through the state machine and apply effects."""
        previous = self._state
        current = transition(previous, event)
        self._state = current

        if (
            event in (ConnectivityEvent.DISCONNECTED, ConnectivityEvent.CONNECT_ERROR)
            and current is ConnectivityState.CONNECTING
        ):
            self._arm_grace()
        elif current is not ConnectivityState.CONNECTING:
            self._cancel_grace()

        if current is ConnectivityState.LIVE:
            self._stop_simulation()
        else:
            self._sync_simulation()

        if current is not previous:
            log = _logger.warning if current is ConnectivityState.OFFLINE_SIMULATED else _logger.info
            log("Connectivity %s -> %s (%s)", previous, current, event)
            self._notify()
        return current

    def _arm_grace(self) -> None:
        if self._grace is not None or self._closed:
            return
        loop = asyncio.get_running_loop()
        self._grace = loop.call_later(self._config.offline_grace, self._grace_expired)

    def _grace_expired(self) -> None:
        self._grace = None
        self.dispatch(ConnectivityEvent.GRACE_EXPIRED)

    def _cancel_grace(self) -> None:
        handle = self._grace
        self._grace = None
        if handle is not None:
            handle.cancel()

    # ------------------------------------------------------------------
    # Local simulation
    # ------------------------------------------------------------------

    def _sync_simulation(self) -> None:
        """Run the local simulator exactly while offline with the motor on."""
        wanted = (
            not self._closed
            and self._state is ConnectivityState.OFFLINE_SIMULATED
            and self._motor.is_on
        )
        if not wanted:
            self._stop_simulation()
            return
        if self.simulating:
            return
        self._simulator.seed(self._reading.percentage)
        self._simulator.resume()
        self._sim_task = asyncio.get_running_loop().create_task(self._simulate())

    def _stop_simulation(self) -> None:
        task = self._sim_task
        self._sim_task = None
        if task is not None and not task.done():
            task.cancel()

    async def _simulate(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._config.tick_interval)
                if not self.simulate_step():
                    return
        finally:
            if self._sim_task is asyncio.current_task():
                self._sim_task = None

    def simulate_step(self) -> bool:
        """Advance the local view by one tick; ``False`` once auto-cutoff fired."""
        step = self._simulator.advance(self._motor)
        self._append(step.reading)
        if step.motor_changed:
            _logger.info("Local simulation: tank full, motor off")
        self._notify()
        return not step.motor_changed

    # ------------------------------------------------------------------
    # Server pushes
    # ------------------------------------------------------------------

    def handle_message(self, message: ChannelMessage) -> None:
        """Apply one server push verbatim."""
        try:
            if message.event == EVENT_NEW_READING:
                self._append(message.reading())
            elif message.event == EVENT_MOTOR_UPDATE:
                self._motor.set_motor(bool(message.data))
                self._sync_simulation()
            elif message.event == EVENT_HISTORY_DATA:
                self._replace_history(message.readings())
        except (ValueError, MalformedCommandError):
            _logger.debug("Ignoring malformed %s push", message.event, exc_info=True)
            return
        self._notify()

    async def bootstrap(self) -> bool:
        """Fetch the initial history once; failure means offline."""
        transport = self._require_transport()
        try:
            readings = await transport.fetch_history()
        except ChannelUnavailableError as exc:
            _logger.warning("Backend offline, switching to local simulation: %s", exc)
            self.dispatch(ConnectivityEvent.BOOTSTRAP_FAILED)
            return False
        self._replace_history(readings)
        self._notify()
        return True

    async def run(self) -> None:
        """Bootstrap, then hold the push channel open until closed or cancelled."""
        transport = self._require_transport()
        await self.bootstrap()
        while not self._closed:
            try:
                async with transport.connect() as messages:
                    self.dispatch(ConnectivityEvent.CONNECTED)
                    async for message in messages:
                        self.handle_message(message)
                self.dispatch(ConnectivityEvent.DISCONNECTED)
            except ChannelUnavailableError as exc:
                _logger.debug("Push channel unavailable: %s", exc)
                if self._state is ConnectivityState.LIVE:
                    self.dispatch(ConnectivityEvent.DISCONNECTED)
                else:
                    self.dispatch(ConnectivityEvent.CONNECT_ERROR)
            if self._closed:
                break
            await asyncio.sleep(self._config.reconnect_delay)

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def _require_transport(self) -> AgentTransport:
        if self._transport is None:
            raise AquaSenseError("Agent not initialized. Use 'async with ClientSyncAgent(...) as agent:'")
        return self._transport

    async def set_motor(self, desired: bool) -> bool:
        """Switch the motor locally at once, then tell the server."""
        self._motor.set_motor(desired)
        self._simulator.resume()
        self._sync_simulation()
        self._notify()
        try:
            await self._require_transport().post_motor(desired)
        except ChannelUnavailableError as exc:
            _logger.warning("Motor command not delivered: %s", exc)
        return self._motor.is_on

    async def reset(self) -> None:
        """Ask the server to reset and clear the local view."""
        try:
            await self._require_transport().post_reset()
        except ChannelUnavailableError as exc:
            _logger.warning("Reset not delivered: %s", exc)
        self._motor.reset()
        self._simulator.reset()
        self._replace_history([])
        self._sync_simulation()
        self._notify()
