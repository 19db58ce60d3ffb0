"""Server-side authority over what observers see.

Every trigger here is synchronous: on a single event loop it runs to
completion before any other handler, so context mutations never
interleave. Delivery to observers is fire-and-forget.
"""

from __future__ import annotations

import logging
from typing import Protocol

from aquasense.engine.context import TankContext
from aquasense.models.messages import ChannelMessage
from aquasense.models.reading import Reading

_logger = logging.getLogger(__name__)


class Observer(Protocol):
    """Anything that can receive channel messages.

    ``deliver`` must not block; raising detaches the observer.
    """

    def deliver(self, message: ChannelMessage) -> None:
        ...


class ReconciliationBroadcaster:
    def __init__(self, context: TankContext) -> None:
        self._ctx = context
        self._observers: list[Observer] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def context(self) -> TankContext:
        return self._ctx

    @property
    def motor_on(self) -> bool:
        return self._ctx.motor.is_on

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def simulating(self) -> bool:
        """Whether the next tick would come from the simulator."""
        sim = self._ctx.simulation
        return sim.is_stale() and not sim.halted

    def history(self, limit: int | None = None) -> list[Reading]:
        """Served history slice, oldest first."""
        return self._ctx.store.recent(self._ctx.config.history_limit if limit is None else limit)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def attach(self, observer: Observer) -> None:
        """Register *observer* and replay current motor state and history once."""
        self._observers.append(observer)
        _logger.info("Observer attached (%d connected)", len(self._observers))
        self._send(observer, ChannelMessage.motor_update(self.motor_on))
        self._send(observer, ChannelMessage.history_data(self.history()))

    def detach(self, observer: Observer) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            return
        _logger.info("Observer detached (%d connected)", len(self._observers))

    def _send(self, observer: Observer, message: ChannelMessage) -> None:
        try:
            observer.deliver(message)
        except Exception:
            _logger.debug("Delivery of %s failed; dropping observer", message.event, exc_info=True)
            self.detach(observer)

    def _broadcast(self, message: ChannelMessage) -> None:
        _logger.debug("Broadcast %s to %d observer(s)", message.event, len(self._observers))
        for observer in list(self._observers):
            self._send(observer, message)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def on_real_reading(self, level: float, percentage: float) -> Reading:
        """Sensor data arrived: persist, refresh staleness, cut off if full."""
        ctx = self._ctx
        reading = ctx.store.append(level, percentage)
        ctx.simulation.note_real_reading(percentage)
        if ctx.motor.evaluate_auto_cutoff(percentage):
            self._broadcast(ChannelMessage.motor_update(False))
        self._broadcast(ChannelMessage.new_reading(reading))
        return reading

    def on_simulated_tick(self) -> Reading | None:
        """Periodic tick; silent while real data is fresh."""
        ctx = self._ctx
        step = ctx.simulation.tick(ctx.motor)
        if step is None:
            return None
        ctx.store.record_simulated(step.reading)
        if step.motor_changed:
            _logger.info("Simulation: tank full, motor off")
            self._broadcast(ChannelMessage.motor_update(False))
        self._broadcast(ChannelMessage.new_reading(step.reading))
        return step.reading

    def on_motor_command(self, desired: bool) -> bool:
        state = self._ctx.motor.set_motor(desired)
        self._ctx.simulation.resume()
        _logger.info("Motor toggled: %s", "on" if state else "off")
        self._broadcast(ChannelMessage.motor_update(state))
        return state

    def on_reset(self) -> Reading:
        self._ctx.reset()
        _logger.info("System reset")
        reading = Reading.empty(capacity_unit=self._ctx.config.capacity_unit)
        self._broadcast(ChannelMessage.motor_update(False))
        self._broadcast(ChannelMessage.new_reading(reading))
        self._broadcast(ChannelMessage.history_data([]))
        return reading
