"""Synthetic fill simulation.

A simulator only speaks when real data has gone stale. While the motor
runs it adds a fixed increment per tick, hard-clamped to ``[0, 100]``;
with the motor off the percentage holds. Reaching 100 cuts the motor off
and halts the simulator until an operator command re-arms it.

The server and each client own separate :class:`SimulationEngine`
instances; accumulators are never shared.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from aquasense._constants import (
    CAPACITY_UNIT,
    PERCENT_MAX,
    PERCENT_MIN,
    SERVER_SIM_INCREMENT,
    STALENESS_THRESHOLD_S,
)
from aquasense.engine.motor import MotorController
from aquasense.models.reading import Reading, clamp_percentage


@dataclass
class SimulationClock:
    """Last real-data time (monotonic seconds, ``None`` = never) and accumulator."""

    last_real_at: float | None = None
    percentage: float = PERCENT_MIN


@dataclass(frozen=True)
class SimulationStep:
    reading: Reading
    motor_changed: bool


class SimulationEngine:
    def __init__(
        self,
        *,
        increment: float = SERVER_SIM_INCREMENT,
        staleness_threshold: float = STALENESS_THRESHOLD_S,
        capacity_unit: float = CAPACITY_UNIT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.increment = increment
        self.staleness_threshold = staleness_threshold
        self.capacity_unit = capacity_unit
        self._clock = clock
        self._state = SimulationClock()
        self._halted = False

    @property
    def state(self) -> SimulationClock:
        return self._state

    @property
    def percentage(self) -> float:
        return self._state.percentage

    @property
    def halted(self) -> bool:
        """Whether auto-cutoff has silenced the simulator."""
        return self._halted

    def seed(self, percentage: float) -> None:
        """Continue from a known consistent percentage."""
        self._state.percentage = clamp_percentage(percentage)

    def note_real_reading(self, percentage: float, now: float | None = None) -> None:
        """Record that real data arrived and seed the accumulator from it."""
        self._state.last_real_at = self._clock() if now is None else now
        self.seed(percentage)

    def is_stale(self, now: float | None = None) -> bool:
        last = self._state.last_real_at
        if last is None:
            return True
        current = self._clock() if now is None else now
        return (current - last) > self.staleness_threshold

    def advance(self, motor: MotorController) -> SimulationStep:
        """Run one simulation step regardless of staleness."""
        motor_changed = False
        if motor.is_on:
            self._state.percentage = clamp_percentage(self._state.percentage + self.increment)
            if self._state.percentage >= PERCENT_MAX:
                motor_changed = motor.evaluate_auto_cutoff(self._state.percentage)
                if motor_changed:
                    self._halted = True
        reading = Reading.from_percentage(self._state.percentage, capacity_unit=self.capacity_unit)
        return SimulationStep(reading=reading, motor_changed=motor_changed)

    def tick(self, motor: MotorController, now: float | None = None) -> SimulationStep | None:
        """Periodic entry point; ``None`` while real data is fresh or after cutoff."""
        if self._halted or not self.is_stale(now):
            return None
        return self.advance(motor)

    def resume(self) -> None:
        """Re-arm after an operator command."""
        self._halted = False

    def reset(self) -> None:
        """Accumulator back to empty; the last real-data time is kept."""
        self._state.percentage = PERCENT_MIN
        self._halted = False
