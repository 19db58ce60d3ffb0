"""Process state owned by the server."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from aquasense.config import AquaSenseConfig
from aquasense.engine.motor import MotorController
from aquasense.engine.simulation import SimulationEngine
from aquasense.storage.backends import SqliteBackend
from aquasense.storage.store import ReadingStore


@dataclass
class TankContext:
    """Reading store, motor and server simulator as one owned unit.

    The context is confined to a single event loop; nothing in it is
    locked.
    """

    config: AquaSenseConfig
    store: ReadingStore
    motor: MotorController
    simulation: SimulationEngine

    @classmethod
    def from_config(
        cls,
        config: AquaSenseConfig,
        *,
        store: ReadingStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> TankContext:
        if store is None:
            durable = (
                SqliteBackend(config.database_path, capacity=config.durable_capacity)
                if config.database_path
                else None
            )
            store = ReadingStore(durable, memory_capacity=config.memory_capacity)
        simulation = SimulationEngine(
            increment=config.server_increment,
            staleness_threshold=config.staleness_threshold,
            capacity_unit=config.capacity_unit,
            clock=clock,
        )
        return cls(config=config, store=store, motor=MotorController(), simulation=simulation)

    def reset(self) -> None:
        """Empty history, motor off, accumulator back to zero."""
        self.store.clear()
        self.motor.reset()
        self.simulation.reset()
