"""Reconciliation engine: motor, simulation and the broadcaster that owns them."""

from aquasense.engine.broadcaster import Observer, ReconciliationBroadcaster
from aquasense.engine.context import TankContext
from aquasense.engine.motor import MotorController
from aquasense.engine.simulation import SimulationClock, SimulationEngine, SimulationStep

__all__ = [
    "MotorController",
    "Observer",
    "ReconciliationBroadcaster",
    "SimulationClock",
    "SimulationEngine",
    "SimulationStep",
    "TankContext",
]
