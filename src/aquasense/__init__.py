"""aquasense - Tank level monitor with live/simulated state reconciliation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("aquasense")
except PackageNotFoundError:
    __version__ = "0+local"
from aquasense.agent import AgentSnapshot, ClientSyncAgent, ConnectivityEvent, ConnectivityState
from aquasense.config import AquaSenseConfig
from aquasense.engine import (
    MotorController,
    ReconciliationBroadcaster,
    SimulationEngine,
    TankContext,
)
from aquasense.exceptions import (
    AquaSenseConfigError,
    AquaSenseError,
    ChannelUnavailableError,
    MalformedCommandError,
    StorageUnavailableError,
)
from aquasense.models import ChannelMessage, MotorCommand, Reading, ReadingCommand
from aquasense.storage import MemoryBackend, ReadingStore, SqliteBackend

__all__ = [
    "__version__",
    "AgentSnapshot",
    "AquaSenseConfig",
    "AquaSenseConfigError",
    "AquaSenseError",
    "ChannelMessage",
    "ChannelUnavailableError",
    "ClientSyncAgent",
    "ConnectivityEvent",
    "ConnectivityState",
    "MalformedCommandError",
    "MemoryBackend",
    "MotorCommand",
    "MotorController",
    "Reading",
    "ReadingCommand",
    "ReadingStore",
    "ReconciliationBroadcaster",
    "SimulationEngine",
    "SqliteBackend",
    "StorageUnavailableError",
    "TankContext",
]
