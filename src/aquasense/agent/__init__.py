"""Client-side sync agent and its connectivity state machine."""

from aquasense.agent.connectivity import ConnectivityEvent, ConnectivityState, transition
from aquasense.agent.sync import AgentSnapshot, ClientSyncAgent
from aquasense.agent.transport import AgentTransport, HttpAgentTransport

__all__ = [
    "AgentSnapshot",
    "AgentTransport",
    "ClientSyncAgent",
    "ConnectivityEvent",
    "ConnectivityState",
    "HttpAgentTransport",
    "transition",
]
