"""Client connectivity state machine.

Transport callbacks are reduced to :class:`ConnectivityEvent` values and
fed through :func:`transition`, a pure function, so every state change can
be tested without a network.
"""

from __future__ import annotations

from enum import StrEnum


class ConnectivityState(StrEnum):
    CONNECTING = "connecting"
    LIVE = "live"
    OFFLINE_SIMULATED = "offline_simulated"


class ConnectivityEvent(StrEnum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    CONNECT_ERROR = "connect_error"
    GRACE_EXPIRED = "grace_expired"
    BOOTSTRAP_FAILED = "bootstrap_failed"


def transition(state: ConnectivityState, event: ConnectivityEvent) -> ConnectivityState:
    """Next connectivity state.

    - A connection always means ``LIVE``.
    - Losing (or failing to open) the channel drops ``LIVE`` back to
      ``CONNECTING``; the grace timer decides when to give up.
    - The grace timer only acts while still ``CONNECTING``.
    - A failed history bootstrap goes offline at once unless the channel
      is already up.
    """
    if event is ConnectivityEvent.CONNECTED:
        return ConnectivityState.LIVE

    if event in (ConnectivityEvent.DISCONNECTED, ConnectivityEvent.CONNECT_ERROR):
        if state is ConnectivityState.LIVE:
            return ConnectivityState.CONNECTING
        return state

    if event is ConnectivityEvent.GRACE_EXPIRED:
        if state is ConnectivityState.CONNECTING:
            return ConnectivityState.OFFLINE_SIMULATED
        return state

    if event is ConnectivityEvent.BOOTSTRAP_FAILED:
        if state is ConnectivityState.LIVE:
            return state
        return ConnectivityState.OFFLINE_SIMULATED

    return state
