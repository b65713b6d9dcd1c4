"""
Observer connection status.

Observer connections (WebSocket clients) come and go independently of the
voice session. Their status is tracked by SessionGateway, never by the
controller state.
"""
from enum import Enum


class ConnectionStatus(Enum):
    """
    Lifecycle of one observer connection.

    Any SessionState can occur with any ConnectionStatus.
    """
    UP = "UP"        # Receiving snapshots
    DOWN = "DOWN"    # Unsubscribed; no further snapshots
