# telelink/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ReconnectState(str, Enum):
    """
    Connection state of the telemetry producer.

    DISCONNECTED -> CONNECTED        first dial
    CONNECTED    -> RECONNECTING     send/flush failed
    RECONNECTING -> CONNECTED        backoff + one successful re-dial
    RECONNECTING -> FATAL            that re-dial failed
    """
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FATAL = "fatal"


@dataclass(frozen=True)
class ProducerStatus:
    """
    A snapshot of the producer, safe to hand to other threads.
    """
    state: ReconnectState
    peer: str
    messages_sent: int
    total_sent: int
    reconnects: int
    last_error: Optional[str] = None


@dataclass(frozen=True)
class SessionStats:
    """
    Outcome of one server-side session.

    close_reason is "peer_closed" or "io_error".
    """
    peer: str
    records: int
    malformed: int
    bytes_read: int
    close_reason: str
    last_error: Optional[str] = None
