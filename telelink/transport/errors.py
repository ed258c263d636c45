# telelink/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Socket-level failure; translated to a TelemetryError by its caller."""


class TransportOpenError(TransportError):
    """Dialing the peer failed (refused, unreachable, timed out)."""


class TransportIOError(TransportError):
    """A read, write or flush on an established connection failed."""
