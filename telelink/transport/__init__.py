from .base import Transport
from .errors import TransportError, TransportOpenError, TransportIOError
from .tcp import TCPTransport, parse_address

__all__ = [
    "Transport",
    "TCPTransport",
    "parse_address",
    "TransportError",
    "TransportOpenError",
    "TransportIOError",
]
