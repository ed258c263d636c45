# telelink/transport/tcp.py
from __future__ import annotations

import socket
from typing import BinaryIO, Optional, Tuple

from telelink.core.errors import ConfigError

from .base import Transport
from .errors import TransportIOError, TransportOpenError


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split "host:port" (or "[v6-host]:port") into (host, port).
    """
    text = str(address).strip()
    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        raise ConfigError(
            f"Invalid address '{address}'.",
            hint="Use the form host:port, e.g. 127.0.0.1:8080.",
            details={"address": address},
        )

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_text)
    except ValueError:
        raise ConfigError(
            f"Invalid port in address '{address}'.",
            hint="The port must be an integer between 0 and 65535.",
            details={"address": address},
        ) from None

    if not 0 <= port <= 65535:
        raise ConfigError(
            f"Port out of range in address '{address}'.",
            hint="The port must be an integer between 0 and 65535.",
            details={"address": address, "port": port},
        )

    return host, port


class TCPTransport(Transport):
    """
    TCP stream transport.

    Outgoing bytes go through a buffered writer over the socket, so write()
    only queues and flush() is what hands the bytes to the kernel.
    read(n) blocks without timeout and returns b"" on orderly peer close.
    """

    def __init__(self, host: str, port: int, *, connect_timeout: Optional[float] = None):
        self.host = host
        self.port = int(port)
        self.connect_timeout = connect_timeout
        self.sock: Optional[socket.socket] = None
        self._wfile: Optional[BinaryIO] = None
        self._peer: str = f"{host}:{port}"

    @classmethod
    def from_address(cls, address: str, *, connect_timeout: Optional[float] = None) -> "TCPTransport":
        host, port = parse_address(address)
        return cls(host, port, connect_timeout=connect_timeout)

    @classmethod
    def from_socket(cls, sock: socket.socket, peer: Tuple[str, int] | str) -> "TCPTransport":
        """Wrap an already connected socket (e.g. one returned by accept())."""
        if isinstance(peer, tuple):
            host, port = peer[0], peer[1]
        else:
            host, port = parse_address(peer)
        t = cls(host, port)
        t._attach(sock)
        return t

    @property
    def peer(self) -> str:
        return self._peer

    def open(self) -> None:
        if self.sock is not None:
            return
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        except OSError as e:
            raise TransportOpenError(f"connect to {self._peer} failed: {e}") from None

        # The connect timeout must not leak into stream I/O.
        sock.settimeout(None)
        self._attach(sock)

    def _attach(self, sock: socket.socket) -> None:
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError:
            pass
        self.sock = sock
        self._wfile = sock.makefile("wb")

    def close(self) -> None:
        wfile, self._wfile = self._wfile, None
        sock, self.sock = self.sock, None

        if wfile is not None:
            try:
                wfile.close()
            except OSError:
                # pending bytes on a dead connection are discarded
                pass
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass

    def is_open(self) -> bool:
        return self.sock is not None

    def read(self, n: int) -> bytes:
        if self.sock is None:
            raise TransportIOError("read while transport not open")

        try:
            return self.sock.recv(n)
        except OSError as e:
            raise TransportIOError(f"TCP read from {self._peer} failed: {e}") from None

    def write(self, data: bytes) -> int:
        if self._wfile is None:
            raise TransportIOError("write while transport not open")

        try:
            self._wfile.write(data)
        except OSError as e:
            raise TransportIOError(f"TCP write to {self._peer} failed: {e}") from None
        return len(data)

    def flush(self) -> None:
        if self._wfile is None:
            raise TransportIOError("flush while transport not open")

        try:
            self._wfile.flush()
        except OSError as e:
            raise TransportIOError(f"TCP flush to {self._peer} failed: {e}") from None

    def __repr__(self) -> str:
        state = "open" if self.sock is not None else "closed"
        return f"TCPTransport(peer='{self._peer}', {state})"
