# telelink/server/acceptor.py
from __future__ import annotations

import logging
import socket
import threading
from typing import Any, Callable, Optional, Tuple

from telelink.core.errors import ServerBindError
from telelink.transport.base import Transport
from telelink.transport.tcp import TCPTransport, parse_address

SessionRunner = Callable[[Transport, str], Any]


class ConnectionAcceptor:
    """
    Listening socket that serves one connection at a time.

    serve_forever() accepts a connection, hands it to `run_session` and only
    accepts the next one after that call returns. A failed accept() is logged
    and the loop carries on; close() ends the loop.
    """

    def __init__(
        self,
        address: str,
        *,
        run_session: SessionRunner,
        backlog: int = 1,
        logger: Optional[logging.Logger] = None,
    ):
        self.address = address
        self._run_session = run_session
        self._backlog = int(backlog)
        self._log = logger or logging.getLogger(__name__)

        self._listener: Optional[socket.socket] = None
        self._stop_event = threading.Event()
        self.sessions_served = 0

    @property
    def is_bound(self) -> bool:
        return self._listener is not None

    @property
    def bound_address(self) -> Tuple[str, int]:
        if self._listener is None:
            raise RuntimeError("ConnectionAcceptor not bound")
        host, port = self._listener.getsockname()[:2]
        return host, port

    def bind(self) -> None:
        if self._listener is not None:
            return

        host, port = parse_address(self.address)
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        try:
            self._listener = socket.create_server((host, port), family=family, backlog=self._backlog)
        except OSError as e:
            self._log.error("BIND_FAILED address=%s err=%s", self.address, e)
            raise ServerBindError(
                f"Could not listen on {self.address}.",
                hint=str(e),
                details={"address": self.address},
            ) from None

        self._stop_event.clear()
        bound_host, bound_port = self.bound_address
        self._log.info("LISTENING address=%s:%d", bound_host, bound_port)

    def accept_once(self) -> bool:
        """
        Accept and fully serve one connection.

        Returns False once the acceptor has been closed, True otherwise
        (including after a failed accept).
        """
        listener = self._listener
        if listener is None or self._stop_event.is_set():
            return False

        try:
            conn, addr = listener.accept()
        except OSError as e:
            if self._stop_event.is_set():
                return False
            self._log.error("ACCEPT_FAILED err=%s", e)
            self._stop_event.wait(0.05)
            return True

        transport = TCPTransport.from_socket(conn, addr)
        peer = transport.peer
        self._log.info("CLIENT_CONNECTED peer=%s", peer)

        try:
            self._run_session(transport, peer)
        except Exception:
            self._log.exception("SESSION_FAILED peer=%s", peer)
            transport.close()
        finally:
            self.sessions_served += 1

        self._log.info("WAITING_FOR_CONNECTION")
        return True

    def serve_forever(self) -> None:
        self.bind()
        while self.accept_once():
            pass
        self._log.info("ACCEPT_LOOP_STOPPED")

    def close(self) -> None:
        self._stop_event.set()
        listener, self._listener = self._listener, None
        if listener is None:
            return
        try:
            # wakes a thread blocked in accept()
            listener.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            listener.close()
        except OSError:
            self._log.exception("Failed to close listener")

    def __enter__(self) -> "ConnectionAcceptor":
        self.bind()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
