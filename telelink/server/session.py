# telelink/server/session.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from telelink.core.errors import MalformedRecordError
from telelink.interfaces.sample_sink import SampleSink
from telelink.protocol.codec import decode_record
from telelink.protocol.framing import DEFAULT_MAX_LINE_BYTES, LineFramer
from telelink.runtime.state import SessionStats
from telelink.transport.base import Transport
from telelink.transport.errors import TransportError

DEFAULT_READ_SIZE = 4096


class SessionHandler:
    """
    Reads one connection to the end, decoding every line it carries.

    Each decoded sample is forwarded to the sinks in stream order. Malformed
    lines are logged and skipped; blank lines are skipped silently. The
    session ends on orderly peer close or on a transport error, and always
    releases its connection.
    """

    def __init__(
        self,
        transport: Transport,
        peer: str,
        *,
        sinks: Iterable[SampleSink] = (),
        read_size: int = DEFAULT_READ_SIZE,
        max_line_bytes: Optional[int] = DEFAULT_MAX_LINE_BYTES,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.peer = peer
        self._sinks: List[SampleSink] = list(sinks)
        self._read_size = int(read_size)
        self._log = logger or logging.getLogger(__name__)
        self._framer = LineFramer(max_line_bytes=max_line_bytes, logger=self._log)

        self._records = 0
        self._malformed = 0
        self._bytes_read = 0

    def run(self) -> SessionStats:
        self._log.info("SESSION_START peer=%s", self.peer)
        close_reason = "peer_closed"
        last_error: Optional[str] = None

        try:
            while True:
                try:
                    data = self.transport.read(self._read_size)
                except TransportError as e:
                    close_reason = "io_error"
                    last_error = str(e)
                    self._log.error("SESSION_READ_FAILED peer=%s err=%s", self.peer, e)
                    break

                if not data:
                    rest = self._framer.drain()
                    if rest is not None:
                        self._handle_line(rest)
                    self._log.info("CLIENT_DISCONNECTED peer=%s", self.peer)
                    break

                self._bytes_read += len(data)
                self._framer.feed(data)
                for line in self._framer.lines():
                    self._handle_line(line)
        finally:
            try:
                self.transport.close()
            except Exception:
                self._log.exception("Failed to close session transport")

        stats = SessionStats(
            peer=self.peer,
            records=self._records,
            malformed=self._malformed,
            bytes_read=self._bytes_read,
            close_reason=close_reason,
            last_error=last_error,
        )
        self._log.info(
            "SESSION_END peer=%s reason=%s records=%d malformed=%d bytes=%d",
            self.peer,
            stats.close_reason,
            stats.records,
            stats.malformed,
            stats.bytes_read,
        )
        return stats

    def _handle_line(self, line: bytes) -> None:
        try:
            sample = decode_record(line)
        except MalformedRecordError as e:
            self._malformed += 1
            self._log.warning(
                "MALFORMED_RECORD peer=%s err=%s hint=%s data=%r",
                self.peer,
                e.message,
                e.hint,
                line[:128],
            )
            return

        if not sample and not line.strip():
            self._log.debug("BLANK_LINE_SKIPPED peer=%s", self.peer)
            return

        self._records += 1
        for s in list(self._sinks):
            try:
                s.on_sample(self.peer, sample)
            except Exception:
                self._log.exception("SINK_ON_SAMPLE_ERROR peer=%s", self.peer)
