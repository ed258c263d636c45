from __future__ import annotations

import logging
from typing import Iterator, Optional

from .codec import TERMINATOR

DEFAULT_MAX_LINE_BYTES = 64 * 1024


class LineFramer:
    """
    Reassembles newline-terminated records from arbitrary byte chunks.

    Bytes are appended with feed(); get_line() hands back one complete line
    (terminator stripped) at a time, or None until more bytes arrive. A line
    growing past max_line_bytes is dropped up to its terminator.
    """

    def __init__(
        self,
        *,
        max_line_bytes: Optional[int] = DEFAULT_MAX_LINE_BYTES,
        logger: Optional[logging.Logger] = None,
    ):
        self.buffer = bytearray()
        self.max_line_bytes = max_line_bytes if (max_line_bytes is None or max_line_bytes > 0) else None
        self.overflows = 0
        self._discarding = False
        self._log = logger or logging.getLogger(__name__)

    # ---------------- Public API ----------------
    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet returned as a line."""
        return len(self.buffer)

    def feed(self, data: bytes) -> None:
        self.buffer.extend(data)
        self._log.debug("Framer fed %d bytes, buffer_len=%d", len(data), len(self.buffer))

    def get_line(self) -> Optional[bytes]:
        while True:
            idx = self.buffer.find(TERMINATOR)
            if idx < 0:
                self._check_overflow()
                return None

            line = bytes(self.buffer[:idx])
            del self.buffer[: idx + len(TERMINATOR)]

            if self._discarding:
                # tail of an oversized line
                self._discarding = False
                continue

            if self.max_line_bytes is not None and len(line) > self.max_line_bytes:
                self._record_overflow(len(line))
                continue

            return line

    def lines(self) -> Iterator[bytes]:
        """Yield every complete line currently buffered."""
        while True:
            line = self.get_line()
            if line is None:
                return
            yield line

    def drain(self) -> Optional[bytes]:
        """Return and clear an unterminated remainder, if any."""
        rest = bytes(self.buffer)
        self.buffer.clear()
        discarding, self._discarding = self._discarding, False
        if discarding or not rest:
            return None
        return rest

    # ---------------- Helpers ----------------
    def _check_overflow(self) -> None:
        if self.max_line_bytes is None or len(self.buffer) <= self.max_line_bytes:
            return
        if not self._discarding:
            self._record_overflow(len(self.buffer))
            self._discarding = True
        self.buffer.clear()

    def _record_overflow(self, size: int) -> None:
        self.overflows += 1
        self._log.warning(
            "LINE_TOO_LONG size>=%d max=%d, discarding until next terminator",
            size,
            self.max_line_bytes,
        )
