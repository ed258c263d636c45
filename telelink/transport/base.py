from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """
    Abstract duplex byte-stream transport.

    Contract:
      - open()/close() manage the underlying connection. A closed transport is
        never reopened by its owner; a fresh instance replaces it.
      - read(n) blocks until 1..n bytes are available and returns them.
        It returns b"" only when the peer closed the stream.
      - write(data) queues all of data and returns the number of bytes accepted.
      - flush() pushes queued output to the operating system. Once it returns,
        the peer can observe the bytes without further action by the sender.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def read(self, n: int) -> bytes: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    @abstractmethod
    def flush(self) -> None: ...

    def send(self, data: bytes) -> None:
        """Write and flush in one step."""
        self.write(data)
        self.flush()

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
