# telelink/common/_csv_writer.py
from __future__ import annotations
from typing import Mapping, Tuple, Optional, TextIO
import os

class CsvSampleWriter:
    """
    Line-buffered CSV writer with fixed metric column order.

    Appends to an existing file; the header is written only when the file
    is empty.
    """
    def __init__(self, path: str, metrics: Tuple[str, ...]) -> None:
        self._path = os.fspath(path)
        self._metrics = tuple(metrics)
        self._f: Optional[TextIO] = None
        self._rows_written = 0
        self._open()

    def _open(self) -> None:
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        self._f = open(self._path, "a", buffering=1, encoding="utf-8", newline="")
        if self._f.tell() == 0:
            self._f.write(",".join(["idx", "ts_utc", "peer", *self._metrics]) + "\n")

    def close(self) -> None:
        f, self._f = self._f, None
        if f:
            try:
                f.flush()
            finally:
                f.close()

    @property
    def path(self) -> str: return self._path
    @property
    def rows_written(self) -> int: return self._rows_written

    def write(self, idx: int, ts_utc: str, peer: str, values: Mapping[str, float]) -> None:
        if not self._f:
            raise RuntimeError("CsvSampleWriter is closed")
        parts = [str(int(idx)), ts_utc, peer.replace(",", ";")]
        for name in self._metrics:
            v = values.get(name)
            parts.append("" if v is None else repr(float(v)))
        self._f.write(",".join(parts) + "\n")
        self._rows_written += 1
