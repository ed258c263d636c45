# telelink/app/sinks.py
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from threading import Lock
from typing import Optional, TextIO, Tuple

from telelink.app.display import CLEAR_SCREEN, render_sample
from telelink.common._csv_writer import CsvSampleWriter
from telelink.interfaces.sample_sink import SampleSink
from telelink.protocol.codec import MetricSample


class ConsoleDisplaySink(SampleSink):
    """Redraw the live telemetry panel on every sample."""

    def __init__(self, *, out: Optional[TextIO] = None, clear_screen: bool = True):
        self._out = out
        self._clear_screen = clear_screen

    def on_sample(self, peer: str, sample: MetricSample) -> None:
        out = self._out or sys.stdout
        text = render_sample(peer, sample)
        if self._clear_screen:
            text = CLEAR_SCREEN + text
        print(text, file=out, flush=True)

    def close(self) -> None:
        return None


class CsvRecordingSink(SampleSink):
    """
    Appends every sample as one CSV row.

    Columns are fixed when the sink is created; metrics missing from a
    sample are left empty, metrics not in the column set are ignored.
    """

    def __init__(
        self,
        path: str,
        *,
        metrics: Tuple[str, ...] = ("CPU", "MEM"),
        logger: Optional[logging.Logger] = None,
    ):
        self._writer: Optional[CsvSampleWriter] = CsvSampleWriter(path, metrics)
        self._log = logger or logging.getLogger(__name__)
        self._lock = Lock()
        self._idx = 0
        self._log.info("RECORDING_START path=%s metrics=%s", path, list(metrics))

    @property
    def path(self) -> str:
        return self._writer.path if self._writer else ""

    @property
    def rows_written(self) -> int:
        return self._idx

    def on_sample(self, peer: str, sample: MetricSample) -> None:
        ts_utc = datetime.now(timezone.utc).isoformat()
        with self._lock:
            if self._writer is None:
                return
            self._writer.write(self._idx, ts_utc, peer, sample)
            self._idx += 1

    def close(self) -> None:
        with self._lock:
            writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()
            self._log.info("RECORDING_STOP path=%s rows=%d", writer.path, writer.rows_written)
