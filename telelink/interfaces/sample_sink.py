# telelink/interfaces/sample_sink.py
from typing import Protocol

from telelink.protocol.codec import MetricSample


class SampleSink(Protocol):
    def on_sample(self, peer: str, sample: MetricSample) -> None: ...
    def close(self) -> None: ...
