# telelink/model/metrics.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from telelink.core.errors import ConfigError
from telelink.protocol.codec import MetricSample

from .sampler import HardwareSampler

SampleFn = Callable[[], float]


@dataclass(frozen=True)
class MetricSource:
    """
    One named metric and the function that reads it.

    Attributes:
        name: Key used on the wire (e.g. "CPU").
        read: Zero-argument callable returning the current value.
        unit: Display hint only ("%", "KB", ...).
    """
    name: str
    read: SampleFn
    unit: str = ""


class MetricRegistry:
    """
    Ordered registry of metric sources.

    sample() reads every source once, in registration order. A source that
    raises or returns a non-finite value contributes 0.0 to the sample.
    """

    def __init__(self, sources: Iterable[MetricSource] = (), *, logger: Optional[logging.Logger] = None):
        self._sources: Dict[str, MetricSource] = {}
        self._log = logger or logging.getLogger(__name__)
        for src in sources:
            self.register(src)

    def register(self, source: MetricSource) -> None:
        if source.name in self._sources:
            raise ValueError(f"Metric '{source.name}' already registered")
        self._sources[source.name] = source

    def names(self) -> Tuple[str, ...]:
        return tuple(self._sources.keys())

    def sources(self) -> List[MetricSource]:
        return list(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def select(self, names: Iterable[str]) -> "MetricRegistry":
        """Return a registry restricted to `names`, in the order given."""
        picked: List[MetricSource] = []
        for name in names:
            if any(p.name == name for p in picked):
                raise ConfigError(
                    f"Metric '{name}' listed more than once.",
                    hint="Name each metric once.",
                    details={"metric": name},
                )
            src = self._sources.get(name)
            if src is None:
                raise ConfigError(
                    f"Unknown metric '{name}'.",
                    hint=f"Available metrics: {list(self._sources.keys())}",
                    details={"metric": name},
                )
            picked.append(src)
        return MetricRegistry(picked, logger=self._log)

    def sample(self) -> MetricSample:
        out: MetricSample = {}
        for src in self._sources.values():
            try:
                value = float(src.read())
            except Exception:
                self._log.warning("METRIC_READ_FAILED metric=%s", src.name, exc_info=True)
                value = 0.0
            if not math.isfinite(value):
                self._log.warning("METRIC_NOT_FINITE metric=%s value=%r", src.name, value)
                value = 0.0
            out[src.name] = value
        return out


def default_registry(
    sampler: Optional[HardwareSampler] = None,
    *,
    logger: Optional[logging.Logger] = None,
) -> MetricRegistry:
    """CPU then MEM, backed by the psutil hardware sampler."""
    sampler = sampler or HardwareSampler(logger=logger)
    return MetricRegistry(
        [
            MetricSource("CPU", sampler.sample_cpu_percent, unit="%"),
            MetricSource("MEM", sampler.sample_memory_kb, unit="KB"),
        ],
        logger=logger,
    )
