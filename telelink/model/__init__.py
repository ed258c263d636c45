from .metrics import MetricRegistry, MetricSource, default_registry
from .sampler import HardwareSampler

__all__ = ["MetricRegistry",
           "MetricSource",
           "default_registry",
           "HardwareSampler"]
