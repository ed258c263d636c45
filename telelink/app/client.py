# telelink/app/client.py
from __future__ import annotations

import logging
from typing import Optional

from telelink.app.config import ClientConfig
from telelink.model.metrics import MetricRegistry, default_registry
from telelink.runtime.producer import TelemetryProducer


def build_producer(
    config: ClientConfig,
    *,
    registry: Optional[MetricRegistry] = None,
    logger: Optional[logging.Logger] = None,
) -> TelemetryProducer:
    """Wire the psutil-backed registry, restricted to the configured metrics, into a producer."""
    log = logger or logging.getLogger(__name__)
    registry = (registry or default_registry(logger=log)).select(config.metrics)
    return TelemetryProducer(config, registry=registry, logger=log)
