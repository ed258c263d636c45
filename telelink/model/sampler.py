# telelink/model/sampler.py
from __future__ import annotations

import logging
from typing import Optional

import psutil


class HardwareSampler:
    """
    Reads host metrics through psutil.

    Both readings absorb failures and return 0.0 instead of raising.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        # psutil measures CPU between calls; the first call always reports 0.0
        try:
            psutil.cpu_percent(interval=None)
        except Exception:
            self._log.warning("CPU_SAMPLER_PRIME_FAILED", exc_info=True)

    def sample_cpu_percent(self) -> float:
        """Aggregate utilisation over all CPUs since the previous call, 0..100."""
        try:
            return float(psutil.cpu_percent(interval=None))
        except Exception:
            self._log.warning("CPU_SAMPLE_FAILED", exc_info=True)
            return 0.0

    def sample_memory_kb(self) -> float:
        """Used physical memory in kilobytes."""
        try:
            return float(psutil.virtual_memory().used) / 1024.0
        except Exception:
            self._log.warning("MEM_SAMPLE_FAILED", exc_info=True)
            return 0.0
