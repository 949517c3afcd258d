"""Back-pressure gate that holds off local-model work under sustained load."""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from assetroute.config.models import ThermalSettings

LOGGER = logging.getLogger(__name__)


def load_per_cpu() -> Optional[float]:
    """Return the 1-minute load average divided by the CPU count, if available."""
    try:
        one_minute, _, _ = os.getloadavg()
    except (AttributeError, OSError):
        return None
    return one_minute / (os.cpu_count() or 1)


class ThermalGate:
    """Deny local-model tiers after ``sustain_samples`` consecutive pressured samples.

    A single unpressured sample clears the streak. Denial never cancels work
    that is already running.
    """

    def __init__(
        self,
        settings: ThermalSettings,
        *,
        sampler: Callable[[], Optional[float]] = load_per_cpu,
    ) -> None:
        self._settings = settings
        self._sampler = sampler
        self._streak = 0

    @property
    def pressured_samples(self) -> int:
        return self._streak

    def allow(self) -> bool:
        """Take a load sample and report whether local-model work may start."""
        if not self._settings.enabled:
            return True
        reading = self._sampler()
        if reading is not None and reading >= self._settings.load_threshold:
            self._streak += 1
        else:
            self._streak = 0
        if self._streak >= self._settings.sustain_samples:
            LOGGER.info("Skipping local model under sustained load (%.2f)", reading or 0.0)
            return False
        return True

    def reset(self) -> None:
        self._streak = 0


__all__ = ["ThermalGate", "load_per_cpu"]
