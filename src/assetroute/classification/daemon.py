"""Client for the local classification daemon on the loopback interface."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from assetroute.config.models import DaemonSettings

from .models import ClassificationResult

LOGGER = logging.getLogger(__name__)

STRATEGY_NAME = "daemon"


@dataclass(slots=True)
class DaemonStatus:
    """Health report returned by ``GET /health``."""

    running: bool
    model_loaded: bool = False
    model_loading: bool = False
    error: Optional[str] = None


@dataclass(slots=True)
class HealthCache:
    """Last daemon health check and when it was taken.

    A stale read only costs one extra check, so the cache is not locked.
    """

    last_check: Optional[float] = None
    cached_state: bool = False

    def is_fresh(self, now: float, window: float) -> bool:
        return self.last_check is not None and now - self.last_check < window

    def store(self, state: bool, now: float) -> None:
        self.cached_state = state
        self.last_check = now

    def invalidate(self) -> None:
        self.cached_state = False
        self.last_check = None


class DaemonClient:
    """Talk to the daemon's ``/health`` and ``/classify`` endpoints.

    Every failure is converted into an Unknown result; nothing raises.
    """

    def __init__(
        self,
        settings: DaemonSettings,
        *,
        session: Optional[requests.Session] = None,
        health_cache: Optional[HealthCache] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._cache = health_cache or HealthCache()
        self._clock = clock

    @property
    def base_url(self) -> str:
        return f"http://{self._settings.host}:{self._settings.port}"

    @property
    def health_cache(self) -> HealthCache:
        return self._cache

    def check_health(self) -> DaemonStatus:
        """Query ``/health`` once, bypassing the cache."""
        try:
            response = self._session.get(
                f"{self.base_url}/health", timeout=self._settings.health_timeout_seconds
            )
        except requests.RequestException as exc:
            return DaemonStatus(running=False, error=str(exc))
        if response.status_code != 200:
            return DaemonStatus(running=False, error=f"HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError:
            return DaemonStatus(running=True)
        if not isinstance(data, dict):
            return DaemonStatus(running=True)
        return DaemonStatus(
            running=True,
            model_loaded=bool(data.get("model_loaded", False)),
            model_loading=bool(data.get("model_loading", False)),
            error=data.get("error") if isinstance(data.get("error"), str) else None,
        )

    def is_available(self) -> bool:
        """Return the cached health state, probing when the cache has expired."""
        now = self._clock()
        if self._cache.is_fresh(now, self._settings.health_cache_seconds):
            return self._cache.cached_state
        status = self.check_health()
        self._cache.store(status.running, self._clock())
        if not status.running:
            LOGGER.debug("Classification daemon unavailable: %s", status.error)
        return status.running

    def classify(self, filename: str, metadata: Optional[Mapping[str, Any]] = None) -> ClassificationResult:
        """Send one ``/classify`` request.

        Args:
            filename: Asset filename.
            metadata: Bounded metadata payload; omitted when empty.

        Returns:
            ClassificationResult: Parsed response, or Unknown with ``error`` set.
        """
        body: Dict[str, Any] = {"filename": filename, "max_tokens": self._settings.max_tokens}
        if metadata:
            body["metadata"] = dict(metadata)
        try:
            response = self._session.post(
                f"{self.base_url}/classify",
                json=body,
                timeout=self._settings.classify_timeout_seconds,
            )
        except requests.RequestException as exc:
            self._cache.invalidate()
            LOGGER.info("Daemon request failed, health cache reset: %s", exc)
            return ClassificationResult.unknown(str(exc), strategy=STRATEGY_NAME)

        if response.status_code != 200:
            return ClassificationResult.unknown(f"HTTP {response.status_code}", strategy=STRATEGY_NAME)
        try:
            data = response.json()
        except ValueError:
            return ClassificationResult.unknown("Parse error", strategy=STRATEGY_NAME)
        if not isinstance(data, dict):
            return ClassificationResult.unknown("Parse error", strategy=STRATEGY_NAME)
        return ClassificationResult.from_payload(data, strategy=STRATEGY_NAME)


__all__ = ["DaemonClient", "DaemonStatus", "HealthCache", "STRATEGY_NAME"]
