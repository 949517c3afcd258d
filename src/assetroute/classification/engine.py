"""Ordered classification chain.

The chain runs a fixed tuple of strategies: a rule-based heuristic, provider
detection with captured stock metadata, the local daemon, and a one-shot
classifier process. Later tiers only run when earlier ones left the category
or its genre/mood undecided, and no tier failure ever escapes the chain.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from assetroute.config.models import ClassificationSettings
from assetroute.ingestion import AssetMetadata, MetadataExtractor

from . import daemon as daemon_tier
from . import heuristics
from . import local_model
from . import sources
from .daemon import DaemonClient
from .heuristics import HeuristicClassifier
from .local_model import SubprocessClassifier
from .models import AssetCategory, ClassificationResult, Confidence, DetectedSource
from .sources import SourceDetector
from .stock_cache import StockMetadataCache
from .thermal import ThermalGate
from .vocabulary import guess_genre_mood

LOGGER = logging.getLogger(__name__)


@dataclass
class _ChainState:
    path: Path
    metadata: AssetMetadata
    origin_url: Optional[str]
    full_detail: bool
    category: AssetCategory = AssetCategory.UNKNOWN
    confidence: Optional[Confidence] = None
    strategy: Optional[str] = None
    genre: Optional[str] = None
    mood: Optional[str] = None
    sfx_category: Optional[str] = None
    source: DetectedSource = DetectedSource.UNKNOWN
    processing_time_ms: Optional[int] = None
    local_allowed: Optional[bool] = None
    local_answered: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def settled(self) -> bool:
        return self.category.is_known and self.confidence in (Confidence.HIGH, Confidence.MEDIUM)

    @property
    def missing_detail(self) -> bool:
        if self.category is AssetCategory.MUSIC:
            return self.genre is None or self.mood is None
        if self.category is AssetCategory.SFX:
            return self.sfx_category is None
        return False


Strategy = Callable[[_ChainState], Awaitable[Optional[ClassificationResult]]]


class ClassificationEngine:
    """Classify assets by running the strategy chain in a fixed order."""

    def __init__(
        self,
        settings: ClassificationSettings,
        *,
        youtube_4k_folder: Optional[Path] = None,
        extractor: Optional[MetadataExtractor] = None,
        heuristic: Optional[HeuristicClassifier] = None,
        detector: Optional[SourceDetector] = None,
        daemon: Optional[DaemonClient] = None,
        subprocess_classifier: Optional[SubprocessClassifier] = None,
        thermal: Optional[ThermalGate] = None,
    ) -> None:
        self._settings = settings
        self._extractor = extractor or MetadataExtractor()
        self._heuristic = heuristic or HeuristicClassifier()
        self._detector = detector or SourceDetector(
            youtube_4k_folder=youtube_4k_folder,
            stock_cache=StockMetadataCache(Path(settings.stock_metadata_cache)),
        )
        self._daemon = daemon or DaemonClient(settings.daemon)
        self._subprocess = subprocess_classifier or SubprocessClassifier(
            settings.subprocess, max_tokens=settings.daemon.max_tokens
        )
        self._thermal = thermal or ThermalGate(settings.thermal)
        self._strategies: Tuple[Tuple[str, Strategy], ...] = (
            (heuristics.STRATEGY_NAME, self._run_heuristic),
            (sources.STRATEGY_NAME, self._run_web_enrichment),
            (daemon_tier.STRATEGY_NAME, self._run_daemon),
            (local_model.STRATEGY_NAME, self._run_subprocess),
        )

    @property
    def strategy_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self._strategies)

    async def classify(
        self,
        path: Path,
        metadata: Optional[AssetMetadata] = None,
        origin_url: Optional[str] = None,
        *,
        full_detail: bool = False,
    ) -> ClassificationResult:
        """Classify one asset.

        Args:
            path: File or folder to classify.
            metadata: Pre-extracted descriptor; extracted from ``path`` when omitted.
            origin_url: Page or download URL of the asset.
            full_detail: Keep querying model tiers for genre/mood even when the
                category is already certain.

        Returns:
            ClassificationResult: Category and sub-category; Unknown when no
            tier could decide.
        """
        if metadata is None:
            metadata = self._extractor.extract(path, origin_url=origin_url)
        state = _ChainState(
            path=path,
            metadata=metadata,
            origin_url=origin_url or metadata.origin_url,
            full_detail=full_detail,
        )

        for name, strategy in self._strategies:
            try:
                result = await strategy(state)
            except Exception:
                LOGGER.exception("Classification strategy %s failed for %s", name, path.name)
                continue
            if result is not None:
                self._merge(name, result, state)

        return self._finalize(state)

    # ------------------------------------------------------------------ #
    # Strategies

    async def _run_heuristic(self, state: _ChainState) -> Optional[ClassificationResult]:
        return self._heuristic.classify(state.metadata, state.path, state.origin_url)

    async def _run_web_enrichment(self, state: _ChainState) -> Optional[ClassificationResult]:
        if not self._settings.web_enrichment or state.metadata.is_directory:
            return None
        detection = self._detector.enrich(state.path, state.metadata, state.origin_url)
        if detection.origin_url and not state.origin_url:
            state.origin_url = detection.origin_url
        return ClassificationResult(
            category=detection.category or AssetCategory.UNKNOWN,
            confidence=detection.confidence,
            genre=detection.genre,
            mood=detection.mood,
            sfx_category=detection.sfx_category,
            source=detection.source,
            strategy=sources.STRATEGY_NAME,
        )

    async def _run_daemon(self, state: _ChainState) -> Optional[ClassificationResult]:
        if not self._wants_local_model(state):
            return None
        available = await asyncio.to_thread(self._daemon.is_available)
        if not available:
            return None
        return await asyncio.to_thread(
            self._daemon.classify, state.metadata.filename, self._payload(state)
        )

    async def _run_subprocess(self, state: _ChainState) -> Optional[ClassificationResult]:
        if state.local_answered or not self._wants_local_model(state):
            return None
        return await self._subprocess.classify(state.metadata.filename, self._payload(state))

    # ------------------------------------------------------------------ #
    # Internal helpers

    def _wants_local_model(self, state: _ChainState) -> bool:
        if not self._settings.use_local_model:
            return False
        if state.settled:
            if not state.missing_detail:
                return False
            if state.confidence is Confidence.HIGH and not state.full_detail:
                return False
            if not (state.full_detail or self._settings.genre_mood_detection):
                return False
        if state.local_allowed is None:
            state.local_allowed = self._thermal.allow()
        return state.local_allowed

    def _payload(self, state: _ChainState) -> Dict[str, Any]:
        payload = state.metadata.to_payload(self._settings.daemon.max_tags)
        if state.origin_url:
            payload["originUrl"] = state.origin_url
        return payload

    def _merge(self, name: str, result: ClassificationResult, state: _ChainState) -> None:
        if name == heuristics.STRATEGY_NAME:
            state.category = result.category
            state.confidence = result.confidence
            state.strategy = name
            return

        if name == sources.STRATEGY_NAME:
            state.source = result.source
            if self._settings.genre_mood_detection:
                self._fill_detail(state, result)
            decisive = result.category.is_known and result.confidence is Confidence.HIGH
            if decisive and state.confidence is not Confidence.HIGH:
                state.category = result.category
                state.confidence = Confidence.HIGH
                state.strategy = name
            return

        if result.error or not result.category.is_known:
            if result.error:
                state.errors.append(f"{name}: {result.error}")
            return

        state.local_answered = True
        state.processing_time_ms = result.processing_time_ms
        if not state.settled:
            state.category = result.category
            state.strategy = name
        if self._settings.genre_mood_detection or state.full_detail:
            self._fill_detail(state, result)

    @staticmethod
    def _fill_detail(state: _ChainState, result: ClassificationResult) -> None:
        state.genre = state.genre or result.genre
        state.mood = state.mood or result.mood
        state.sfx_category = state.sfx_category or result.sfx_category

    def _finalize(self, state: _ChainState) -> ClassificationResult:
        if (
            self._settings.genre_mood_detection
            and state.category is AssetCategory.MUSIC
            and (state.genre is None or state.mood is None)
        ):
            guessed_genre, guessed_mood = guess_genre_mood(state.metadata.stem)
            state.genre = state.genre or guessed_genre
            state.mood = state.mood or guessed_mood

        error = state.errors[-1] if state.errors and not state.category.is_known else None
        LOGGER.info(
            "Classified %s as %s via %s",
            state.metadata.filename,
            state.category.value,
            state.strategy or "none",
        )
        return ClassificationResult(
            category=state.category,
            genre=state.genre,
            mood=state.mood,
            sfx_category=state.sfx_category,
            confidence=state.confidence,
            error=error,
            processing_time_ms=state.processing_time_ms,
            strategy=state.strategy,
            source=state.source,
        )


__all__ = ["ClassificationEngine"]
