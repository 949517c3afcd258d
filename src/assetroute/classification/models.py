"""Models shared by the classification strategies."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict


class AssetCategory(str, Enum):
    """Asset kinds understood by the router."""

    MUSIC = "Music"
    SFX = "SFX"
    VOICE_OVER = "VoiceOver"
    MOTION_GRAPHIC = "MotionGraphic"
    GRAPHIC = "Graphic"
    STOCK_FOOTAGE = "StockFootage"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, text: str | None) -> Optional["AssetCategory"]:
        """Return the category for a backend spelling, or None when unrecognised."""
        if text is None:
            return None
        return _CATEGORY_ALIASES.get(text.strip().lower())

    @property
    def is_known(self) -> bool:
        return self is not AssetCategory.UNKNOWN


_CATEGORY_ALIASES = {
    "music": AssetCategory.MUSIC,
    "sfx": AssetCategory.SFX,
    "vo": AssetCategory.VOICE_OVER,
    "voice": AssetCategory.VOICE_OVER,
    "voiceover": AssetCategory.VOICE_OVER,
    "voice-over": AssetCategory.VOICE_OVER,
    "motiongraphic": AssetCategory.MOTION_GRAPHIC,
    "motion graphic": AssetCategory.MOTION_GRAPHIC,
    "motion-graphic": AssetCategory.MOTION_GRAPHIC,
    "graphic": AssetCategory.GRAPHIC,
    "stockfootage": AssetCategory.STOCK_FOOTAGE,
    "stock footage": AssetCategory.STOCK_FOOTAGE,
    "stock-footage": AssetCategory.STOCK_FOOTAGE,
    "unknown": AssetCategory.UNKNOWN,
}


class Confidence(str, Enum):
    """How certain a rule-based strategy is about its category."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DetectedSource(str, Enum):
    """Stock site or downloader an asset came from."""

    EPIDEMIC_SOUND = "Epidemic Sound"
    ARTLIST = "Artlist"
    FREESOUND = "Freesound"
    ADOBE_STOCK = "Adobe Stock"
    SHUTTERSTOCK = "Shutterstock"
    ISTOCK = "iStock"
    GETTY_IMAGES = "Getty Images"
    POND5 = "Pond5"
    DEPOSITPHOTOS = "Depositphotos"
    YOUTUBE_4K = "YouTube 4K"
    UNKNOWN = "Unknown"


class ClassificationResult(BaseModel):
    """Outcome of one classification attempt.

    Attributes:
        category: Predicted asset category.
        genre: Predicted music genre.
        mood: Predicted music mood.
        sfx_category: Predicted sound-effect category.
        confidence: Certainty reported by rule-based strategies.
        error: Error reported by a model backend.
        processing_time_ms: Backend latency when reported.
        strategy: Name of the strategy that decided the category.
        source: Detected origin site.
    """

    model_config = ConfigDict(extra="forbid")

    category: AssetCategory = AssetCategory.UNKNOWN
    genre: Optional[str] = None
    mood: Optional[str] = None
    sfx_category: Optional[str] = None
    confidence: Optional[Confidence] = None
    error: Optional[str] = None
    processing_time_ms: Optional[int] = None
    strategy: Optional[str] = None
    source: DetectedSource = DetectedSource.UNKNOWN

    @classmethod
    def unknown(cls, error: str | None = None, *, strategy: str | None = None) -> "ClassificationResult":
        return cls(error=error, strategy=strategy)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], *, strategy: str | None = None) -> "ClassificationResult":
        """Build a result from daemon or classifier-script JSON.

        Unrecognised ``assetType`` values map to Unknown. Non-string genre and
        mood values are ignored.
        """
        category = AssetCategory.parse(_as_text(payload.get("assetType"))) or AssetCategory.UNKNOWN
        latency = payload.get("processing_time_ms")
        return cls(
            category=category,
            genre=_as_text(payload.get("genre")),
            mood=_as_text(payload.get("mood")),
            sfx_category=_as_text(payload.get("sfxCategory")),
            error=_as_text(payload.get("error")),
            processing_time_ms=int(latency) if isinstance(latency, (int, float)) else None,
            strategy=strategy,
        )


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = ["AssetCategory", "Confidence", "DetectedSource", "ClassificationResult"]
