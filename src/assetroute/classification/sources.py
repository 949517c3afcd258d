"""Detect stock providers from naming conventions and captured page metadata."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from assetroute.ingestion.models import AssetMetadata

from . import vocabulary as vocab
from .models import AssetCategory, Confidence, DetectedSource
from .stock_cache import StockMetadata, StockMetadataCache

LOGGER = logging.getLogger(__name__)

STRATEGY_NAME = "web_enrichment"

_STOCK_PREFIXES = (
    ("adobestock_", DetectedSource.ADOBE_STOCK),
    ("shutterstock_", DetectedSource.SHUTTERSTOCK),
    ("istockphoto-", DetectedSource.ISTOCK),
    ("gettyimages-", DetectedSource.GETTY_IMAGES),
    ("pond5-", DetectedSource.POND5),
    ("pond5_", DetectedSource.POND5),
    ("depositphotos_", DetectedSource.DEPOSITPHOTOS),
)

_SFX_URL_MARKERS = ("/sound-effects/", "/sound-design/", "/sfx/")
_SFX_GENRES = ("sound-design", "sfx", "sound effect", "sound effects", "foley", "ambience", "ambient")
_SFX_PATH_NOISE = frozenset({"sound-effects", "sound-design", "categories", "tracks", "search"})
_ARTLIST_SFX_KEYWORDS = ("sfx", "sound effect", "effect", "impact", "whoosh", "swoosh", "hit", "crash", "foley", "ambient")


@dataclass(slots=True)
class SourceDetection:
    """Result of provider detection for one asset."""

    source: DetectedSource = DetectedSource.UNKNOWN
    category: Optional[AssetCategory] = None
    confidence: Confidence = Confidence.LOW
    genre: Optional[str] = None
    mood: Optional[str] = None
    sfx_category: Optional[str] = None
    origin_url: Optional[str] = None

    @property
    def is_decisive(self) -> bool:
        return (
            self.category is not None
            and self.category.is_known
            and self.confidence is Confidence.HIGH
        )


class SourceDetector:
    """Recognise stock providers and pull genre/mood hints from captured metadata."""

    def __init__(
        self,
        *,
        youtube_4k_folder: Optional[Path] = None,
        stock_cache: Optional[StockMetadataCache] = None,
    ) -> None:
        self._youtube_folder = youtube_4k_folder.expanduser() if youtube_4k_folder else None
        self._stock_cache = stock_cache

    def detect(self, path: Path, metadata: Optional[AssetMetadata] = None) -> SourceDetection:
        """Detect the provider from the path, filename, and metadata tags only."""
        ext = path.suffix.lower().lstrip(".")
        for detector in (
            lambda: self._detect_youtube(path, ext),
            lambda: _detect_epidemic(path.name, ext),
            lambda: _detect_freesound(path.name),
            lambda: _detect_stock_prefix(path.name, ext),
            lambda: _detect_from_tags(metadata, path.name, ext),
        ):
            result = detector()
            if result is not None:
                LOGGER.debug("Detected %s for %s", result.source.value, path.name)
                return result
        return SourceDetection()

    def enrich(
        self,
        path: Path,
        metadata: Optional[AssetMetadata] = None,
        origin_url: Optional[str] = None,
    ) -> SourceDetection:
        """Detect the provider and merge captured stock-page metadata.

        A stock cache hit is decisive: a sound-effects page or genre marks the
        asset as SFX (with a category from the URL, genres, or title);
        anything else is Music with the captured genre and mood, falling back
        to ``/genres/<x>/`` and ``/moods/<x>/`` URL segments.
        """
        result = self.detect(path, metadata)
        if self._stock_cache is None:
            return result

        origin_urls = [url for url in (origin_url, metadata.origin_url if metadata else None) if url]
        captured = self._stock_cache.find_for_file(path, origin_urls)
        if captured is None:
            return result
        return _merge_captured(result, captured)

    def _detect_youtube(self, path: Path, ext: str) -> Optional[SourceDetection]:
        if self._youtube_folder is None:
            return None
        try:
            path.expanduser().resolve().relative_to(self._youtube_folder.resolve())
        except ValueError:
            return None
        if ext in {"mp3", "m4a", "wav", "aac", "ogg", "flac"}:
            category = AssetCategory.MUSIC
        elif ext in {"mp4", "mov", "avi", "mkv", "webm", "m4v"}:
            category = AssetCategory.STOCK_FOOTAGE
        else:
            category = AssetCategory.UNKNOWN
        return SourceDetection(DetectedSource.YOUTUBE_4K, category, Confidence.HIGH)


def _merge_captured(result: SourceDetection, captured: StockMetadata) -> SourceDetection:
    page_url = captured.page_url
    merged = replace(result, confidence=Confidence.HIGH)
    if page_url:
        merged.origin_url = page_url
    is_sfx_url = bool(page_url) and any(marker in page_url for marker in _SFX_URL_MARKERS)
    has_sfx_genre = any(
        keyword in genre.lower() for genre in captured.genres for keyword in _SFX_GENRES
    )
    if page_url and (is_sfx_url or has_sfx_genre):
        merged.category = AssetCategory.SFX
        merged.sfx_category = _sfx_category(page_url, captured)
        return merged

    merged.category = AssetCategory.MUSIC
    merged.genre = captured.primary_genre or (extract_url_term(page_url, "genres") if page_url else None)
    merged.mood = captured.primary_mood or (extract_url_term(page_url, "moods") if page_url else None)
    return merged


def _sfx_category(page_url: str, captured: StockMetadata) -> Optional[str]:
    category = extract_sfx_category(page_url)
    if category:
        return category
    remaining = [genre for genre in captured.genres if genre.lower() not in _SFX_GENRES]
    if remaining:
        return remaining[0].title()
    if captured.title and "sound effect" not in captured.title.lower():
        return captured.title
    return None


def extract_url_term(url: str, segment: str) -> Optional[str]:
    """Return the prettified path component following ``segment`` in ``url``."""
    parts = [part for part in urlsplit(url).path.split("/") if part]
    lowered = [part.lower() for part in parts]
    if segment not in lowered:
        return None
    index = lowered.index(segment)
    if index + 1 >= len(parts):
        return None
    return parts[index + 1].replace("-", " ").title()


def extract_sfx_category(url: str) -> Optional[str]:
    """Return the most specific sound-effect category named by a page URL."""
    parts = urlsplit(url)
    sound_terms = parse_qs(parts.query).get("soundTerm")
    if sound_terms:
        return sound_terms[0].split(" OR ")[0].strip().title()

    components = [part for part in parts.path.split("/") if part and part not in _SFX_PATH_NOISE]
    if not components:
        return None
    last = components[-1]
    if "-" in last and len(last) <= 5:
        # Locale segments such as "en-us".
        return None
    return last.replace("-", " ").title()


def _detect_epidemic(filename: str, ext: str) -> Optional[SourceDetection]:
    stem = PurePosixPath(filename).stem
    if not (filename.startswith("ES_") or stem.endswith("- Epidemic Sound")):
        return None
    category, confidence = _epidemic_category(stem, ext)
    return SourceDetection(DetectedSource.EPIDEMIC_SOUND, category, confidence)


def _epidemic_category(stem: str, ext: str) -> tuple[Optional[AssetCategory], Confidence]:
    if ext not in vocab.AUDIO_EXTENSIONS:
        return None, Confidence.LOW
    if vocab.has_keyword(stem, vocab.SFX_KEYWORDS):
        return AssetCategory.SFX, Confidence.HIGH
    return AssetCategory.MUSIC, Confidence.MEDIUM


def _detect_freesound(filename: str) -> Optional[SourceDetection]:
    parts = PurePosixPath(filename).stem.split("__")
    if len(parts) < 3 or not parts[0].isdigit():
        return None
    return SourceDetection(DetectedSource.FREESOUND, AssetCategory.SFX, Confidence.HIGH)


def _detect_stock_prefix(filename: str, ext: str) -> Optional[SourceDetection]:
    lower = filename.lower()
    for prefix, source in _STOCK_PREFIXES:
        if lower.startswith(prefix):
            return SourceDetection(source, _stock_category(ext), Confidence.HIGH)
    return None


def _stock_category(ext: str) -> AssetCategory:
    if ext in vocab.VIDEO_EXTENSIONS:
        return AssetCategory.STOCK_FOOTAGE
    if ext in vocab.IMAGE_EXTENSIONS:
        return AssetCategory.GRAPHIC
    if ext in vocab.AUDIO_EXTENSIONS:
        return AssetCategory.MUSIC
    return AssetCategory.UNKNOWN


def _detect_from_tags(metadata: Optional[AssetMetadata], filename: str, ext: str) -> Optional[SourceDetection]:
    if metadata is None:
        return None
    for tag in metadata.tags:
        lower = tag.lower()
        if "artlist" in lower:
            return SourceDetection(DetectedSource.ARTLIST, _artlist_category(filename, ext), Confidence.HIGH)
        if "epidemicsound" in lower or "epidemic sound" in lower:
            category, confidence = _epidemic_category(PurePosixPath(filename).stem, ext)
            return SourceDetection(DetectedSource.EPIDEMIC_SOUND, category, confidence)
    if metadata.genre and "artlist" in metadata.genre.lower():
        return SourceDetection(DetectedSource.ARTLIST, _artlist_category(filename, ext), Confidence.HIGH)
    return None


def _artlist_category(filename: str, ext: str) -> Optional[AssetCategory]:
    if ext not in vocab.AUDIO_EXTENSIONS:
        return None
    if vocab.has_keyword(filename, _ARTLIST_SFX_KEYWORDS):
        return AssetCategory.SFX
    return AssetCategory.MUSIC


__all__ = [
    "SourceDetection",
    "SourceDetector",
    "STRATEGY_NAME",
    "extract_sfx_category",
    "extract_url_term",
]
