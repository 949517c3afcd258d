"""Rule-based classification from filenames, metadata, and archive contents."""

from __future__ import annotations

import logging
import zipfile
from collections import Counter
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from assetroute.ingestion.models import AssetMetadata

from . import vocabulary as vocab
from .models import AssetCategory, ClassificationResult, Confidence

LOGGER = logging.getLogger(__name__)

STRATEGY_NAME = "heuristic"


class HeuristicClassifier:
    """Classify assets without any model backend.

    The classifier is pure apart from listing ZIP members. It returns a
    category with a confidence level; high confidence lets the chain skip the
    local model tiers entirely.
    """

    def classify(
        self,
        metadata: AssetMetadata,
        path: Optional[Path] = None,
        origin_url: Optional[str] = None,
    ) -> Optional[ClassificationResult]:
        """Classify a descriptor.

        Args:
            metadata: Descriptor produced by the extractor.
            path: Location on disk, used to list ZIP members.
            origin_url: Page or download URL, overriding ``metadata.origin_url``.

        Returns:
            Optional[ClassificationResult]: None only when the filename is empty.
        """
        filename = metadata.filename.strip()
        if not filename:
            return None

        origin = (origin_url or metadata.origin_url or "").lower()
        if metadata.is_directory:
            category, confidence, reason = self._classify_directory(metadata, origin)
        else:
            category, confidence, reason = self._classify_file(metadata, path, origin)

        LOGGER.debug("Heuristic %s -> %s (%s, %s)", filename, category.value, confidence.value, reason)
        return ClassificationResult(category=category, confidence=confidence, strategy=STRATEGY_NAME)

    # ------------------------------------------------------------------ #
    # Files

    def _classify_file(
        self, metadata: AssetMetadata, path: Optional[Path], origin: str
    ) -> tuple[AssetCategory, Confidence, str]:
        ext = metadata.extension
        if ext in vocab.VIDEO_EXTENSIONS:
            return self._classify_video(metadata, origin)
        if ext in vocab.AUDIO_EXTENSIONS:
            return self._classify_audio(metadata, origin)
        if ext in vocab.IMAGE_EXTENSIONS:
            return AssetCategory.GRAPHIC, Confidence.HIGH, "image extension"
        if ext in vocab.MOTION_TEMPLATE_EXTENSIONS:
            return AssetCategory.MOTION_GRAPHIC, Confidence.HIGH, "motion template extension"
        if ext in vocab.ARCHIVE_EXTENSIONS and path is not None:
            category = self._classify_archive(path, metadata.filename)
            confidence = Confidence.MEDIUM if category.is_known else Confidence.LOW
            return category, confidence, "archive members"
        return self._classify_by_origin(metadata.filename.lower(), origin)

    def _classify_video(self, metadata: AssetMetadata, origin: str) -> tuple[AssetCategory, Confidence, str]:
        lower = metadata.filename.lower()
        if origin and any(platform in origin for platform in vocab.STOCK_FOOTAGE_PLATFORMS):
            return AssetCategory.STOCK_FOOTAGE, Confidence.HIGH, "stock platform origin"
        if any(marker in lower for marker in vocab.STOCK_FILENAME_MARKERS):
            return AssetCategory.STOCK_FOOTAGE, Confidence.HIGH, "stock filename pattern"
        if vocab.has_keyword(lower, vocab.STOCK_FOOTAGE_KEYWORDS):
            return AssetCategory.STOCK_FOOTAGE, Confidence.HIGH, "stock keyword"
        if vocab.has_keyword(lower, vocab.MOTION_GRAPHIC_KEYWORDS):
            return AssetCategory.MOTION_GRAPHIC, Confidence.HIGH, "motion graphic keyword"
        if lower[:1].isdigit() and "_" in lower:
            return AssetCategory.STOCK_FOOTAGE, Confidence.MEDIUM, "numeric id prefix"
        if metadata.duration is not None and metadata.duration < 30:
            return AssetCategory.MOTION_GRAPHIC, Confidence.MEDIUM, "short video"
        return AssetCategory.STOCK_FOOTAGE, Confidence.MEDIUM, "video default"

    def _classify_audio(self, metadata: AssetMetadata, origin: str) -> tuple[AssetCategory, Confidence, str]:
        lower = metadata.filename.lower()
        if vocab.has_keyword(lower, vocab.STEM_KEYWORDS):
            return AssetCategory.MUSIC, Confidence.HIGH, "stems keyword"
        if vocab.has_keyword(lower, vocab.VO_KEYWORDS):
            return AssetCategory.VOICE_OVER, Confidence.HIGH, "voice-over keyword"
        if origin:
            if any(platform in origin for platform in vocab.VO_PLATFORMS):
                return AssetCategory.VOICE_OVER, Confidence.HIGH, "voice-over platform origin"
            if any(platform in origin for platform in vocab.SFX_PLATFORMS):
                return AssetCategory.SFX, Confidence.HIGH, "sfx platform origin"

        has_sfx = vocab.has_keyword(lower, vocab.SFX_KEYWORDS) is not None
        has_music = vocab.has_keyword(lower, vocab.MUSIC_KEYWORDS) is not None
        if has_sfx and not has_music:
            return AssetCategory.SFX, Confidence.HIGH, "sfx keyword"

        platform_suffix = any(f"- {suffix}" in lower for suffix in vocab.PLATFORM_SUFFIXES)
        artist_pattern = " - " in lower and not has_sfx and not platform_suffix
        if artist_pattern or has_music:
            return AssetCategory.MUSIC, Confidence.HIGH, "artist pattern or music keyword"

        if metadata.bpm is not None or metadata.key:
            return AssetCategory.MUSIC, Confidence.HIGH, "bpm or key metadata"
        if metadata.artist:
            return AssetCategory.MUSIC, Confidence.HIGH, "artist metadata"
        if metadata.duration is not None:
            if metadata.duration < 10:
                return AssetCategory.SFX, Confidence.MEDIUM, "short audio"
            if metadata.duration >= 30:
                return AssetCategory.MUSIC, Confidence.MEDIUM, "long audio"
        return AssetCategory.MUSIC, Confidence.MEDIUM, "audio default"

    def _classify_by_origin(self, lower: str, origin: str) -> tuple[AssetCategory, Confidence, str]:
        if origin:
            if any(platform in origin for platform in vocab.MUSIC_PLATFORMS):
                if vocab.has_keyword(lower, ("sfx", "sound-effect")):
                    return AssetCategory.SFX, Confidence.LOW, "music platform origin"
                if vocab.has_keyword(lower, ("vo", "voice", "narration")):
                    return AssetCategory.VOICE_OVER, Confidence.LOW, "music platform origin"
                return AssetCategory.MUSIC, Confidence.LOW, "music platform origin"
            if "envato" in origin or "videohive" in origin:
                return AssetCategory.MOTION_GRAPHIC, Confidence.LOW, "template platform origin"
            if "freesound" in origin:
                return AssetCategory.SFX, Confidence.LOW, "sfx platform origin"
            if "elevenlabs" in origin:
                return AssetCategory.VOICE_OVER, Confidence.LOW, "voice-over platform origin"
        return AssetCategory.UNKNOWN, Confidence.LOW, "unrecognised file type"

    # ------------------------------------------------------------------ #
    # Archives and folders

    def _classify_archive(self, path: Path, filename: str) -> AssetCategory:
        try:
            with zipfile.ZipFile(path) as archive:
                members = [info.filename for info in archive.infolist() if not info.is_dir()]
        except (OSError, zipfile.BadZipFile) as exc:
            LOGGER.debug("Unable to list archive %s: %s", path, exc)
            return AssetCategory.UNKNOWN
        return classify_members(members, filename.lower())

    def _classify_directory(self, metadata: AssetMetadata, origin: str) -> tuple[AssetCategory, Confidence, str]:
        stem_parts: set[str] = set()
        for child in metadata.child_files:
            name = PurePosixPath(child).name.lower()
            if "stem" in name:
                stem_parts.update(part for part in ("bass", "drum", "instrument", "melody", "vocal") if part in name)
        if len(stem_parts) >= 2:
            return AssetCategory.MUSIC, Confidence.HIGH, "stems folder"

        counts = _extension_counts(metadata.child_files)
        if counts["audio"] and not counts["video"] and not counts["image"]:
            return AssetCategory.MUSIC, Confidence.MEDIUM, "audio-only folder"
        return self._classify_by_origin(metadata.filename.lower(), origin)


def classify_members(members: Iterable[str], archive_name: str = "") -> AssetCategory:
    """Classify an archive or folder from the extensions of its members."""
    counts = _extension_counts(members)
    if counts["motion"]:
        return AssetCategory.MOTION_GRAPHIC
    if counts["video"]:
        if vocab.has_keyword(archive_name, ("motion", "graphic", "template")):
            return AssetCategory.MOTION_GRAPHIC
        return AssetCategory.STOCK_FOOTAGE
    if counts["image"] and not counts["audio"]:
        return AssetCategory.GRAPHIC
    if counts["audio"]:
        return AssetCategory.MUSIC
    return AssetCategory.UNKNOWN


def _extension_counts(names: Iterable[str]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for name in names:
        suffix = PurePosixPath(name).suffix.lower().lstrip(".")
        if suffix in vocab.AUDIO_EXTENSIONS:
            counts["audio"] += 1
        elif suffix in vocab.VIDEO_EXTENSIONS:
            counts["video"] += 1
        elif suffix in vocab.IMAGE_EXTENSIONS:
            counts["image"] += 1
        elif suffix in vocab.MOTION_TEMPLATE_EXTENSIONS:
            counts["motion"] += 1
    return counts


__all__ = ["HeuristicClassifier", "STRATEGY_NAME", "classify_members"]
