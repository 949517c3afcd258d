"""Build `AssetMetadata` descriptors from paths on disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from mutagen import File as MutagenFile
from PIL import Image

from .models import AssetMetadata

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "webp", "tiff", "tif", "psd"})
MEDIA_EXTENSIONS = frozenset(
    {"wav", "aiff", "aif", "mp3", "m4a", "aac", "flac", "ogg", "mp4", "mov", "m4v"}
)


class MetadataExtractor:
    """Extract a normalized descriptor for a downloaded file or folder."""

    def extract(
        self,
        path: Path,
        source_metadata: Optional[Mapping[str, Any]] = None,
        *,
        origin_url: Optional[str] = None,
    ) -> AssetMetadata:
        """Return the descriptor for ``path``.

        Args:
            path: File or directory to describe.
            source_metadata: Optional values captured from the download site
                (``title``, ``artist``/``artists``, ``genre``/``genres``,
                ``moods``, ``tags``, ``duration``, ``bpm``, ``key``,
                ``provider``, ``pageUrl``).
            origin_url: Page or download URL, overriding ``pageUrl``.

        Returns:
            AssetMetadata: Descriptor for the asset. Missing paths yield a
            descriptor with only the filename and supplied values populated.
        """
        source = dict(source_metadata or {})
        is_directory = path.is_dir()
        child_files: List[str] = []
        size_bytes = 0

        if is_directory:
            for child in _iter_visible_files(path):
                child_files.append(child.relative_to(path).as_posix())
                size_bytes += _safe_size(child)
        elif path.exists():
            size_bytes = _safe_size(path)

        width: Optional[int] = None
        height: Optional[int] = None
        if not is_directory and path.suffix.lower().lstrip(".") in IMAGE_EXTENSIONS:
            width, height = _image_size(path)

        embedded: dict[str, Any] = {}
        if path.is_file() and path.suffix.lower().lstrip(".") in MEDIA_EXTENSIONS:
            embedded = _media_tags(path)

        artists = _as_list(source.get("artists"))
        genres = _as_list(source.get("genres"))
        moods = _as_list(source.get("moods"))
        artist = (
            _as_text(source.get("artist"))
            or (artists[0] if artists else None)
            or _as_text(embedded.get("artist"))
        )
        genre = (
            _as_text(source.get("genre"))
            or (genres[0] if genres else None)
            or _as_text(embedded.get("genre"))
        )
        duration = _as_number(source.get("duration"))
        bpm = _as_int(source.get("bpm"))

        return AssetMetadata(
            filename=path.name,
            title=_as_text(source.get("title")) or _as_text(embedded.get("title")),
            artist=artist,
            genre=genre,
            tags=_as_list(source.get("tags")),
            duration=duration if duration is not None else _as_number(embedded.get("duration")),
            bpm=bpm if bpm is not None else _as_int(embedded.get("bpm")),
            key=_as_text(source.get("key")) or _as_text(embedded.get("key")),
            origin_url=origin_url
            or _as_text(source.get("pageUrl"))
            or _as_text(source.get("originUrl")),
            width=width,
            height=height,
            is_directory=is_directory,
            child_files=child_files,
            size_bytes=size_bytes,
            provider=_as_text(source.get("provider")),
            scraped_genres=genres,
            scraped_moods=moods,
        )


def _iter_visible_files(root: Path) -> Iterable[Path]:
    for entry in sorted(root.rglob("*")):
        relative = entry.relative_to(root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if entry.is_file():
            yield entry


def _safe_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


def _image_size(path: Path) -> tuple[Optional[int], Optional[int]]:
    try:
        with Image.open(path) as img:
            width, height = img.size
    except OSError as exc:
        LOGGER.debug("Unable to read image size for %s: %s", path, exc)
        return None, None
    return width, height


def _media_tags(path: Path) -> dict[str, Any]:
    """Read duration and easy tags (title, artist, genre, bpm, key) from an audio/video file."""
    try:
        media = MutagenFile(path, easy=True)
    except Exception as exc:  # corrupt or unsupported media
        LOGGER.debug("Unable to read media tags for %s: %s", path, exc)
        return {}
    if media is None:
        return {}

    found: dict[str, Any] = {}
    length = getattr(getattr(media, "info", None), "length", None)
    if length:
        found["duration"] = length
    tags = media.tags or {}
    for name, keys in (
        ("title", ("title",)),
        ("artist", ("artist",)),
        ("genre", ("genre",)),
        ("bpm", ("bpm",)),
        ("key", ("initialkey", "key")),
    ):
        for tag in keys:
            values = tags.get(tag)
            if values:
                found[name] = values[0] if isinstance(values, list) else values
                break
    return found


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [text for text in (_as_text(item) for item in value) if text]


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> Optional[int]:
    number = _as_number(value)
    return int(number) if number is not None else None


__all__ = ["MetadataExtractor", "IMAGE_EXTENSIONS"]
