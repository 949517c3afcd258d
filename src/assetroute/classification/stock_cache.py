"""JSON-backed cache of metadata captured from stock-site pages."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError

LOGGER = logging.getLogger(__name__)

_COPY_SUFFIX = re.compile(r"\s*\(\d+\)\s*$")


class StockMetadata(BaseModel):
    """Metadata captured for one download on a stock site.

    Field names follow the camelCase keys written by the capture side.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    final_url: Optional[str] = Field(default=None, alias="finalUrl")
    filename: Optional[str] = None
    provider: Optional[str] = None
    page_url: Optional[str] = Field(default=None, alias="pageUrl")
    title: Optional[str] = None
    artists: List[str] = Field(default_factory=list)
    genres: List[str] = Field(default_factory=list)
    moods: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    bpm: Optional[int] = None
    duration: Optional[float] = None
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="receivedAt"
    )

    @property
    def primary_genre(self) -> Optional[str]:
        return self.genres[0] if self.genres else None

    @property
    def primary_mood(self) -> Optional[str]:
        return self.moods[0] if self.moods else None

    @property
    def suggested_filename(self) -> Optional[str]:
        if not self.title:
            return None
        if self.artists and self.artists[0]:
            return f"{self.artists[0]} - {self.title}"
        return self.title


class StockMetadataCache:
    """Persisted list of `StockMetadata` entries looked up by URL or filename."""

    def __init__(self, path: Path, *, max_age: timedelta = timedelta(minutes=10)) -> None:
        self._path = path.expanduser()
        self._max_age = max_age
        self._entries: Optional[List[StockMetadata]] = None

    @property
    def path(self) -> Path:
        return self._path

    def entries(self) -> List[StockMetadata]:
        """Return the cached entries, loading the backing file on first use."""
        if self._entries is None:
            self._entries = self._load()
        return list(self._entries)

    def add(self, metadata: StockMetadata, *, now: Optional[datetime] = None) -> None:
        """Store an entry, drop expired ones, and persist the cache."""
        entries = self.entries()
        entries.append(metadata)
        self._entries = self._prune(entries, now or datetime.now(timezone.utc))
        self._save()

    def find_by_url(self, url: str) -> Optional[StockMetadata]:
        key = normalize_url(url)
        for entry in reversed(self.entries()):
            for candidate in (entry.download_url, entry.final_url, entry.page_url):
                if candidate and normalize_url(candidate) == key:
                    return entry
        return None

    def find_by_filename(self, filename: str) -> Optional[StockMetadata]:
        key = normalize_filename(filename)
        entries = list(reversed(self.entries()))
        for entry in entries:
            if entry.filename and normalize_filename(entry.filename) == key:
                return entry
        for entry in entries:
            if _loosely_matches(entry, key):
                return entry
        return None

    def find_for_file(self, path: Path, origin_urls: Sequence[str] = ()) -> Optional[StockMetadata]:
        """Return metadata for ``path``, trying origin URLs before the filename."""
        for url in origin_urls:
            match = self.find_by_url(url)
            if match is not None:
                return match
        return self.find_by_filename(path.name)

    # ------------------------------------------------------------------ #
    # Internal helpers

    def _load(self) -> List[StockMetadata]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable stock metadata cache %s: %s", self._path, exc)
            return []
        if not isinstance(raw, list):
            LOGGER.warning("Ignoring stock metadata cache %s: expected a list", self._path)
            return []
        entries: List[StockMetadata] = []
        for item in raw:
            try:
                entries.append(StockMetadata.model_validate(item))
            except ValidationError as exc:
                LOGGER.debug("Skipping invalid stock metadata entry: %s", exc)
        return entries

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [
            entry.model_dump(mode="json", by_alias=True, exclude_none=True)
            for entry in self._entries or []
        ]
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _prune(self, entries: List[StockMetadata], now: datetime) -> List[StockMetadata]:
        cutoff = now - self._max_age
        return [entry for entry in entries if _aware(entry.received_at) > cutoff]


def normalize_url(url: str) -> str:
    """Drop the query string and fragment from a URL."""
    parts = urlsplit(url.strip())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def normalize_filename(filename: str) -> str:
    """Lowercase a filename and strip its extension and ``(n)`` copy suffix."""
    name = filename.lower()
    if "." in name:
        name = name.rsplit(".", 1)[0]
    return _COPY_SUFFIX.sub("", name).strip()


def _loosely_matches(entry: StockMetadata, key: str) -> bool:
    if entry.title:
        title = entry.title.lower()
        if title in key or key.replace(" - ", " ") in title:
            return True
    suggested = entry.suggested_filename
    return bool(suggested and normalize_filename(suggested) == key)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


__all__ = ["StockMetadata", "StockMetadataCache", "normalize_filename", "normalize_url"]
