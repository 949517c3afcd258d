"""Descriptor produced by the metadata extractor."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssetMetadata(BaseModel):
    """Normalized description of a downloaded file or folder.

    Attributes:
        filename: Base name of the asset.
        title: Track or clip title supplied by the source site.
        artist: Primary artist name.
        genre: Embedded or supplied genre text.
        tags: Free-form tags.
        duration: Length in seconds.
        bpm: Tempo in beats per minute.
        key: Musical key.
        origin_url: Page or download URL the asset came from.
        width: Pixel width for images.
        height: Pixel height for images.
        is_directory: Whether the asset is a folder of files.
        child_files: Relative paths of the non-hidden files inside a folder.
        size_bytes: Size on disk (sum of children for folders).
        provider: Stock provider reported by the source site.
        scraped_genres: Genres reported by the source site.
        scraped_moods: Moods reported by the source site.
    """

    model_config = ConfigDict(extra="forbid")

    filename: str
    title: Optional[str] = None
    artist: Optional[str] = None
    genre: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    duration: Optional[float] = None
    bpm: Optional[int] = None
    key: Optional[str] = None
    origin_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    is_directory: bool = False
    child_files: List[str] = Field(default_factory=list)
    size_bytes: int = 0
    provider: Optional[str] = None
    scraped_genres: List[str] = Field(default_factory=list)
    scraped_moods: List[str] = Field(default_factory=list)

    @property
    def stem(self) -> str:
        name = self.filename
        if not self.is_directory and "." in name.strip("."):
            return name.rsplit(".", 1)[0]
        return name

    @property
    def extension(self) -> str:
        if self.is_directory or "." not in self.filename.strip("."):
            return ""
        return self.filename.rsplit(".", 1)[1].lower()

    def to_payload(self, max_tags: int = 20) -> Dict[str, Any]:
        """Return the bounded metadata mapping sent to model backends.

        Empty values are omitted and ``tags`` is capped at ``max_tags`` entries.
        """
        payload: Dict[str, Any] = {}
        for name, value in (
            ("title", self.title),
            ("artist", self.artist),
            ("genre", self.genre),
        ):
            if value:
                payload[name] = value
        tags = list(self.tags[: max(max_tags, 0)])
        if tags:
            payload["tags"] = tags
        if self.duration is not None:
            payload["duration"] = int(self.duration)
        if self.bpm is not None:
            payload["bpm"] = self.bpm
        if self.key:
            payload["key"] = self.key
        if self.origin_url:
            payload["originUrl"] = self.origin_url
        return payload


__all__ = ["AssetMetadata"]
