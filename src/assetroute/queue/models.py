"""Queue item and decision models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from assetroute.classification.models import AssetCategory, DetectedSource
from assetroute.config.models import MusicMode
from assetroute.ingestion.models import AssetMetadata
from assetroute.routing.models import ProjectReference
from assetroute.state.models import ItemStatus

from .errors import ItemStateError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusChange(BaseModel):
    """One entry in an item's status history."""

    status: ItemStatus
    at: datetime = Field(default_factory=_utcnow)


class AssetItem(BaseModel):
    """Asset moving through the processing queue.

    Attributes:
        id: Unique item identifier.
        source_path: Downloaded file or folder.
        child_files: Relative paths of files inside a folder asset.
        metadata: Descriptor produced at enqueue time.
        category: Current category; Unknown until classified or set.
        genre: Music genre.
        mood: Music mood.
        sfx_category: Sound-effect category.
        detected_source: Origin site detected during classification.
        music_mode: Sub-folder scheme used for music.
        target_project: Project the asset is routed into.
        target_subfolder: Explicit sub-folder overriding the derived one.
        target_path: Final destination path, resolved on first processing.
        status: Current lifecycle status.
        status_history: Every status the item has entered, in order.
        needs_manual_classification: Whether classification ended Unknown.
        created_at: Enqueue time.
        root_approved: Whether an unknown project root was approved for this item.
        overwrite: Whether the move may replace an existing destination.
        error: Failure detail for failed items.
    """

    id: UUID = Field(default_factory=uuid4)
    source_path: Path
    child_files: List[str] = Field(default_factory=list)
    metadata: Optional[AssetMetadata] = None
    category: AssetCategory = AssetCategory.UNKNOWN
    genre: Optional[str] = None
    mood: Optional[str] = None
    sfx_category: Optional[str] = None
    detected_source: DetectedSource = DetectedSource.UNKNOWN
    music_mode: MusicMode = MusicMode.MOOD
    target_project: Optional[ProjectReference] = None
    target_subfolder: Optional[str] = None
    target_path: Optional[Path] = None
    status: ItemStatus = ItemStatus.QUEUED
    status_history: List[StatusChange] = Field(
        default_factory=lambda: [StatusChange(status=ItemStatus.QUEUED)]
    )
    needs_manual_classification: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    root_approved: bool = False
    overwrite: bool = False
    error: Optional[str] = None

    @property
    def sub_category(self) -> Optional[str]:
        """Return the sub-folder value for this item's category."""
        if self.target_subfolder:
            return self.target_subfolder
        if self.category is AssetCategory.MUSIC:
            return self.mood if self.music_mode is MusicMode.MOOD else self.genre
        if self.category is AssetCategory.SFX:
            return self.sfx_category
        return None

    @property
    def is_archive(self) -> bool:
        return self.source_path.suffix.lower() == ".zip" and not self.source_path.is_dir()

    def transition(self, status: ItemStatus) -> None:
        """Move to ``status`` and append it to the history.

        Raises:
            ItemStateError: If the item already reached a terminal status.
        """
        if self.status.is_terminal:
            raise ItemStateError(f"Item {self.id} is already {self.status.value}")
        self.status = status
        self.status_history.append(StatusChange(status=status))


class ConflictResolution(str, Enum):
    """Answer to an existing-destination conflict."""

    OVERWRITE = "overwrite"
    VERSION = "version"
    SKIP = "skip"


class RootResolution(str, Enum):
    """Answer to a project root that is not configured."""

    PROCEED_AND_REMEMBER = "proceed_and_remember"
    PROCEED_ONCE = "proceed_once"
    CANCEL = "cancel"


class DecisionKind(str, Enum):
    """Kinds of human decisions an item can wait for."""

    UNKNOWN_ROOT = "unknown_root"
    CONFLICT = "conflict"


@dataclass(slots=True, frozen=True)
class PendingDecision:
    """Decision an item is suspended on.

    ``path`` is the unknown project root or the conflicting destination.
    """

    kind: DecisionKind
    item_id: UUID
    path: Path


@dataclass(slots=True, frozen=True)
class ProcessOutcome:
    """Result of driving an item: a status, plus the decision it waits for if any."""

    item_id: UUID
    status: ItemStatus
    decision: Optional[PendingDecision] = None
    paths: tuple[Path, ...] = ()

    @property
    def is_pending(self) -> bool:
        return self.decision is not None


__all__ = [
    "AssetItem",
    "ConflictResolution",
    "DecisionKind",
    "ItemStatus",
    "PendingDecision",
    "ProcessOutcome",
    "RootResolution",
    "StatusChange",
]
