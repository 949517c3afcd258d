"""Processing history data models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class ItemStatus(str, Enum):
    """Lifecycle status of a queued asset."""

    QUEUED = "queued"
    CLASSIFYING = "classifying"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.COMPLETED, ItemStatus.FAILED, ItemStatus.SKIPPED)


class HistoryRecord(BaseModel):
    """Immutable record of one item reaching a terminal status."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    filename: str
    category: str
    source_path: str
    destination_path: Optional[str] = None
    target_project: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: ItemStatus
    is_folder: bool = False
    file_count: int = 1
    detail: Optional[str] = None


__all__ = ["HistoryRecord", "ItemStatus"]
