"""Processing history persistence."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from pydantic import ValidationError

from .errors import StateError
from .models import HistoryRecord, ItemStatus

if TYPE_CHECKING:
    from assetroute.queue.models import AssetItem

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_PATH = Path("~/.assetroute/processing_history.json")
DEFAULT_MAX_RECORDS = 500


class HistoryRepository:
    """Append-only processing history stored as a JSON list."""

    def __init__(self, path: Path | None = None, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        """Initialize the repository.

        Args:
            path: History file; defaults to ``~/.assetroute/processing_history.json``.
            max_records: Number of most recent records kept on disk.

        Raises:
            StateError: If an existing history file cannot be parsed.
        """
        self._path = (path or DEFAULT_HISTORY_PATH).expanduser()
        self._max_records = max_records
        self._records: List[HistoryRecord] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def record(self, item: "AssetItem") -> HistoryRecord:
        """Append a record describing ``item``'s terminal status.

        Args:
            item: Queue item that just reached a terminal status.

        Returns:
            HistoryRecord: The stored record.
        """
        is_folder = bool(item.metadata.is_directory) if item.metadata else item.source_path.is_dir()
        if item.is_archive and item.child_files:
            # Extracted archives land as a folder of their members.
            is_folder = True
        entry = HistoryRecord(
            filename=item.source_path.name,
            category=item.category.value,
            source_path=str(item.source_path),
            destination_path=str(item.target_path) if item.target_path else None,
            target_project=item.target_project.name if item.target_project else None,
            status=item.status,
            is_folder=is_folder,
            file_count=max(len(item.child_files), 1) if is_folder else 1,
            detail=item.error,
        )
        self._records.append(entry)
        if len(self._records) > self._max_records:
            self._records = self._records[-self._max_records :]
        self._save()
        LOGGER.debug("Recorded %s as %s", entry.filename, entry.status.value)
        return entry

    def records(self) -> List[HistoryRecord]:
        return list(self._records)

    def today(self, now: Optional[datetime] = None) -> List[HistoryRecord]:
        """Return today's records, newest first."""
        current = _local_date(now or datetime.now(timezone.utc))
        todays = [entry for entry in self._records if _local_date(entry.timestamp) == current]
        return sorted(todays, key=lambda entry: entry.timestamp, reverse=True)

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """Drop records from earlier days and return how many were removed."""
        current = _local_date(now or datetime.now(timezone.utc))
        kept = [entry for entry in self._records if _local_date(entry.timestamp) >= current]
        removed = len(self._records) - len(kept)
        if removed:
            self._records = kept
            self._save()
            LOGGER.info("Removed %d history records from earlier days", removed)
        return removed

    # ------------------------------------------------------------------ #
    # Internal helpers

    def _load(self) -> List[HistoryRecord]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StateError(f"Invalid processing history data: {exc}") from exc
        if not isinstance(data, list):
            raise StateError("Invalid processing history data: expected a list")
        try:
            return [HistoryRecord.model_validate(entry) for entry in data]
        except ValidationError as exc:
            raise StateError(f"Invalid processing history data: {exc}") from exc

    def _save(self) -> None:
        payload = [entry.model_dump(mode="json") for entry in self._records]
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _local_date(value: datetime) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().date()


__all__ = [
    "DEFAULT_HISTORY_PATH",
    "DEFAULT_MAX_RECORDS",
    "HistoryRecord",
    "HistoryRepository",
    "ItemStatus",
    "StateError",
]
