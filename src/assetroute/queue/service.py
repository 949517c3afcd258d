"""Asynchronous processing queue for downloaded assets."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Set
from uuid import UUID

from assetroute.classification import ClassificationEngine
from assetroute.classification.models import AssetCategory
from assetroute.config.models import AssetRouteConfig
from assetroute.ingestion import AssetMetadata, MetadataExtractor
from assetroute.routing import PathResolver, ProjectReference, RoutingError, UnknownAssetType
from assetroute.state import HistoryRepository

from .errors import ItemNotFoundError, ItemStateError, MoveError
from .models import (
    AssetItem,
    ConflictResolution,
    DecisionKind,
    ItemStatus,
    PendingDecision,
    ProcessOutcome,
    RootResolution,
)
from .mover import FileMover, next_versioned_path

LOGGER = logging.getLogger(__name__)


class ProcessingQueue:
    """Drive assets from enqueue through classification, routing and the move.

    Operations on one item are serialised by that item's lock; different items
    progress concurrently. Items waiting on an unknown-root or conflict
    decision stay in ``processing`` until the matching ``resolve_*`` call or a
    clear.
    """

    def __init__(
        self,
        config: AssetRouteConfig,
        engine: ClassificationEngine,
        resolver: PathResolver,
        mover: FileMover | None = None,
        history: HistoryRepository | None = None,
        *,
        extractor: MetadataExtractor | None = None,
        remember_root: Callable[[Path], Any] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            config: Active configuration.
            engine: Classification chain.
            resolver: Destination resolver.
            mover: Filesystem mover.
            history: History repository receiving terminal records.
            extractor: Metadata extractor used at enqueue time.
            remember_root: Callback persisting a newly approved project root.
            clock: Source of the current time.
        """
        self._config = config
        self._engine = engine
        self._resolver = resolver
        self._mover = mover or FileMover()
        self._history = history or HistoryRepository(
            Path(config.queue.history_path), config.queue.history_max_records
        )
        self._extractor = extractor or MetadataExtractor()
        self._remember_root = remember_root
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._items: Dict[UUID, AssetItem] = {}
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._pending: Dict[UUID, PendingDecision] = {}
        self._directory_locks: Dict[Path, asyncio.Lock] = {}
        self._known_roots: Set[Path] = {
            Path(root).expanduser().resolve() for root in config.routing.project_roots
        }

    @property
    def items(self) -> List[AssetItem]:
        return list(self._items.values())

    @property
    def pending(self) -> List[PendingDecision]:
        return list(self._pending.values())

    def get(self, item_id: UUID) -> AssetItem:
        """Return the item with ``item_id``.

        Raises:
            ItemNotFoundError: If the item is not queued.
        """
        try:
            return self._items[item_id]
        except KeyError:
            raise ItemNotFoundError(f"No queued item with id {item_id}") from None

    async def enqueue(
        self,
        path: Path,
        metadata: AssetMetadata | None = None,
        origin_url: str | None = None,
        project: ProjectReference | None = None,
        category: AssetCategory | None = None,
        *,
        full_detail: bool = False,
    ) -> AssetItem:
        """Add an asset and classify it when no category is given.

        Args:
            path: Downloaded file or folder.
            metadata: Pre-extracted descriptor.
            origin_url: Page or download URL of the asset.
            project: Target project, if already chosen.
            category: Known category; skips classification.
            full_detail: Ask the chain for genre/mood even when the category is certain.

        Returns:
            AssetItem: The queued item.
        """
        self.clear_expired()
        path = path.expanduser()
        if metadata is None:
            metadata = self._extractor.extract(path, origin_url=origin_url)
        item = AssetItem(
            source_path=path,
            child_files=list(metadata.child_files),
            metadata=metadata,
            target_project=project,
            music_mode=self._config.routing.music_mode,
            created_at=self._clock(),
        )
        self._items[item.id] = item
        lock = self._locks.setdefault(item.id, asyncio.Lock())

        async with lock:
            if category is not None and category.is_known:
                item.category = category
            else:
                item.transition(ItemStatus.CLASSIFYING)
                result = await self._engine.classify(
                    path, metadata, origin_url, full_detail=full_detail
                )
                item.category = result.category
                item.genre = result.genre
                item.mood = result.mood
                item.sfx_category = result.sfx_category
                item.detected_source = result.source
                item.needs_manual_classification = not result.category.is_known
                item.transition(ItemStatus.QUEUED)
        LOGGER.info("Queued %s as %s", path.name, item.category.value)
        return item

    async def update(
        self,
        item_id: UUID,
        *,
        category: AssetCategory | None = None,
        project: ProjectReference | None = None,
        subfolder: str | None = None,
    ) -> AssetItem:
        """Change a queued item's category, project or sub-folder.

        The destination is resolved again on the next ``process`` call.

        Raises:
            ItemStateError: If the item is no longer queued.
        """
        item = self.get(item_id)
        async with self._lock_for(item_id):
            if item.status is not ItemStatus.QUEUED:
                raise ItemStateError(f"Item {item_id} is {item.status.value}, not queued")
            if category is not None:
                item.category = category
                item.needs_manual_classification = not category.is_known
            if project is not None:
                item.target_project = project
                item.root_approved = False
            if subfolder is not None:
                item.target_subfolder = subfolder or None
            item.target_path = None
        return item

    async def process(self, item_id: UUID) -> ProcessOutcome:
        """Advance an item through its gates and move it.

        Returns:
            ProcessOutcome: Terminal status, or the decision the item waits for.

        Raises:
            ItemNotFoundError: If the item is not queued.
            ItemStateError: If the item is terminal or still classifying.
        """
        item = self.get(item_id)
        async with self._lock_for(item_id):
            if item.status.is_terminal:
                raise ItemStateError(f"Item {item_id} is already {item.status.value}")
            decision = self._pending.get(item_id)
            if decision is not None:
                return ProcessOutcome(item_id, item.status, decision)
            if item.status is ItemStatus.CLASSIFYING:
                raise ItemStateError(f"Item {item_id} is still classifying")
            return await self._advance(item)

    async def resolve_unknown_root(self, item_id: UUID, resolution: RootResolution) -> ProcessOutcome:
        """Answer an unknown-root decision and continue processing.

        Raises:
            ItemStateError: If the item is not waiting on an unknown root.
        """
        item = self.get(item_id)
        async with self._lock_for(item_id):
            decision = self._take_decision(item_id, DecisionKind.UNKNOWN_ROOT)
            if resolution is RootResolution.CANCEL:
                return self._finish(item, ItemStatus.SKIPPED)
            if resolution is RootResolution.PROCEED_AND_REMEMBER:
                self._known_roots.add(decision.path.expanduser().resolve())
                if self._remember_root is not None:
                    self._remember_root(decision.path)
            item.root_approved = True
            return await self._advance(item)

    async def resolve_conflict(self, item_id: UUID, resolution: ConflictResolution) -> ProcessOutcome:
        """Answer a destination conflict and continue processing.

        Raises:
            ItemStateError: If the item is not waiting on a conflict.
        """
        item = self.get(item_id)
        async with self._lock_for(item_id):
            self._take_decision(item_id, DecisionKind.CONFLICT)
            if resolution is ConflictResolution.SKIP:
                return self._finish(item, ItemStatus.SKIPPED)
            if resolution is ConflictResolution.OVERWRITE:
                item.overwrite = True
                return await self._move(item)
            return await self._move(item, versioned=True)

    async def process_all(self) -> List[ProcessOutcome]:
        """Process every queued item concurrently, one task per item."""
        ready = [
            item.id
            for item in self._items.values()
            if item.status is ItemStatus.QUEUED and item.id not in self._pending
        ]
        return list(await asyncio.gather(*(self.process(item_id) for item_id in ready)))

    def clear(self, item_id: UUID | None = None) -> int:
        """Drop one item, or every item when ``item_id`` is None."""
        targets = [item_id] if item_id is not None else list(self._items)
        removed = 0
        for target in targets:
            if self._items.pop(target, None) is not None:
                removed += 1
            self._pending.pop(target, None)
            self._locks.pop(target, None)
        return removed

    def clear_expired(self, now: datetime | None = None) -> int:
        """Drop items older than the retention window, whatever their status."""
        current = now or self._clock()
        cutoff = current - timedelta(seconds=self._config.queue.retention_seconds)
        expired = [item.id for item in self._items.values() if item.created_at <= cutoff]
        for item_id in expired:
            self.clear(item_id)
        if expired:
            LOGGER.info("Cleared %d expired queue items", len(expired))
        return len(expired)

    # ------------------------------------------------------------------ #
    # Internal helpers

    def _lock_for(self, item_id: UUID) -> asyncio.Lock:
        return self._locks.setdefault(item_id, asyncio.Lock())

    def _directory_lock(self, directory: Path) -> asyncio.Lock:
        return self._directory_locks.setdefault(directory, asyncio.Lock())

    def _take_decision(self, item_id: UUID, kind: DecisionKind) -> PendingDecision:
        decision = self._pending.get(item_id)
        if decision is None or decision.kind is not kind:
            raise ItemStateError(f"Item {item_id} is not waiting on a {kind.value} decision")
        del self._pending[item_id]
        return decision

    def _suspend(self, item: AssetItem, kind: DecisionKind, path: Path) -> ProcessOutcome:
        decision = PendingDecision(kind=kind, item_id=item.id, path=path)
        self._pending[item.id] = decision
        LOGGER.info("Item %s waiting on %s decision for %s", item.source_path.name, kind.value, path)
        return ProcessOutcome(item.id, item.status, decision)

    def _root_is_known(self, root: Path) -> bool:
        return root.expanduser().resolve() in self._known_roots

    async def _advance(self, item: AssetItem) -> ProcessOutcome:
        if item.status is ItemStatus.QUEUED:
            item.transition(ItemStatus.PROCESSING)

        project = item.target_project
        if project is None:
            return self._finish(item, ItemStatus.FAILED, "No target project selected")
        if not item.category.is_known:
            return self._finish(item, ItemStatus.FAILED, str(UnknownAssetType("Asset category is unknown")))

        if item.target_path is None:
            try:
                directory = self._resolver.resolve_target(
                    project,
                    item.category,
                    item.sub_category,
                    item.music_mode,
                    item.detected_source,
                )
            except (RoutingError, OSError) as exc:
                return self._finish(item, ItemStatus.FAILED, str(exc))
            item.target_path = directory / _target_name(item)

        if not item.root_approved and not self._root_is_known(project.root_path):
            return self._suspend(item, DecisionKind.UNKNOWN_ROOT, project.root_path)

        return await self._move(item)

    async def _move(self, item: AssetItem, *, versioned: bool = False) -> ProcessOutcome:
        if item.target_path is None:
            raise ItemStateError(f"Item {item.id} has no resolved destination")
        archive = item.is_archive
        # The conflict check and the move share the directory lock.
        async with self._directory_lock(item.target_path.parent):
            if versioned:
                item.target_path = next_versioned_path(item.target_path)
            elif not item.overwrite and item.target_path.exists():
                return self._suspend(item, DecisionKind.CONFLICT, item.target_path)
            try:
                paths = await asyncio.to_thread(
                    self._mover.move, item.source_path, item.target_path, overwrite=item.overwrite
                )
            except (OSError, MoveError) as exc:
                LOGGER.warning("Failed to move %s: %s", item.source_path.name, exc)
                return self._finish(item, ItemStatus.FAILED, str(exc))
            except Exception as exc:
                LOGGER.exception("Unexpected error moving %s", item.source_path.name)
                return self._finish(item, ItemStatus.FAILED, str(exc) or type(exc).__name__)
        if archive:
            item.child_files = [path.relative_to(item.target_path).as_posix() for path in paths]
        return self._finish(item, ItemStatus.COMPLETED, paths=tuple(paths))

    def _finish(
        self,
        item: AssetItem,
        status: ItemStatus,
        error: str | None = None,
        *,
        paths: tuple[Path, ...] = (),
    ) -> ProcessOutcome:
        item.error = error
        item.transition(status)
        self._pending.pop(item.id, None)
        self._history.record(item)
        LOGGER.info("Item %s %s", item.source_path.name, status.value)
        return ProcessOutcome(item.id, status, paths=paths)


def _target_name(item: AssetItem) -> str:
    if item.is_archive:
        return item.source_path.stem
    return item.source_path.name


__all__ = ["ProcessingQueue"]
