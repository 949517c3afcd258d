"""Tests for the processing queue and file mover."""

import asyncio
import zipfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List
from uuid import uuid4

import pytest

from assetroute.classification.models import AssetCategory, ClassificationResult
from assetroute.config.models import AssetRouteConfig, QueueSettings, RoutingSettings
from assetroute.queue import (
    ConflictResolution,
    DecisionKind,
    FileMover,
    ItemNotFoundError,
    ItemStateError,
    ItemStatus,
    MoveError,
    ProcessingQueue,
    RootResolution,
    next_versioned_path,
)
from assetroute.routing import PathResolver, ProjectReference
from assetroute.state import HistoryRepository


class _FakeEngine:
    def __init__(self, results: Dict[str, ClassificationResult] | None = None) -> None:
        self.results = results or {}
        self.calls: List[str] = []

    async def classify(self, path, metadata=None, origin_url=None, *, full_detail=False) -> ClassificationResult:
        self.calls.append(path.name)
        return self.results.get(path.name, ClassificationResult.unknown("no tier answered"))


class _FailingMover(FileMover):
    def move(self, source, target, *, overwrite=False):
        raise PermissionError("denied")


@dataclass
class _Workspace:
    root: Path
    main: Path
    project: ProjectReference
    downloads: Path
    history: HistoryRepository

    def download(self, name: str, content: str = "new", folder: str = "Downloads") -> Path:
        path = self.downloads.parent / folder / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


@pytest.fixture
def workspace(tmp_path: Path) -> _Workspace:
    root = tmp_path / "Projects"
    main = root / "Client"
    (main / "03_Audio").mkdir(parents=True)
    project_file = main / "01_Adobe" / "Client.prproj"
    project_file.parent.mkdir()
    project_file.write_text("project", encoding="utf-8")
    downloads = tmp_path / "Downloads"
    downloads.mkdir()
    return _Workspace(
        root=root,
        main=main,
        project=ProjectReference.from_project_file(project_file, root),
        downloads=downloads,
        history=HistoryRepository(tmp_path / "history.json"),
    )


SFX_IMPACT = ClassificationResult(category=AssetCategory.SFX, sfx_category="Impacts")


def _queue(
    workspace: _Workspace,
    engine: _FakeEngine | None = None,
    *,
    known_root: bool = True,
    **kwargs,
) -> ProcessingQueue:
    config = AssetRouteConfig(
        routing=RoutingSettings(project_roots=[str(workspace.root)] if known_root else []),
        queue=QueueSettings(history_path=str(workspace.history.path)),
    )
    return ProcessingQueue(
        config,
        engine or _FakeEngine({"boom.wav": SFX_IMPACT}),
        PathResolver(config.routing),
        history=workspace.history,
        **kwargs,
    )


def test_item_lifecycle_moves_file_and_records_history(workspace: _Workspace) -> None:
    queue = _queue(workspace)
    source = workspace.download("boom.wav")

    async def scenario():
        item = await queue.enqueue(source, project=workspace.project)
        assert item.status is ItemStatus.QUEUED
        assert item.sub_category == "Impacts"
        return item, await queue.process(item.id)

    item, outcome = asyncio.run(scenario())

    destination = workspace.main / "04_SFX" / "Impacts" / "boom.wav"
    assert outcome.status is ItemStatus.COMPLETED
    assert outcome.paths == (destination,)
    assert destination.read_text(encoding="utf-8") == "new"
    assert not source.exists()
    assert [change.status for change in item.status_history] == [
        ItemStatus.QUEUED,
        ItemStatus.CLASSIFYING,
        ItemStatus.QUEUED,
        ItemStatus.PROCESSING,
        ItemStatus.COMPLETED,
    ]
    records = workspace.history.records()
    assert [(record.filename, record.status) for record in records] == [("boom.wav", ItemStatus.COMPLETED)]
    assert records[0].destination_path == str(destination)


def test_unknown_root_waits_and_cancel_skips(workspace: _Workspace) -> None:
    queue = _queue(workspace, known_root=False)
    source = workspace.download("boom.wav")

    async def scenario():
        item = await queue.enqueue(source, project=workspace.project)
        first = await queue.process(item.id)
        again = await queue.process(item.id)
        assert item.status is ItemStatus.PROCESSING
        final = await queue.resolve_unknown_root(item.id, RootResolution.CANCEL)
        return first, again, final

    first, again, final = asyncio.run(scenario())

    assert first.is_pending
    assert first.decision.kind is DecisionKind.UNKNOWN_ROOT
    assert first.decision.path == workspace.root
    assert again.decision == first.decision
    assert final.status is ItemStatus.SKIPPED
    assert source.exists()
    assert queue.pending == []
    assert workspace.history.records()[0].status is ItemStatus.SKIPPED


def test_remembered_root_is_not_asked_again(workspace: _Workspace) -> None:
    remembered: List[Path] = []
    queue = _queue(workspace, known_root=False, remember_root=remembered.append)
    first_source = workspace.download("boom.wav")
    second_source = workspace.download("boom.wav", folder="Later")

    async def scenario():
        first = await queue.enqueue(first_source, project=workspace.project)
        pending = await queue.process(first.id)
        done = await queue.resolve_unknown_root(first.id, RootResolution.PROCEED_AND_REMEMBER)
        second = await queue.enqueue(second_source, project=workspace.project)
        return pending, done, await queue.process(second.id)

    pending, done, second = asyncio.run(scenario())

    assert pending.decision.kind is DecisionKind.UNKNOWN_ROOT
    assert done.status is ItemStatus.COMPLETED
    assert remembered == [workspace.root]
    assert second.decision.kind is DecisionKind.CONFLICT


def test_proceed_once_asks_again_for_next_item(workspace: _Workspace) -> None:
    engine = _FakeEngine({"a.wav": SFX_IMPACT, "b.wav": SFX_IMPACT})
    queue = _queue(workspace, engine, known_root=False)

    async def scenario():
        first = await queue.enqueue(workspace.download("a.wav"), project=workspace.project)
        await queue.process(first.id)
        done = await queue.resolve_unknown_root(first.id, RootResolution.PROCEED_ONCE)
        second = await queue.enqueue(workspace.download("b.wav"), project=workspace.project)
        return done, await queue.process(second.id)

    done, second = asyncio.run(scenario())

    assert done.status is ItemStatus.COMPLETED
    assert second.decision.kind is DecisionKind.UNKNOWN_ROOT


def _existing_destination(workspace: _Workspace) -> Path:
    destination = workspace.main / "04_SFX" / "Impacts" / "boom.wav"
    destination.parent.mkdir(parents=True)
    destination.write_text("old", encoding="utf-8")
    return destination


def test_conflict_versioning_counts_up(workspace: _Workspace) -> None:
    existing = _existing_destination(workspace)
    queue = _queue(workspace)

    async def resolve(folder: str):
        item = await queue.enqueue(workspace.download("boom.wav", folder=folder), project=workspace.project)
        pending = await queue.process(item.id)
        assert pending.decision.kind is DecisionKind.CONFLICT
        assert pending.decision.path == existing
        return await queue.resolve_conflict(item.id, ConflictResolution.VERSION)

    async def scenario():
        return await resolve("First"), await resolve("Second")

    first, second = asyncio.run(scenario())

    assert first.paths == (existing.with_name("boom_v2.wav"),)
    assert second.paths == (existing.with_name("boom_v3.wav"),)
    assert existing.read_text(encoding="utf-8") == "old"


def test_conflict_overwrite_replaces_destination(workspace: _Workspace) -> None:
    existing = _existing_destination(workspace)
    queue = _queue(workspace)

    async def scenario():
        item = await queue.enqueue(workspace.download("boom.wav"), project=workspace.project)
        await queue.process(item.id)
        return await queue.resolve_conflict(item.id, ConflictResolution.OVERWRITE)

    outcome = asyncio.run(scenario())

    assert outcome.status is ItemStatus.COMPLETED
    assert existing.read_text(encoding="utf-8") == "new"


def test_conflict_skip_leaves_source(workspace: _Workspace) -> None:
    _existing_destination(workspace)
    queue = _queue(workspace)
    source = workspace.download("boom.wav")

    async def scenario():
        item = await queue.enqueue(source, project=workspace.project)
        await queue.process(item.id)
        with pytest.raises(ItemStateError):
            await queue.resolve_unknown_root(item.id, RootResolution.PROCEED_ONCE)
        return await queue.resolve_conflict(item.id, ConflictResolution.SKIP)

    outcome = asyncio.run(scenario())

    assert outcome.status is ItemStatus.SKIPPED
    assert source.exists()


def test_failed_move_is_recorded(workspace: _Workspace) -> None:
    queue = _queue(workspace, mover=_FailingMover())

    async def scenario():
        item = await queue.enqueue(workspace.download("boom.wav"), project=workspace.project)
        outcome = await queue.process(item.id)
        with pytest.raises(ItemStateError):
            await queue.process(item.id)
        return item, outcome

    item, outcome = asyncio.run(scenario())

    assert outcome.status is ItemStatus.FAILED
    assert item.error == "denied"
    assert workspace.history.records()[0].detail == "denied"


def test_unknown_category_fails_until_updated(workspace: _Workspace) -> None:
    engine = _FakeEngine()
    queue = _queue(workspace, engine)

    async def scenario():
        unknown = await queue.enqueue(workspace.download("mystery.bin"), project=workspace.project)
        assert unknown.needs_manual_classification
        failed = await queue.process(unknown.id)

        fixed = await queue.enqueue(workspace.download("other.bin"), project=workspace.project)
        await queue.update(fixed.id, category=AssetCategory.SFX)
        assert not fixed.needs_manual_classification
        return failed, await queue.process(fixed.id)

    failed, done = asyncio.run(scenario())

    assert failed.status is ItemStatus.FAILED
    assert done.paths == (workspace.main / "04_SFX" / "other.bin",)


def test_missing_project_fails(workspace: _Workspace) -> None:
    queue = _queue(workspace)

    async def scenario():
        item = await queue.enqueue(workspace.download("boom.wav"))
        outcome = await queue.process(item.id)
        with pytest.raises(ItemStateError):
            await queue.update(item.id, category=AssetCategory.MUSIC)
        return item, outcome

    item, outcome = asyncio.run(scenario())

    assert outcome.status is ItemStatus.FAILED
    assert item.error == "No target project selected"


def test_zip_archive_is_extracted(workspace: _Workspace) -> None:
    engine = _FakeEngine()
    queue = _queue(workspace, engine)
    archive = workspace.downloads / "pack.zip"
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("clip.mp4", b"video")
        handle.writestr("__MACOSX/._clip.mp4", b"junk")

    async def scenario():
        item = await queue.enqueue(archive, project=workspace.project, category=AssetCategory.STOCK_FOOTAGE)
        assert [change.status for change in item.status_history] == [ItemStatus.QUEUED]
        return await queue.process(item.id)

    outcome = asyncio.run(scenario())

    folder = workspace.main / "04_Visuals" / "StockFootage" / "pack"
    assert outcome.paths == (folder / "clip.mp4",)
    assert not archive.exists()
    assert not (folder / "__MACOSX").exists()
    assert engine.calls == []


def _stock_pack(workspace: _Workspace) -> Path:
    archive = workspace.downloads / "pack.zip"
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("clip.mp4", b"video")
        handle.writestr("shots/still.png", b"image")
    return archive


def _process_pack(queue: ProcessingQueue, workspace: _Workspace, archive: Path):
    async def scenario():
        item = await queue.enqueue(archive, project=workspace.project, category=AssetCategory.STOCK_FOOTAGE)
        return item, await queue.process(item.id)

    return asyncio.run(scenario())


def test_unreadable_archive_member_fails_item(workspace: _Workspace, monkeypatch: pytest.MonkeyPatch) -> None:
    queue = _queue(workspace)
    archive = _stock_pack(workspace)

    def encrypted(self, path=None, members=None, pwd=None):
        raise RuntimeError("File clip.mp4 is encrypted, password required for extraction")

    monkeypatch.setattr(zipfile.ZipFile, "extractall", encrypted)

    item, outcome = _process_pack(queue, workspace, archive)

    stock = workspace.main / "04_Visuals" / "StockFootage"
    assert outcome.status is ItemStatus.FAILED
    assert "encrypted" in item.error
    assert archive.exists()
    assert not (stock / "pack").exists()
    assert not (stock / ".pack.partial").exists()
    records = workspace.history.records()
    assert [record.status for record in records] == [ItemStatus.FAILED]
    assert "encrypted" in records[0].detail


def test_archive_history_counts_extracted_files(workspace: _Workspace) -> None:
    queue = _queue(workspace)
    archive = _stock_pack(workspace)

    item, outcome = _process_pack(queue, workspace, archive)

    folder = workspace.main / "04_Visuals" / "StockFootage" / "pack"
    assert outcome.status is ItemStatus.COMPLETED
    assert item.child_files == ["clip.mp4", "shots/still.png"]
    record = workspace.history.records()[0]
    assert record.is_folder is True
    assert record.file_count == 2
    assert record.destination_path == str(folder)


def test_archive_overwrite_replaces_existing_folder(workspace: _Workspace) -> None:
    queue = _queue(workspace)
    archive = _stock_pack(workspace)
    folder = workspace.main / "04_Visuals" / "StockFootage" / "pack"
    folder.mkdir(parents=True)
    (folder / "stale.mp4").write_bytes(b"old")

    async def scenario():
        item = await queue.enqueue(archive, project=workspace.project, category=AssetCategory.STOCK_FOOTAGE)
        pending = await queue.process(item.id)
        assert pending.decision.kind is DecisionKind.CONFLICT
        assert pending.decision.path == folder
        return await queue.resolve_conflict(item.id, ConflictResolution.OVERWRITE)

    outcome = asyncio.run(scenario())

    assert outcome.status is ItemStatus.COMPLETED
    assert (folder / "clip.mp4").read_bytes() == b"video"
    assert not (folder / "stale.mp4").exists()
    assert not archive.exists()


def test_same_name_items_in_one_batch_conflict(workspace: _Workspace) -> None:
    queue = _queue(workspace)
    destination = workspace.main / "04_SFX" / "Impacts" / "boom.wav"

    async def scenario():
        for folder in ("First", "Second"):
            await queue.enqueue(workspace.download("boom.wav", content=folder, folder=folder), project=workspace.project)
        outcomes = await queue.process_all()
        waiting = [outcome for outcome in outcomes if outcome.decision is not None]
        assert len(waiting) == 1
        assert waiting[0].decision.kind is DecisionKind.CONFLICT
        assert waiting[0].decision.path == destination
        resolved = await queue.resolve_conflict(waiting[0].decision.item_id, ConflictResolution.VERSION)
        return outcomes, resolved

    outcomes, resolved = asyncio.run(scenario())

    assert [outcome.status for outcome in outcomes].count(ItemStatus.COMPLETED) == 1
    assert resolved.paths == (destination.with_name("boom_v2.wav"),)
    assert sorted(
        path.read_text(encoding="utf-8") for path in destination.parent.iterdir()
    ) == ["First", "Second"]


def test_process_all_handles_items_concurrently(workspace: _Workspace) -> None:
    engine = _FakeEngine({"a.wav": SFX_IMPACT, "b.wav": SFX_IMPACT})
    queue = _queue(workspace, engine)

    async def scenario():
        for name in ("a.wav", "b.wav"):
            await queue.enqueue(workspace.download(name), project=workspace.project)
        return await queue.process_all()

    outcomes = asyncio.run(scenario())

    assert sorted(outcome.status for outcome in outcomes) == [ItemStatus.COMPLETED, ItemStatus.COMPLETED]
    assert sorted(path.name for path in (workspace.main / "04_SFX" / "Impacts").iterdir()) == ["a.wav", "b.wav"]


def test_clear_and_expiry(workspace: _Workspace) -> None:
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    queue = _queue(workspace, clock=lambda: start)

    item = asyncio.run(queue.enqueue(workspace.download("boom.wav"), project=workspace.project))

    assert queue.clear_expired(start + timedelta(minutes=30)) == 0
    assert queue.clear_expired(start + timedelta(hours=1)) == 1
    assert queue.items == []
    with pytest.raises(ItemNotFoundError):
        queue.get(item.id)
    with pytest.raises(ItemNotFoundError):
        asyncio.run(queue.process(uuid4()))


def test_next_versioned_path(tmp_path: Path) -> None:
    (tmp_path / "a.wav").write_text("1", encoding="utf-8")
    (tmp_path / "a_v2.wav").write_text("2", encoding="utf-8")
    (tmp_path / "Pack").mkdir()

    assert next_versioned_path(tmp_path / "a.wav") == tmp_path / "a_v3.wav"
    assert next_versioned_path(tmp_path / "Pack") == tmp_path / "Pack_v2"


def test_mover_moves_folders_and_refuses_existing(tmp_path: Path) -> None:
    folder = tmp_path / "Stems"
    folder.mkdir()
    (folder / "bass.wav").write_text("b", encoding="utf-8")
    target = tmp_path / "Music" / "Stems"
    mover = FileMover()

    assert mover.move(folder, target) == [target]
    assert (target / "bass.wav").exists()

    other = tmp_path / "Stems"
    other.mkdir()
    with pytest.raises(FileExistsError):
        mover.move(other, target)
    with pytest.raises(FileNotFoundError):
        mover.move(tmp_path / "missing.wav", tmp_path / "x.wav")


def test_mover_rejects_corrupt_archive(tmp_path: Path) -> None:
    archive = tmp_path / "broken.zip"
    archive.write_bytes(b"not a zip")

    with pytest.raises(MoveError):
        FileMover().move(archive, tmp_path / "out" / "broken")
    assert archive.exists()


def test_mover_keeps_existing_folder_when_extraction_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    archive = tmp_path / "pack.zip"
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("clip.mp4", b"video")
    folder = tmp_path / "out" / "pack"
    folder.mkdir(parents=True)
    (folder / "keep.mp4").write_bytes(b"old")

    def unsupported(self, path=None, members=None, pwd=None):
        raise NotImplementedError("That compression method is not supported")

    monkeypatch.setattr(zipfile.ZipFile, "extractall", unsupported)

    with pytest.raises(MoveError):
        FileMover().move(archive, folder, overwrite=True)
    assert (folder / "keep.mp4").read_bytes() == b"old"
    assert not (folder.parent / ".pack.partial").exists()
    assert archive.exists()
