"""Tests for the processing history repository."""

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from assetroute.classification.models import AssetCategory
from assetroute.ingestion import AssetMetadata
from assetroute.queue.models import AssetItem
from assetroute.routing import ProjectReference
from assetroute.state import HistoryRecord, HistoryRepository, ItemStatus, StateError


def _item(tmp_path: Path, name: str = "boom.wav", **fields) -> AssetItem:
    values = {
        "source_path": tmp_path / name,
        "category": AssetCategory.SFX,
        "status": ItemStatus.COMPLETED,
        "target_path": tmp_path / "P" / "04_SFX" / name,
        "target_project": ProjectReference(
            name="P", root_path=tmp_path, project_path=tmp_path / "P" / "P.prproj"
        ),
    }
    values.update(fields)
    return AssetItem(**values)


def test_record_persists_terminal_item(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    repository = HistoryRepository(path)

    entry = repository.record(_item(tmp_path))

    assert entry.status is ItemStatus.COMPLETED
    assert entry.category == "SFX"
    assert entry.target_project == "P"
    assert entry.file_count == 1
    reloaded = HistoryRepository(path).records()
    assert [record.filename for record in reloaded] == ["boom.wav"]
    assert reloaded[0].destination_path == str(tmp_path / "P" / "04_SFX" / "boom.wav")


def test_folder_records_count_children(tmp_path: Path) -> None:
    repository = HistoryRepository(tmp_path / "history.json")
    metadata = AssetMetadata(filename="Stems", is_directory=True, child_files=["a.wav", "b.wav", "c.wav"])

    entry = repository.record(
        _item(tmp_path, "Stems", metadata=metadata, child_files=metadata.child_files, status=ItemStatus.FAILED, error="denied")
    )

    assert entry.is_folder is True
    assert entry.file_count == 3
    assert entry.detail == "denied"


def test_history_is_capped(tmp_path: Path) -> None:
    repository = HistoryRepository(tmp_path / "history.json", max_records=2)

    for name in ("a.wav", "b.wav", "c.wav"):
        repository.record(_item(tmp_path, name))

    assert [record.filename for record in repository.records()] == ["b.wav", "c.wav"]


def _write_records(path: Path, *timestamps: datetime) -> None:
    records = [
        HistoryRecord(
            filename=f"file{index}.wav",
            category="Music",
            source_path=f"/downloads/file{index}.wav",
            status=ItemStatus.COMPLETED,
            timestamp=stamp,
        ).model_dump(mode="json")
        for index, stamp in enumerate(timestamps)
    ]
    path.write_text(json.dumps(records), encoding="utf-8")


def test_today_and_cleanup(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    now = datetime.now().astimezone().replace(hour=12, minute=0, second=0, microsecond=0)
    _write_records(path, now - timedelta(days=2), now - timedelta(seconds=5), now)
    repository = HistoryRepository(path)

    assert [record.filename for record in repository.today(now)] == ["file2.wav", "file1.wav"]
    assert repository.cleanup(now) == 1
    assert repository.cleanup(now) == 0
    assert len(HistoryRepository(path).records()) == 2


@pytest.mark.parametrize("content", ["{not json", json.dumps({"records": []}), json.dumps([{"filename": 1}])])
def test_invalid_history_raises_state_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "history.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StateError):
        HistoryRepository(path)
