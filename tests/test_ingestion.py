"""Tests for metadata extraction."""

import wave
from pathlib import Path
from types import SimpleNamespace

import pytest
from PIL import Image

from assetroute.classification.heuristics import HeuristicClassifier
from assetroute.classification.models import AssetCategory
from assetroute.ingestion import AssetMetadata, MetadataExtractor


def test_extract_file_with_source_metadata(tmp_path: Path) -> None:
    track = tmp_path / "Night Drive.mp3"
    track.write_bytes(b"id3" * 10)

    metadata = MetadataExtractor().extract(
        track,
        {
            "title": "Night Drive",
            "artists": ["Nova", "Guest"],
            "genres": ["Synthwave"],
            "moods": ["Dreamy"],
            "bpm": "98",
            "duration": 183.4,
            "pageUrl": "https://www.epidemicsound.com/track/abc/",
        },
    )

    assert metadata.filename == "Night Drive.mp3"
    assert metadata.artist == "Nova"
    assert metadata.genre == "Synthwave"
    assert metadata.scraped_moods == ["Dreamy"]
    assert metadata.bpm == 98
    assert metadata.origin_url == "https://www.epidemicsound.com/track/abc/"
    assert metadata.size_bytes == 30
    assert metadata.stem == "Night Drive"
    assert metadata.extension == "mp3"


def test_extract_folder_lists_visible_children(tmp_path: Path) -> None:
    folder = tmp_path / "Pack"
    (folder / "sub").mkdir(parents=True)
    (folder / "a.wav").write_bytes(b"12")
    (folder / "sub" / "b.wav").write_bytes(b"345")
    (folder / ".DS_Store").write_bytes(b"x")
    (folder / ".cache").mkdir()
    (folder / ".cache" / "c.wav").write_bytes(b"x")

    metadata = MetadataExtractor().extract(folder)

    assert metadata.is_directory is True
    assert metadata.child_files == ["a.wav", "sub/b.wav"]
    assert metadata.size_bytes == 5
    assert metadata.extension == ""


def test_extract_image_dimensions(tmp_path: Path) -> None:
    image_path = tmp_path / "logo.png"
    Image.new("RGB", (4, 3)).save(image_path)

    metadata = MetadataExtractor().extract(image_path)

    assert (metadata.width, metadata.height) == (4, 3)


def test_unreadable_image_has_no_dimensions(tmp_path: Path) -> None:
    image_path = tmp_path / "broken.png"
    image_path.write_bytes(b"not an image")

    metadata = MetadataExtractor().extract(image_path)

    assert metadata.width is None and metadata.height is None


def test_origin_url_argument_wins(tmp_path: Path) -> None:
    metadata = MetadataExtractor().extract(
        tmp_path / "missing.wav",
        {"pageUrl": "https://a.example/page"},
        origin_url="https://b.example/download",
    )

    assert metadata.origin_url == "https://b.example/download"
    assert metadata.size_bytes == 0


def test_payload_is_bounded() -> None:
    metadata = AssetMetadata(
        filename="x.wav",
        title="X",
        tags=[f"tag{i}" for i in range(30)],
        duration=12.7,
    )

    payload = metadata.to_payload(max_tags=5)

    assert payload["tags"] == ["tag0", "tag1", "tag2", "tag3", "tag4"]
    assert payload["duration"] == 12
    assert "artist" not in payload


def _write_silence(path: Path, seconds: int, rate: int = 8000) -> None:
    with wave.open(str(path), "wb") as handle:
        handle.setnchannels(1)
        handle.setsampwidth(1)
        handle.setframerate(rate)
        handle.writeframes(b"\x80" * rate * seconds)


def test_audio_duration_is_read_from_file(tmp_path: Path) -> None:
    short = tmp_path / "untitled.wav"
    _write_silence(short, 2)

    metadata = MetadataExtractor().extract(short)

    assert metadata.duration == pytest.approx(2.0)
    result = HeuristicClassifier().classify(metadata)
    assert result is not None
    assert result.category is AssetCategory.SFX


def test_supplied_duration_wins_over_file(tmp_path: Path) -> None:
    track = tmp_path / "untitled.wav"
    _write_silence(track, 2)

    metadata = MetadataExtractor().extract(track, {"duration": 45})

    assert metadata.duration == 45


def test_embedded_tags_fill_missing_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    track = tmp_path / "hit.mp3"
    track.write_bytes(b"audio")
    media = SimpleNamespace(
        info=SimpleNamespace(length=31.5),
        tags={"title": ["Hit"], "artist": ["Nova"], "genre": ["Pop"], "bpm": ["120"], "initialkey": ["Am"]},
    )
    monkeypatch.setattr("assetroute.ingestion.extractors.MutagenFile", lambda path, easy: media)

    metadata = MetadataExtractor().extract(track, {"artist": "Supplied"})

    assert (metadata.title, metadata.artist, metadata.genre) == ("Hit", "Supplied", "Pop")
    assert (metadata.bpm, metadata.key, metadata.duration) == (120, "Am", 31.5)


def test_unreadable_media_keeps_supplied_values(tmp_path: Path) -> None:
    track = tmp_path / "broken.mp3"
    track.write_bytes(b"not audio at all")

    metadata = MetadataExtractor().extract(track, {"title": "Broken"})

    assert metadata.title == "Broken"
    assert metadata.duration is None
