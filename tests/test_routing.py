"""Tests for folder matching and destination resolution."""

from pathlib import Path

import pytest

from assetroute.classification.models import AssetCategory, DetectedSource
from assetroute.config.models import FolderStructurePreset, MusicMode, RoutingSettings
from assetroute.routing import (
    InvalidProjectRoot,
    PathResolver,
    ProjectReference,
    RoutingError,
    UnknownAssetType,
    find_existing_audio_folder,
    find_existing_folder,
    find_or_create_folder,
    find_project_main_folder,
    normalize_folder_name,
)
from assetroute.routing.vocabulary import is_editing_app_folder, is_structure_marker
from assetroute.templates import CategoryPathMapping, CustomFolderTemplate, FolderNode


def _mkdirs(base: Path, *names: str) -> None:
    for name in names:
        (base / name).mkdir(parents=True, exist_ok=True)


def _project(root: Path, *parts: str) -> ProjectReference:
    project_file = root.joinpath(*parts)
    project_file.parent.mkdir(parents=True, exist_ok=True)
    project_file.write_text("project", encoding="utf-8")
    return ProjectReference.from_project_file(project_file, root)


def test_normalize_folder_name() -> None:
    assert normalize_folder_name(" 03_Audio ") == "audio"
    assert normalize_folder_name("Audio") == "audio"
    assert normalize_folder_name("01_02_Take") == "02_take"


def test_folder_name_predicates() -> None:
    assert is_editing_app_folder("01_Adobe")
    assert is_editing_app_folder("Adobe Premiere Pro Auto-Save")
    assert is_structure_marker("03_Audio")
    assert is_structure_marker("Music")
    assert not is_structure_marker("Audio Previews")
    assert not is_structure_marker("Footage")


def test_exact_match_wins_over_earlier_substring(tmp_path: Path) -> None:
    _mkdirs(tmp_path, "01_Musicbed", "Music")

    assert find_existing_folder(tmp_path, ["Music"]) == tmp_path / "Music"


def test_substring_match_and_minimum_length(tmp_path: Path) -> None:
    _mkdirs(tmp_path, "SFX_Library", "VO")

    assert find_existing_folder(tmp_path, ["SFX"]) == tmp_path / "SFX_Library"
    assert find_existing_folder(tmp_path, ["VOX"]) is None
    assert find_existing_folder(tmp_path, ["VOX"], min_match_length=2) == tmp_path / "VO"


def test_short_folder_is_not_a_substring_match(tmp_path: Path) -> None:
    short, numbered = tmp_path / "short", tmp_path / "numbered"
    _mkdirs(short, "Au")
    _mkdirs(numbered, "03_Audio")

    assert find_existing_folder(short, ["Audio"]) is None
    assert find_existing_folder(numbered, ["Audio", "03_Audio"]) == numbered / "03_Audio"
    assert find_existing_folder(numbered, ["audio"]) == numbered / "03_Audio"


def test_hidden_folders_are_ignored(tmp_path: Path) -> None:
    _mkdirs(tmp_path, ".Music")

    assert find_existing_folder(tmp_path, ["Music"]) is None


def test_find_or_create_uses_first_free_variant(tmp_path: Path) -> None:
    (tmp_path / "04_SFX").write_text("not a folder", encoding="utf-8")

    created = find_or_create_folder(tmp_path, ["04_SFX", "02_SFX", "SFX"])

    assert created == tmp_path / "02_SFX"
    assert created.is_dir()
    assert find_or_create_folder(tmp_path, ["04_SFX", "02_SFX", "SFX"]) == created


def test_find_or_create_errors(tmp_path: Path) -> None:
    (tmp_path / "Stuff").write_text("file", encoding="utf-8")

    with pytest.raises(ValueError):
        find_or_create_folder(tmp_path, [])
    with pytest.raises(RoutingError):
        find_or_create_folder(tmp_path, ["Stuff"])


def test_main_folder_is_parent_of_editing_app_folder(tmp_path: Path) -> None:
    project = _project(tmp_path, "01_Adobe", "Film.prproj")

    assert find_project_main_folder(project.project_path, tmp_path) == tmp_path


def test_structure_marker_beats_editing_app_rule(tmp_path: Path) -> None:
    project = _project(tmp_path, "01_Adobe", "Film.prproj")
    _mkdirs(tmp_path / "01_Adobe", "03_Audio")

    assert find_project_main_folder(project.project_path, tmp_path) == tmp_path / "01_Adobe"


def test_main_folder_found_by_markers_above_project(tmp_path: Path) -> None:
    project = _project(tmp_path, "Client", "Edit", "Film.prproj")
    _mkdirs(tmp_path / "Client", "04_SFX")

    assert find_project_main_folder(project.project_path, tmp_path) == tmp_path / "Client"


def test_main_folder_outside_root_uses_project_directory(tmp_path: Path) -> None:
    root = tmp_path / "Projects"
    root.mkdir()
    project_file = tmp_path / "Elsewhere" / "Edit" / "Film.prproj"
    project_file.parent.mkdir(parents=True)
    project_file.write_text("project", encoding="utf-8")

    assert find_project_main_folder(project_file, root) == project_file.parent


def test_audio_folder_prefers_plain_names(tmp_path: Path) -> None:
    _mkdirs(tmp_path, "01_Adobe", "03_Sound", "Audio Previews", "Music")

    assert find_existing_audio_folder(tmp_path) == tmp_path / "Music"


def test_audio_folder_falls_back_to_prefix(tmp_path: Path) -> None:
    _mkdirs(tmp_path, "01_Adobe", "03_Sound")

    assert find_existing_audio_folder(tmp_path) == tmp_path / "03_Sound"
    assert find_existing_audio_folder(tmp_path / "03_Sound") is None


@pytest.fixture
def project(tmp_path: Path) -> ProjectReference:
    root = tmp_path / "Projects"
    _mkdirs(root / "P", "03_Audio")
    return _project(root, "P", "01_Adobe", "P.prproj")


def test_music_goes_to_mood_folder(project: ProjectReference) -> None:
    main = project.root_path / "P"

    target = PathResolver().resolve_target(project, AssetCategory.MUSIC, "Epic")

    assert target == main / "03_Audio" / "Mood" / "Epic"
    assert target.is_dir()


def test_music_genre_mode(project: ProjectReference) -> None:
    target = PathResolver().resolve_target(project, AssetCategory.MUSIC, "Jazz", MusicMode.GENRE)

    assert target == project.root_path / "P" / "03_Audio" / "Genre" / "Jazz"


def test_music_without_subfolder_uses_audio_folder(project: ProjectReference) -> None:
    target = PathResolver().resolve_target(project, AssetCategory.MUSIC)

    assert target == project.root_path / "P" / "03_Audio"


def test_sfx_and_voice_over(project: ProjectReference) -> None:
    resolver = PathResolver()
    main = project.root_path / "P"

    assert resolver.resolve_target(project, AssetCategory.SFX, "Impacts") == main / "04_SFX" / "Impacts"
    assert resolver.resolve_target(project, AssetCategory.VOICE_OVER) == main / "03_Audio" / "03_VO"


def test_sfx_subfolders_can_be_disabled(project: ProjectReference) -> None:
    resolver = PathResolver(RoutingSettings(use_sfx_subfolders=False))

    assert resolver.resolve_target(project, AssetCategory.SFX, "Impacts") == project.root_path / "P" / "04_SFX"


def test_visual_categories(project: ProjectReference) -> None:
    resolver = PathResolver()
    visuals = project.root_path / "P" / "04_Visuals"

    assert resolver.resolve_target(project, AssetCategory.STOCK_FOOTAGE) == visuals / "StockFootage"
    assert (
        resolver.resolve_target(project, AssetCategory.STOCK_FOOTAGE, source=DetectedSource.YOUTUBE_4K)
        == visuals / "4KYoutube downloader"
    )
    assert resolver.resolve_target(project, AssetCategory.GRAPHIC) == visuals / "01_Graphics"
    assert resolver.resolve_target(project, AssetCategory.MOTION_GRAPHIC) == visuals / "01_Graphics"


def test_audio_folder_created_when_missing(tmp_path: Path) -> None:
    project = _project(tmp_path, "Fresh", "01_Adobe", "Fresh.prproj")

    target = PathResolver().resolve_target(project, AssetCategory.MUSIC, "Happy")

    assert target == tmp_path / "Fresh" / "03_Audio" / "Mood" / "Happy"


def test_unknown_category_and_missing_root(project: ProjectReference, tmp_path: Path) -> None:
    resolver = PathResolver()

    with pytest.raises(UnknownAssetType):
        resolver.resolve_target(project, AssetCategory.UNKNOWN)

    missing = project.model_copy(update={"root_path": tmp_path / "gone"})
    with pytest.raises(InvalidProjectRoot):
        resolver.resolve_target(missing, AssetCategory.SFX)


def _template() -> CustomFolderTemplate:
    tree = FolderNode(
        name="Agency",
        children=(
            FolderNode(name="Sound", relative_path="Sound", children=(FolderNode(name="Tracks", relative_path="Sound/Tracks"),)),
            FolderNode(name="Video", relative_path="Video"),
        ),
    )
    mapping = CategoryPathMapping(
        music_path="Agency/Sound/Tracks",
        stock_footage_path="/templates/Agency/Video",
    )
    return CustomFolderTemplate(source_path="/templates/Agency", folder_tree=tree, mapping=mapping)


def test_custom_template_routes_mapped_categories(project: ProjectReference) -> None:
    settings = RoutingSettings(folder_structure_preset=FolderStructurePreset.CUSTOM)
    resolver = PathResolver(settings, template=_template())
    main = project.root_path / "P"

    assert resolver.resolve_target(project, AssetCategory.MUSIC, "Epic") == main / "Sound" / "Tracks" / "Mood" / "Epic"
    assert (
        resolver.resolve_target(project, AssetCategory.STOCK_FOOTAGE, source=DetectedSource.YOUTUBE_4K)
        == main / "Video" / "4KYoutube downloader"
    )
    assert resolver.resolve_target(project, AssetCategory.SFX) == main / "04_SFX"


def test_template_ignored_outside_custom_preset(project: ProjectReference) -> None:
    resolver = PathResolver(template=_template())

    assert resolver.resolve_target(project, AssetCategory.MUSIC) == project.root_path / "P" / "03_Audio"
