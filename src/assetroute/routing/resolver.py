"""Destination folder resolution inside production projects."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import List, Optional

from assetroute.classification.models import AssetCategory, DetectedSource
from assetroute.config.models import FolderStructurePreset, MusicMode, RoutingSettings
from assetroute.templates.models import CustomFolderTemplate

from . import vocabulary as names
from .errors import InvalidProjectRoot, UnknownAssetType
from .matching import child_directories, find_or_create_folder
from .models import ProjectReference

LOGGER = logging.getLogger(__name__)


def _within(path: Path, boundary: Path) -> bool:
    resolved = path.resolve()
    limit = boundary.resolve()
    return resolved == limit or limit in resolved.parents


def find_project_main_folder(project_file: Path, root_boundary: Path) -> Path:
    """Locate the folder that holds a project's category folders.

    Walking upward from the project file's directory, the first level whose
    children include structure markers (``02_`` to ``06_`` prefixes or plain
    audio/music names) wins. A level that is itself an editing application
    folder such as ``01_Adobe`` yields its parent, which supports brand-new
    projects without any structure yet. Markers are checked before the
    editing-folder rule at every level.

    Args:
        project_file: Primary project file.
        root_boundary: Configured root the walk must stay inside.

    Returns:
        Path: Main folder of the project.
    """
    start = project_file.expanduser().parent
    boundary = root_boundary.expanduser()

    current = start
    while True:
        if not _within(current, boundary):
            LOGGER.debug("Left root %s, using %s", boundary, start)
            return start
        if any(names.is_structure_marker(child.name) for child in child_directories(current)):
            return current
        parent = current.parent
        if names.is_editing_app_folder(current.name) and parent != current and _within(parent, boundary):
            return parent
        if parent == current:
            break
        current = parent

    fallback = start
    while fallback.parent != fallback:
        if not names.is_editing_app_folder(fallback.name):
            return fallback
        fallback = fallback.parent
    return start


def find_existing_audio_folder(main_folder: Path) -> Optional[Path]:
    """Return the project's audio folder, skipping editing application folders.

    Plain ``Audio``/``Music``/``Muziek`` folders are preferred over ``03_``
    prefixed ones.
    """
    candidates = [
        child
        for child in child_directories(main_folder)
        if not names.is_editing_app_folder(child.name) and "preview" not in child.name.lower()
    ]
    for child in candidates:
        if child.name.lower() in names.AUDIO_FOLDER_NAMES:
            return child
    for child in candidates:
        if child.name.startswith("03_"):
            return child
    return None


class PathResolver:
    """Resolve the folder an asset should be moved into."""

    def __init__(
        self,
        settings: RoutingSettings | None = None,
        *,
        template: CustomFolderTemplate | None = None,
    ) -> None:
        self._settings = settings or RoutingSettings()
        self._template = template

    @property
    def template(self) -> CustomFolderTemplate | None:
        return self._template

    def find_project_main_folder(self, project_file: Path, root_boundary: Path) -> Path:
        return find_project_main_folder(project_file, root_boundary)

    def find_existing_audio_folder(self, main_folder: Path) -> Optional[Path]:
        return find_existing_audio_folder(main_folder)

    def resolve_target(
        self,
        project: ProjectReference,
        category: AssetCategory,
        subfolder: str | None = None,
        music_mode: MusicMode | None = None,
        source: DetectedSource | None = None,
    ) -> Path:
        """Return the destination folder for an asset, creating folders as needed.

        Args:
            project: Target project.
            category: Asset category.
            subfolder: Mood/genre for music or SFX category; ignored for others.
            music_mode: Sub-folder scheme for music; defaults to the configured mode.
            source: Detected origin, used for the YouTube 4K folder.

        Returns:
            Path: Existing destination directory.

        Raises:
            UnknownAssetType: If ``category`` is Unknown.
            InvalidProjectRoot: If the project's root is not a directory.
        """
        if not category.is_known:
            raise UnknownAssetType(f"Cannot route {project.name}: asset category is unknown")
        root = project.root_path.expanduser()
        if not root.is_dir():
            raise InvalidProjectRoot(f"Project root does not exist: {root}")

        main = self.find_project_main_folder(project.project_path, root)
        mode = music_mode or self._settings.music_mode
        sub = (subfolder or "").strip() or None

        templated = self._template_folder(main, category)
        if templated is not None:
            target = self._sub_route(templated, category, sub, mode, source)
        else:
            target = self._route_by_table(main, category, sub, mode, source)
        LOGGER.info("Routing %s asset to %s", category.value, target)
        return target

    # ------------------------------------------------------------------ #
    # Internal helpers

    def _folder(self, parent: Path, key_or_names: str | List[str]) -> Path:
        variants = names.FOLDER_NAMES[key_or_names] if isinstance(key_or_names, str) else key_or_names
        return find_or_create_folder(parent, variants, min_match_length=self._settings.min_match_length)

    def _route_by_table(
        self,
        main: Path,
        category: AssetCategory,
        sub: Optional[str],
        mode: MusicMode,
        source: Optional[DetectedSource],
    ) -> Path:
        if category in (AssetCategory.MUSIC, AssetCategory.VOICE_OVER):
            audio = self.find_existing_audio_folder(main) or self._folder(main, "Audio")
            if category is AssetCategory.VOICE_OVER:
                return self._folder(audio, "VO")
            return self._sub_route(audio, category, sub, mode, source)
        if category is AssetCategory.SFX:
            return self._sub_route(self._folder(main, "SFX"), category, sub, mode, source)
        visuals = self._folder(main, "Visuals")
        if category is AssetCategory.STOCK_FOOTAGE:
            if source is DetectedSource.YOUTUBE_4K:
                return self._folder(visuals, [names.YOUTUBE_4K_FOLDER])
            return self._folder(visuals, [names.STOCK_FOOTAGE_FOLDER])
        return self._folder(visuals, "Graphics")

    def _sub_route(
        self,
        base: Path,
        category: AssetCategory,
        sub: Optional[str],
        mode: MusicMode,
        source: Optional[DetectedSource],
    ) -> Path:
        if category is AssetCategory.MUSIC and sub:
            mode_folder = names.MOOD_FOLDER if mode is MusicMode.MOOD else names.GENRE_FOLDER
            return self._folder(self._folder(base, [mode_folder]), [sub])
        if category is AssetCategory.SFX and sub and self._settings.use_sfx_subfolders:
            return self._folder(base, [sub])
        if category is AssetCategory.STOCK_FOOTAGE and source is DetectedSource.YOUTUBE_4K:
            return self._folder(base, [names.YOUTUBE_4K_FOLDER])
        return base

    def _template_folder(self, main: Path, category: AssetCategory) -> Optional[Path]:
        if self._settings.folder_structure_preset is not FolderStructurePreset.CUSTOM:
            return None
        template = self._template
        if template is None:
            return None
        relative = template.mapping.path_for(category)
        if not relative:
            return None
        folder = main
        for part in _template_parts(template, relative):
            folder = self._folder(folder, [part])
        return folder


def _template_parts(template: CustomFolderTemplate, relative: str) -> List[str]:
    """Split a mapped path into segments below the template root."""
    path = PurePosixPath(relative.replace("\\", "/"))
    if path.is_absolute():
        try:
            path = path.relative_to(PurePosixPath(template.source_path))
        except ValueError:
            path = PurePosixPath(*path.parts[1:])
    parts = [part for part in path.parts if part not in ("", ".", "..")]
    tree = template.folder_tree
    top_level = {child.name for child in tree.children}
    if parts and parts[0] == tree.name and parts[0] not in top_level:
        parts = parts[1:]
    return parts


__all__ = ["PathResolver", "find_existing_audio_folder", "find_project_main_folder"]
