"""Models describing scanned folder trees and custom folder templates."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterator, Mapping, Optional, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from assetroute.classification.models import AssetCategory
from assetroute.config.models import FolderStructurePreset


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FolderNode(_CamelModel):
    """One directory in a scanned folder tree.

    Attributes:
        id: Stable identifier of the node.
        name: Directory name, e.g. ``03_Audio``.
        relative_path: Path from the scanned root, e.g. ``03_Audio/01_Music``.
        children: Sub-directories in name order.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    relative_path: str = Field(default="", alias="relativePath")
    children: Tuple["FolderNode", ...] = ()

    def walk(self) -> Iterator["FolderNode"]:
        """Yield every descendant depth-first, excluding this node."""
        for child in self.children:
            yield child
            yield from child.walk()

    def count(self) -> int:
        return sum(1 for _ in self.walk())


class CategoryPathMapping(_CamelModel):
    """Relative template path chosen for each asset category.

    Attributes:
        music_path: Folder for music.
        sfx_path: Folder for sound effects.
        vo_path: Folder for voice-overs.
        graphics_path: Folder for graphics.
        motion_graphics_path: Folder for motion graphics.
        stock_footage_path: Folder for stock footage.
        description: Short explanation returned by the analysis service.
        analyzed_at: When the mapping was produced.
    """

    music_path: Optional[str] = Field(default=None, alias="musicPath")
    sfx_path: Optional[str] = Field(default=None, alias="sfxPath")
    vo_path: Optional[str] = Field(default=None, alias="voPath")
    graphics_path: Optional[str] = Field(default=None, alias="graphicsPath")
    motion_graphics_path: Optional[str] = Field(default=None, alias="motionGraphicsPath")
    stock_footage_path: Optional[str] = Field(default=None, alias="stockFootagePath")
    description: Optional[str] = None
    analyzed_at: Optional[datetime] = Field(default=None, alias="analyzedAt")

    @classmethod
    def from_category_map(
        cls,
        mapping: Mapping[str, object],
        *,
        description: Optional[str] = None,
        analyzed_at: Optional[datetime] = None,
    ) -> "CategoryPathMapping":
        """Build a mapping from ``{category name: path}`` pairs.

        Category keys are parsed leniently, so ``VO`` and ``VoiceOver`` are
        both accepted. Unknown keys and non-string paths are ignored.
        """
        values: Dict[str, str] = {}
        for key, value in mapping.items():
            category = AssetCategory.parse(str(key))
            field_name = _FIELD_BY_CATEGORY.get(category) if category else None
            if field_name and isinstance(value, str) and value.strip():
                values[field_name] = value.strip()
        return cls(description=description, analyzed_at=analyzed_at or _utcnow(), **values)

    def path_for(self, category: AssetCategory | str) -> Optional[str]:
        """Return the template path for ``category``, or None when unmapped."""
        if isinstance(category, str) and not isinstance(category, AssetCategory):
            parsed = AssetCategory.parse(category)
            if parsed is None:
                return None
            category = parsed
        field_name = _FIELD_BY_CATEGORY.get(category)
        return getattr(self, field_name) if field_name else None

    @property
    def paths(self) -> Dict[AssetCategory, Optional[str]]:
        return {category: getattr(self, name) for category, name in _FIELD_BY_CATEGORY.items()}


_FIELD_BY_CATEGORY: Dict[AssetCategory, str] = {
    AssetCategory.MUSIC: "music_path",
    AssetCategory.SFX: "sfx_path",
    AssetCategory.VOICE_OVER: "vo_path",
    AssetCategory.GRAPHIC: "graphics_path",
    AssetCategory.MOTION_GRAPHIC: "motion_graphics_path",
    AssetCategory.STOCK_FOOTAGE: "stock_footage_path",
}


class CustomFolderTemplate(_CamelModel):
    """User folder structure plus the category mapping derived from it.

    Attributes:
        source_path: Directory the tree was scanned from.
        folder_tree: Scanned directory tree rooted at ``source_path``.
        mapping: Category to relative path mapping.
        created_at: When the template was first saved.
        last_updated_at: When the mapping was last refreshed.
    """

    source_path: str = Field(alias="sourcePath")
    folder_tree: FolderNode = Field(alias="folderTree")
    mapping: CategoryPathMapping = Field(default_factory=CategoryPathMapping)
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    last_updated_at: datetime = Field(default_factory=_utcnow, alias="lastUpdatedAt")


class DeployConfig(_CamelModel):
    """Active preset and optional template used when deploying folders."""

    folder_structure_preset: FolderStructurePreset = Field(
        default=FolderStructurePreset.STANDARD, alias="folderStructurePreset"
    )
    custom_folder_template: Optional[CustomFolderTemplate] = Field(
        default=None, alias="customFolderTemplate"
    )


FolderNode.model_rebuild()


__all__ = [
    "CategoryPathMapping",
    "CustomFolderTemplate",
    "DeployConfig",
    "FolderNode",
]
