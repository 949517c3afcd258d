"""Create folder skeletons inside project directories."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence, Tuple

from assetroute.config.models import FolderStructurePreset

from .errors import InvalidTargetDirectory
from .models import DeployConfig, FolderNode

LOGGER = logging.getLogger(__name__)

STANDARD_SKELETON: Tuple[Tuple[str, Sequence[str]], ...] = (
    ("03_Audio", ("01_Music", "02_VO")),
    ("04_SFX", ()),
    ("04_Visuals", ("01_Graphics", "02_MotionGraphics", "03_Stills")),
    ("05_VFX", ()),
)


def deploy(target_directory: Path, config: DeployConfig) -> int:
    """Create the folders for the active preset below ``target_directory``.

    Existing folders are left alone, so deploying twice creates nothing the
    second time. A Custom preset without a stored template deploys the
    Standard skeleton.

    Args:
        target_directory: Existing directory to populate.
        config: Active preset and optional custom template.

    Returns:
        int: Number of folders created by this call.

    Raises:
        InvalidTargetDirectory: If the target is missing or not a directory.
    """
    target = target_directory.expanduser()
    if not target.is_dir():
        raise InvalidTargetDirectory(f"Target directory is not valid or does not exist: {target}")

    preset = config.folder_structure_preset
    if preset is FolderStructurePreset.FLAT:
        return 0
    if preset is FolderStructurePreset.CUSTOM and config.custom_folder_template is not None:
        created = _deploy_tree(config.custom_folder_template.folder_tree, target)
    else:
        created = _deploy_standard(target)
    LOGGER.info("Deployed %s preset to %s (%d new folders)", preset.value, target, created)
    return created


def _deploy_standard(target: Path) -> int:
    created = 0
    for name, children in STANDARD_SKELETON:
        folder = target / name
        created += _ensure_dir(folder)
        for child in children:
            created += _ensure_dir(folder / child)
    return created


def _deploy_tree(node: FolderNode, parent: Path) -> int:
    created = 0
    for child in node.children:
        folder = parent / child.name
        created += _ensure_dir(folder)
        created += _deploy_tree(child, folder)
    return created


def _ensure_dir(path: Path) -> int:
    if path.exists():
        return 0
    path.mkdir(parents=True)
    return 1


__all__ = ["STANDARD_SKELETON", "deploy"]
