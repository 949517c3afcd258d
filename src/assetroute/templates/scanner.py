"""Directory scanning for folder templates."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .models import FolderNode

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5


def scan_folder_tree(root: Path, max_depth: int = DEFAULT_MAX_DEPTH) -> FolderNode:
    """Scan ``root`` into a tree of directories.

    Hidden entries and files are skipped, children are sorted by name, and
    directories deeper than ``max_depth`` levels below the root are not read.

    Args:
        root: Directory to scan.
        max_depth: Number of directory levels to include below the root.

    Returns:
        FolderNode: Root node with an empty relative path.
    """
    root = root.expanduser()
    children = _scan_children(root, root, depth=0, max_depth=max_depth)
    return FolderNode(name=root.name, relative_path="", children=tuple(children))


def tree_to_string(node: FolderNode, indent: str = "") -> str:
    """Render ``node`` as an indented ``name/`` listing."""
    lines = f"{indent}{node.name}/\n"
    for child in node.children:
        lines += tree_to_string(child, indent + "  ")
    return lines


def _scan_children(directory: Path, root: Path, *, depth: int, max_depth: int) -> List[FolderNode]:
    if depth >= max_depth:
        return []
    try:
        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError as exc:
        LOGGER.debug("Unable to list %s: %s", directory, exc)
        return []

    nodes: List[FolderNode] = []
    for entry in entries:
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        nested = _scan_children(entry, root, depth=depth + 1, max_depth=max_depth)
        nodes.append(
            FolderNode(
                name=entry.name,
                relative_path=entry.relative_to(root).as_posix(),
                children=tuple(nested),
            )
        )
    return nodes


__all__ = ["DEFAULT_MAX_DEPTH", "scan_folder_tree", "tree_to_string"]
