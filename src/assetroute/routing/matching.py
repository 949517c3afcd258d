"""Fuzzy lookup and creation of category folders."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import RoutingError

LOGGER = logging.getLogger(__name__)

DEFAULT_MIN_MATCH_LENGTH = 3

_NUMERIC_PREFIX = re.compile(r"^\d+_")


def normalize_folder_name(name: str) -> str:
    """Lowercase, trim, and strip one leading ``NN_`` prefix."""
    return _NUMERIC_PREFIX.sub("", name.strip().lower(), count=1)


def child_directories(parent: Path) -> List[Path]:
    """Return the non-hidden sub-directories of ``parent`` sorted by name."""
    try:
        entries = sorted(parent.iterdir(), key=lambda entry: entry.name)
    except OSError:
        return []
    return [entry for entry in entries if not entry.name.startswith(".") and entry.is_dir()]


def find_existing_folder(
    parent: Path,
    names: Sequence[str],
    *,
    min_match_length: int = DEFAULT_MIN_MATCH_LENGTH,
) -> Optional[Path]:
    """Find a child of ``parent`` matching any of ``names``.

    An exact match after normalisation anywhere among the children wins.
    Otherwise the first child whose normalised name contains, or is
    contained in, a normalised variant is returned, provided both are at
    least ``min_match_length`` characters long.
    """
    wanted = [normalize_folder_name(name) for name in names]
    children = child_directories(parent)

    for child in children:
        if normalize_folder_name(child.name) in wanted:
            return child

    for child in children:
        candidate = normalize_folder_name(child.name)
        if len(candidate) < min_match_length:
            continue
        for variant in wanted:
            if len(variant) >= min_match_length and (variant in candidate or candidate in variant):
                return child
    return None


def find_or_create_folder(
    parent: Path,
    names: Sequence[str],
    *,
    min_match_length: int = DEFAULT_MIN_MATCH_LENGTH,
) -> Path:
    """Return a matching child of ``parent``, creating the first free variant if none exists.

    Raises:
        ValueError: If ``names`` is empty.
        RoutingError: If every variant is taken by a non-directory entry.
    """
    if not names:
        raise ValueError("At least one folder name variant is required")

    existing = find_existing_folder(parent, names, min_match_length=min_match_length)
    if existing is not None:
        return existing

    for name in names:
        folder = parent / name
        if folder.is_dir():
            return folder
        if not folder.exists():
            folder.mkdir(parents=True)
            LOGGER.info("Created folder %s", folder)
            return folder
    raise RoutingError(f"Cannot create folder in {parent}: every name variant is taken by a file")


__all__ = [
    "DEFAULT_MIN_MATCH_LENGTH",
    "child_directories",
    "find_existing_folder",
    "find_or_create_folder",
    "normalize_folder_name",
]
