"""Filesystem moves for processed assets."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path
from typing import List

from .errors import MoveError

LOGGER = logging.getLogger(__name__)

_SKIPPED_ARCHIVE_PREFIXES = ("__MACOSX/",)
# Encrypted members raise RuntimeError, unknown compression NotImplementedError.
_ARCHIVE_ERRORS = (zipfile.BadZipFile, zipfile.LargeZipFile, RuntimeError, NotImplementedError)


def next_versioned_path(path: Path) -> Path:
    """Return the first free ``<stem>_vN<suffix>`` sibling of ``path``, starting at 2."""
    stem, suffix = (path.name, "") if path.is_dir() else (path.stem, path.suffix)
    version = 2
    while True:
        candidate = path.with_name(f"{stem}_v{version}{suffix}")
        if not candidate.exists():
            return candidate
        version += 1


class FileMover:
    """Move files and folders into place and unpack ZIP archives."""

    def move(self, source: Path, target: Path, *, overwrite: bool = False) -> List[Path]:
        """Move ``source`` to ``target``.

        Folders are moved as a whole. ZIP archives are extracted into the
        ``target`` folder and then removed.

        Args:
            source: File, folder, or archive to move.
            target: Destination path; for archives, the extraction folder.
            overwrite: Replace an existing destination.

        Returns:
            List[Path]: Resulting paths (extracted files for archives).

        Raises:
            FileNotFoundError: If ``source`` does not exist.
            FileExistsError: If ``target`` exists and ``overwrite`` is false.
            MoveError: If an archive cannot be read.
        """
        if not source.exists():
            raise FileNotFoundError(f"Source path is missing: {source}")
        target.parent.mkdir(parents=True, exist_ok=True)

        if source.is_file() and source.suffix.lower() == ".zip":
            return self._extract(source, target, overwrite)

        if target.exists():
            if not overwrite:
                raise FileExistsError(f"Destination already exists: {target}")
            _remove(target)
        shutil.move(str(source), str(target))
        LOGGER.info("Moved %s -> %s", source, target)
        return [target]

    def _extract(self, source: Path, folder: Path, overwrite: bool) -> List[Path]:
        if folder.exists() and not overwrite:
            raise FileExistsError(f"Destination already exists: {folder}")

        # Unpack next to the destination first; an existing folder is only
        # replaced once the whole archive has been read.
        staging = folder.with_name(f".{folder.name}.partial")
        if staging.exists():
            _remove(staging)
        staging.mkdir(parents=True)
        try:
            with zipfile.ZipFile(source) as archive:
                members = [
                    name
                    for name in archive.namelist()
                    if not name.startswith(_SKIPPED_ARCHIVE_PREFIXES)
                    and not Path(name).name.startswith(".")
                ]
                archive.extractall(staging, members)
        except _ARCHIVE_ERRORS as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise MoveError(f"Unable to extract {source.name}: {exc}") from exc
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if folder.exists():
            _remove(folder)
        staging.rename(folder)

        extracted = sorted(
            path
            for path in folder.rglob("*")
            if path.is_file() and not any(part.startswith(".") for part in path.relative_to(folder).parts)
        )
        source.unlink()
        LOGGER.info("Extracted %s into %s (%d files)", source.name, folder, len(extracted))
        return extracted


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


__all__ = ["FileMover", "next_versioned_path"]
