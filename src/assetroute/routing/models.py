"""Routing models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class ProjectReference(BaseModel):
    """Production project an asset is routed into.

    Attributes:
        name: Display name of the project.
        root_path: Configured root directory the project lives under.
        project_path: Primary project file, e.g. the editor's project document.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    root_path: Path
    project_path: Path

    @classmethod
    def from_project_file(cls, project_file: Path, root: Path) -> "ProjectReference":
        project_file = project_file.expanduser()
        return cls(name=project_file.stem, root_path=root.expanduser(), project_path=project_file)


__all__ = ["ProjectReference"]
