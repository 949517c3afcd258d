"""Persistence for the custom folder template."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .analysis import FolderAnalysisClient
from .errors import TemplateStoreError
from .models import CustomFolderTemplate

LOGGER = logging.getLogger(__name__)

DEFAULT_TEMPLATE_PATH = Path("~/.assetroute/folder_template.json")


class TemplateStore:
    """Read and write the shared ``folder_template.json`` file."""

    def __init__(self, path: Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: Template file location; defaults to ``~/.assetroute/folder_template.json``.
        """
        self._path = (path or DEFAULT_TEMPLATE_PATH).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[CustomFolderTemplate]:
        """Return the stored template, or None when nothing is saved.

        Raises:
            TemplateStoreError: If the stored data cannot be parsed.
        """
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise TemplateStoreError(f"Invalid folder template data: {exc}") from exc
        try:
            return CustomFolderTemplate.model_validate(data)
        except ValidationError as exc:
            raise TemplateStoreError(f"Invalid folder template data: {exc}") from exc

    def save(self, template: CustomFolderTemplate) -> None:
        """Persist ``template`` with camelCase keys."""
        payload = template.model_dump(mode="json", by_alias=True)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            raise TemplateStoreError(f"Unable to write folder template: {exc}") from exc
        LOGGER.debug("Saved folder template to %s", self._path)

    def clear(self) -> bool:
        """Remove the stored template; returns whether a file was deleted."""
        if not self._path.exists():
            return False
        self._path.unlink()
        return True

    def reanalyze(
        self,
        client: FolderAnalysisClient,
        device_id: Optional[str] = None,
    ) -> CustomFolderTemplate:
        """Refresh the stored template's mapping from its saved tree.

        Raises:
            TemplateStoreError: If no template is stored.
            TemplateAnalysisError: If the analysis service fails.
        """
        template = self.load()
        if template is None:
            raise TemplateStoreError("No folder template has been saved")
        mapping = client.analyze_structure(template.folder_tree, device_id)
        updated = template.model_copy(
            update={"mapping": mapping, "last_updated_at": datetime.now(timezone.utc)}
        )
        self.save(updated)
        return updated


__all__ = ["DEFAULT_TEMPLATE_PATH", "TemplateStore"]
