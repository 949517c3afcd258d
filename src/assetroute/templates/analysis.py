"""Client for the remote folder structure analysis service."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from assetroute.classification.local_model import extract_json_object
from assetroute.config.models import TemplateSettings

from .errors import TemplateAnalysisError
from .models import CategoryPathMapping, FolderNode
from .scanner import tree_to_string

LOGGER = logging.getLogger(__name__)

ANALYZE_ACTION = "analyze_folder_structure"


class FolderAnalysisClient:
    """Ask the analysis service which template folder holds each category.

    Each call makes exactly one request. Failures raise
    :class:`TemplateAnalysisError` with the service's message unchanged.
    """

    def __init__(
        self,
        settings: TemplateSettings,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def analyze_structure(self, tree: FolderNode, device_id: Optional[str] = None) -> CategoryPathMapping:
        """Send ``tree`` to the service and parse the returned mapping.

        Args:
            tree: Scanned folder tree.
            device_id: Anonymous identifier sent as ``X-Device-Id``.

        Returns:
            CategoryPathMapping: Mapping proposed by the service.

        Raises:
            TemplateAnalysisError: On transport errors, non-200 responses, or
                responses without a usable mapping.
        """
        body = {"folderTree": tree_to_string(tree), "action": ANALYZE_ACTION}
        headers = {"Content-Type": "application/json"}
        device = device_id or self._settings.device_id
        if device:
            headers["X-Device-Id"] = device

        try:
            response = self._session.post(
                self._settings.analysis_url,
                json=body,
                headers=headers,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise TemplateAnalysisError(str(exc)) from exc

        if response.status_code != 200:
            raise TemplateAnalysisError(
                _error_message(response), status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TemplateAnalysisError("Analysis response is not valid JSON") from exc

        text = _first_text_block(payload)
        if text is None:
            raise TemplateAnalysisError("Analysis response has no text content")
        output = extract_json_object(text)
        if output is None:
            raise TemplateAnalysisError("No mapping found in analysis response")

        raw_mapping = output.get("mapping")
        if not isinstance(raw_mapping, dict):
            raise TemplateAnalysisError("No mapping found in analysis response")
        description = output.get("description")
        mapping = CategoryPathMapping.from_category_map(
            raw_mapping,
            description=description if isinstance(description, str) else None,
        )
        LOGGER.info("Folder analysis mapped %d categories", sum(1 for p in mapping.paths.values() if p))
        return mapping


def _first_text_block(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if not isinstance(content, list) or not content:
        return None
    first = content[0]
    if isinstance(first, dict) and isinstance(first.get("text"), str):
        return first["text"]
    return None


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("error", "message", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]
    text = (response.text or "").strip()
    return text or f"HTTP {response.status_code}"


__all__ = ["ANALYZE_ACTION", "FolderAnalysisClient"]
