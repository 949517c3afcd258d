"""One-shot classifier process used when the daemon cannot answer."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from assetroute.config.models import SubprocessSettings

from .commands import CommandRunner, run_command
from .models import ClassificationResult
from .runtime import ModelRuntime, ModelRuntimeError

LOGGER = logging.getLogger(__name__)

STRATEGY_NAME = "subprocess"

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first well-formed JSON object embedded in ``text``.

    A markdown code fence is unwrapped first. Objects are then tried from each
    opening brace in turn so that chatter before or after the object is
    ignored.
    """
    if not text:
        return None
    fenced = _FENCE.search(text)
    candidate = fenced.group(1) if fenced else text
    candidate = candidate.strip()

    decoder = json.JSONDecoder()
    start = candidate.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(candidate, start)
        except json.JSONDecodeError:
            start = candidate.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = candidate.find("{", start + 1)
    return None


class SubprocessClassifier:
    """Run the classifier script once per asset with a hard timeout."""

    def __init__(
        self,
        settings: SubprocessSettings,
        *,
        max_tokens: int = 150,
        runtime: Optional[ModelRuntime] = None,
        runner: CommandRunner = run_command,
    ) -> None:
        self._settings = settings
        self._max_tokens = max_tokens
        self._runner = runner
        self._runtime = runtime or ModelRuntime(settings, runner=runner)

    async def classify(self, filename: str, metadata: Optional[Mapping[str, Any]] = None) -> ClassificationResult:
        """Classify ``filename``; failures come back as Unknown with ``error`` set."""
        script = self._settings.script_path
        if not script or not Path(script).expanduser().is_file():
            return ClassificationResult.unknown("Classifier script not found", strategy=STRATEGY_NAME)

        try:
            handle = await self._runtime.ensure()
        except ModelRuntimeError as exc:
            LOGGER.info("Local model unavailable: %s", exc)
            return ClassificationResult.unknown(str(exc), strategy=STRATEGY_NAME)

        args = [
            handle.python,
            str(Path(script).expanduser()),
            "--model-path",
            str(handle.model_path),
            "--filename",
            filename,
            "--metadata",
            json.dumps(dict(metadata or {})),
            "--max-tokens",
            str(self._max_tokens),
        ]
        result = await self._runner(args, self._settings.timeout_seconds)
        if result.timed_out:
            return ClassificationResult.unknown(result.stderr or "Timed out", strategy=STRATEGY_NAME)
        if result.returncode != 0:
            return ClassificationResult.unknown(result.stderr.strip() or "Script failed", strategy=STRATEGY_NAME)

        payload = extract_json_object(result.stdout) or extract_json_object(result.stderr)
        if payload is None:
            return ClassificationResult.unknown("Parse error", strategy=STRATEGY_NAME)
        return ClassificationResult.from_payload(payload, strategy=STRATEGY_NAME)


__all__ = ["SubprocessClassifier", "STRATEGY_NAME", "extract_json_object"]
