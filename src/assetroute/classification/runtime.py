"""Install-on-demand management of the local model runtime and weights."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from assetroute.config.models import SubprocessSettings

from .commands import CommandRunner, run_command

LOGGER = logging.getLogger(__name__)

RUNTIME_IMPORT_CHECK = "import mlx_lm"
RUNTIME_PACKAGES = ("mlx", "mlx-lm")
INSTALL_TIMEOUT_SECONDS = 600.0
DOWNLOAD_TIMEOUT_SECONDS = 1800.0
_CHECK_TIMEOUT_SECONDS = 30.0

_INTERPRETER_CANDIDATES = (
    "/opt/homebrew/bin/python3",
    "/usr/local/bin/python3",
    "/usr/bin/python3",
)


class ModelRuntimeError(Exception):
    """Raised when the runtime or model artifact cannot be made available."""


@dataclass(slots=True)
class RuntimeHandle:
    """Interpreter and model directory ready for a classification run."""

    python: str
    model_path: Path


class ModelRuntime:
    """Make sure an interpreter with the model runtime and the model weights exist.

    Checks always run before writes, so concurrent callers and repeated calls
    never reinstall or re-download an artifact that is already present.
    """

    def __init__(self, settings: SubprocessSettings, *, runner: CommandRunner = run_command) -> None:
        self._settings = settings
        self._runner = runner
        self._python: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def models_dir(self) -> Path:
        return Path(self._settings.models_dir).expanduser()

    @property
    def model_path(self) -> Path:
        return self.models_dir / self._settings.model_name.replace("/", "_")

    def model_exists(self) -> bool:
        return (self.model_path / "config.json").is_file()

    async def ensure(self) -> RuntimeHandle:
        """Return a usable runtime, installing or downloading what is missing.

        Raises:
            ModelRuntimeError: If the runtime or model cannot be provided.
        """
        async with self._lock:
            python = await self._ensure_python()
            if not self.model_exists():
                await self._download(python)
            return RuntimeHandle(python=python, model_path=self.model_path)

    # ------------------------------------------------------------------ #
    # Internal helpers

    async def _ensure_python(self) -> str:
        if self._python is not None:
            return self._python

        candidates = self._candidates()
        for candidate in candidates:
            if await self._has_runtime(candidate):
                self._python = candidate
                return candidate

        if not self._settings.auto_install:
            raise ModelRuntimeError("No interpreter with the model runtime is available")
        if not candidates:
            raise ModelRuntimeError("No Python interpreter found to install the model runtime")

        target = candidates[0]
        LOGGER.info("Installing model runtime into %s", target)
        result = await self._runner(
            [target, "-m", "pip", "install", *RUNTIME_PACKAGES, "--quiet"],
            INSTALL_TIMEOUT_SECONDS,
        )
        if not result.ok or not await self._has_runtime(target):
            raise ModelRuntimeError(f"Runtime installation failed: {result.stderr.strip() or result.returncode}")
        self._python = target
        return target

    async def _download(self, python: str) -> None:
        if not self._settings.auto_install:
            raise ModelRuntimeError(f"Model {self._settings.model_name} is not downloaded")
        script = self._settings.download_script_path
        if not script or not Path(script).expanduser().is_file():
            raise ModelRuntimeError("Model download script not found")

        self.models_dir.mkdir(parents=True, exist_ok=True)
        LOGGER.info("Downloading model %s to %s", self._settings.model_name, self.model_path)
        result = await self._runner(
            [
                python,
                str(Path(script).expanduser()),
                "--model",
                self._settings.model_name,
                "--output",
                str(self.model_path),
            ],
            DOWNLOAD_TIMEOUT_SECONDS,
        )
        if not result.ok or not self.model_exists():
            raise ModelRuntimeError(f"Model download failed: {result.stderr.strip() or result.returncode}")

    async def _has_runtime(self, python: str) -> bool:
        result = await self._runner([python, "-c", RUNTIME_IMPORT_CHECK], _CHECK_TIMEOUT_SECONDS)
        return result.ok

    def _candidates(self) -> List[str]:
        found: List[str] = []
        if self._settings.python_path:
            found.append(str(Path(self._settings.python_path).expanduser()))
        on_path = shutil.which("python3")
        for candidate in (on_path, *_INTERPRETER_CANDIDATES):
            if candidate and candidate not in found and Path(candidate).exists():
                found.append(candidate)
        return found


__all__ = ["ModelRuntime", "ModelRuntimeError", "RuntimeHandle"]
