"""Configuration loading and persistence for assetroute."""

from __future__ import annotations

import logging
import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from .exceptions import ConfigError
from .models import AssetRouteConfig, FolderStructurePreset, MusicMode
from .resolver import ENV_PREFIX, flatten_for_env, resolve_with_precedence

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.assetroute/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # assetroute configuration file
    # Managed by `assetroute config set` / `assetroute config edit`.
    """
)


class ConfigManager:
    """Read, layer, and write the assetroute YAML configuration."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
    ) -> AssetRouteConfig:
        """Load the effective configuration.

        Args:
            cli_overrides: Dotted-key overrides supplied on the command line.
            include_env: Whether ``ASSETROUTE__`` variables are applied.
            ensure_file: Whether a default file is written when none exists.

        Returns:
            AssetRouteConfig: The merged configuration.

        Raises:
            ConfigError: If the file or any override layer is invalid.
        """
        if ensure_file:
            self.ensure_exists()

        env_overrides = self._extract_env(self._env) if include_env else None
        return resolve_with_precedence(
            defaults=AssetRouteConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_overrides or None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored on disk."""
        return self._read_file()

    def save(self, config: AssetRouteConfig | Mapping[str, Any]) -> None:
        """Write configuration data to disk with a header and timestamp."""
        if isinstance(config, AssetRouteConfig):
            data = config.model_dump(mode="json")
        else:
            data = dict(config)
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create a default configuration file when missing."""
        if not self._config_path.exists():
            self._write_file(AssetRouteConfig().model_dump(mode="json"))
        return self._config_path

    def read_text(self) -> str:
        """Return the configuration file contents, or an empty string."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def add_project_root(self, root: Path) -> bool:
        """Append ``root`` to ``routing.project_roots`` if not already present.

        Returns:
            bool: True when the file was updated.
        """
        data = self._read_file()
        routing = data.setdefault("routing", {})
        if not isinstance(routing, dict):
            raise ConfigError("Configuration section 'routing' must be a mapping.")
        roots: list[str] = list(routing.get("project_roots") or [])
        candidate = str(Path(root).expanduser())
        if candidate in roots:
            return False
        roots.append(candidate)
        routing["project_roots"] = roots
        self._write_file(data)
        LOGGER.info("Added project root %s to %s", candidate, self._config_path)
        return True

    # ------------------------------------------------------------------ #
    # Internal helpers

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}
        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(dict(data), sort_keys=False)
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX):
                continue
            segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__")]
            if not all(segments):
                continue
            try:
                value: Any = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                value = raw_value
            assign_nested(overrides, segments, value)
        return overrides


def assign_nested(target: dict[str, Any], path: Iterable[str], value: Any) -> None:
    """Set ``value`` at ``path`` inside ``target``, creating mappings as needed."""
    segments = list(path)
    node = target
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = value


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "AssetRouteConfig",
    "FolderStructurePreset",
    "MusicMode",
    "ConfigError",
    "assign_nested",
    "flatten_for_env",
    "resolve_with_precedence",
]
