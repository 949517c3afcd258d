"""Merge configuration layers into a validated `AssetRouteConfig`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import AssetRouteConfig

ENV_PREFIX = "ASSETROUTE__"


def resolve_with_precedence(
    *,
    defaults: AssetRouteConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AssetRouteConfig:
    """Layer overrides onto the defaults and validate the result.

    Later layers win: defaults < file < environment < CLI. Keys may be nested
    mappings or dotted paths such as ``routing.music_mode``.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML file.
        env_overrides: Values parsed from ``ASSETROUTE__`` variables.
        cli_overrides: Values supplied on the command line.

    Returns:
        AssetRouteConfig: The merged, validated configuration.

    Raises:
        ConfigError: If an override layer is malformed or the merged values are invalid.
    """
    merged = defaults.model_dump(mode="python")
    layers = (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    )
    for name, layer in layers:
        if layer is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(layer, source_name=name))

    try:
        return AssetRouteConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: AssetRouteConfig) -> Dict[str, str]:
    """Render the config as ``ASSETROUTE__SECTION__KEY`` variable assignments."""
    flat: Dict[str, str] = {}

    def _walk(path: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk(path + [str(key)], child)
            return
        name = ENV_PREFIX + "__".join(part.upper() for part in path)
        if isinstance(value, list):
            flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[name] = "null"
        else:
            flat[name] = str(value)

    _walk([], config.model_dump(mode="json"))
    return flat


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        segments = key.split(".")
        node = expanded
        for segment in segments[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{source_name.capitalize()} override for {key} conflicts with existing value."
                )
            node = child
        leaf = segments[-1]
        if isinstance(value, MappingABC):
            nested = _expand_dotted(value, source_name=source_name)
            current = node.get(leaf)
            node[leaf] = _deep_merge(current if isinstance(current, dict) else {}, nested)
        else:
            node[leaf] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
