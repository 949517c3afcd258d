"""Unit tests for configuration management."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from assetroute.config import (
    AssetRouteConfig,
    ConfigError,
    ConfigManager,
    MusicMode,
    flatten_for_env,
    resolve_with_precedence,
)
from assetroute.config.models import LoggingSettings
from assetroute.logging_config import configure_logging


def _manager(tmp_path: Path, env: dict[str, str] | None = None) -> ConfigManager:
    return ConfigManager(tmp_path / "config.yaml", env=env or {})


def test_ensure_exists_creates_default_file(tmp_path: Path) -> None:
    manager = _manager(tmp_path)

    path = manager.ensure_exists()

    text = path.read_text(encoding="utf-8")
    assert "assetroute configuration file" in text
    assert "Last updated:" in text
    assert isinstance(manager.load(include_env=False), AssetRouteConfig)


def test_default_path_lives_under_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    manager = ConfigManager(env={})

    assert manager.config_path == tmp_path / ".assetroute" / "config.yaml"


def test_precedence_file_then_env_then_cli(tmp_path: Path) -> None:
    env = {
        "ASSETROUTE__ROUTING__MUSIC_MODE": "mood",
        "ASSETROUTE__ROUTING__MIN_MATCH_LENGTH": "4",
        "UNRELATED": "ignored",
    }
    manager = _manager(tmp_path, env)
    manager.save({"routing": {"music_mode": "genre", "use_sfx_subfolders": False}})

    config = manager.load()
    assert config.routing.music_mode is MusicMode.MOOD
    assert config.routing.min_match_length == 4
    assert config.routing.use_sfx_subfolders is False

    config = manager.load(cli_overrides={"routing.music_mode": "genre"})
    assert config.routing.music_mode is MusicMode.GENRE


def test_include_env_false_ignores_environment(tmp_path: Path) -> None:
    manager = _manager(tmp_path, {"ASSETROUTE__QUEUE__RETENTION_SECONDS": "10"})

    assert manager.load(include_env=False).queue.retention_seconds == 3600.0
    assert manager.load().queue.retention_seconds == 10.0


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.ensure_exists()
    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_invalid_value_raises_config_error() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=AssetRouteConfig(),
            file_overrides={"routing": {"min_match_length": "three"}},
        )


def test_unknown_key_is_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=AssetRouteConfig(), file_overrides={"routing": {"colour": "red"}})


def test_add_project_root_is_idempotent(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    root = tmp_path / "Projects"

    assert manager.add_project_root(root) is True
    assert manager.add_project_root(root) is False

    assert manager.load().routing.project_roots == [str(root)]


def test_flatten_for_env_uses_nested_names() -> None:
    flat = flatten_for_env(AssetRouteConfig())

    assert flat["ASSETROUTE__ROUTING__MUSIC_MODE"] == "mood"
    assert flat["ASSETROUTE__CLASSIFICATION__DAEMON__PORT"] == "17891"
    assert flat["ASSETROUTE__ROUTING__YOUTUBE_4K_FOLDER"] == "null"


def test_configure_logging_adds_rotating_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "assetroute.log"

    logger = configure_logging(LoggingSettings(level="INFO", file=str(log_file)))

    assert logger.level == logging.INFO
    assert any(isinstance(handler, RotatingFileHandler) for handler in logger.handlers)
    assert log_file.parent.is_dir()

    verbose = configure_logging(LoggingSettings(), verbose=True)
    assert verbose.level == logging.DEBUG
    assert not any(isinstance(handler, RotatingFileHandler) for handler in verbose.handlers)
