"""Configuration models describing assetroute settings."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssetRouteBaseModel(BaseModel):
    """Shared configuration for assetroute Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class MusicMode(str, Enum):
    """Sub-folder scheme used for music assets."""

    MOOD = "mood"
    GENRE = "genre"


class FolderStructurePreset(str, Enum):
    """Folder layout preset used when deploying and routing."""

    STANDARD = "standard"
    FLAT = "flat"
    CUSTOM = "custom"


class DaemonSettings(AssetRouteBaseModel):
    """Connection settings for the local classification daemon.

    Attributes:
        host: Loopback host the daemon listens on.
        port: Fixed daemon port.
        health_timeout_seconds: Timeout for `/health` checks.
        health_cache_seconds: How long a health result is reused.
        classify_timeout_seconds: Timeout for `/classify` requests.
        max_tokens: Token budget forwarded to the model.
        max_tags: Maximum number of metadata tags forwarded to the model.
    """

    host: str = "127.0.0.1"
    port: int = 17891
    health_timeout_seconds: float = 1.0
    health_cache_seconds: float = 5.0
    classify_timeout_seconds: float = 30.0
    max_tokens: int = 150
    max_tags: int = 20


class SubprocessSettings(AssetRouteBaseModel):
    """Settings for the one-shot classifier process.

    Attributes:
        python_path: Interpreter with the model runtime installed; discovered when unset.
        script_path: Path to the classifier script.
        download_script_path: Path to the model download script.
        models_dir: Shared directory holding downloaded model artifacts.
        model_name: Model identifier to download and load.
        timeout_seconds: Upper bound for a single classifier run.
        auto_install: Whether missing runtime/model artifacts may be installed.
    """

    python_path: Optional[str] = None
    script_path: Optional[str] = None
    download_script_path: Optional[str] = None
    models_dir: str = "~/.assetroute/models"
    model_name: str = "mlx-community/Qwen2.5-0.5B-Instruct-4bit"
    timeout_seconds: float = 60.0
    auto_install: bool = True


class ThermalSettings(AssetRouteBaseModel):
    """Back-pressure settings for local-model tiers.

    Attributes:
        enabled: Whether the thermal gate is active.
        load_threshold: Load average per CPU treated as pressure.
        sustain_samples: Consecutive pressured samples before gating.
    """

    enabled: bool = True
    load_threshold: float = 1.5
    sustain_samples: int = 3


class ClassificationSettings(AssetRouteBaseModel):
    """Classification chain configuration.

    Attributes:
        web_enrichment: Whether provider conventions and stock metadata are consulted.
        genre_mood_detection: Whether genre/mood/SFX categories are predicted.
        use_local_model: Whether the daemon and subprocess tiers are enabled.
        stock_metadata_cache: JSON file with metadata captured from stock sites.
        daemon: Local daemon settings.
        subprocess: Subprocess fallback settings.
        thermal: Thermal gate settings.
    """

    web_enrichment: bool = True
    genre_mood_detection: bool = True
    use_local_model: bool = True
    stock_metadata_cache: str = "~/.assetroute/stock_metadata.json"
    daemon: DaemonSettings = Field(default_factory=DaemonSettings)
    subprocess: SubprocessSettings = Field(default_factory=SubprocessSettings)
    thermal: ThermalSettings = Field(default_factory=ThermalSettings)


class RoutingSettings(AssetRouteBaseModel):
    """Destination resolution settings.

    Attributes:
        project_roots: Directories the user treats as known project roots.
        music_mode: Whether music is sorted by mood or genre.
        use_sfx_subfolders: Whether SFX are sorted into category sub-folders.
        min_match_length: Minimum normalized length for fuzzy substring matches.
        youtube_4k_folder: Folder where the 4K video downloader saves files.
        folder_structure_preset: Active folder layout preset.
        template_path: JSON file storing the custom folder template.
    """

    project_roots: List[str] = Field(default_factory=list)
    music_mode: MusicMode = MusicMode.MOOD
    use_sfx_subfolders: bool = True
    min_match_length: int = 3
    youtube_4k_folder: Optional[str] = None
    folder_structure_preset: FolderStructurePreset = FolderStructurePreset.STANDARD
    template_path: str = "~/.assetroute/folder_template.json"


class QueueSettings(AssetRouteBaseModel):
    """Queue lifecycle settings.

    Attributes:
        retention_seconds: Age after which queued items are force-cleared.
        history_path: JSON file holding processing history.
        history_max_records: Maximum number of history records retained.
    """

    retention_seconds: float = 3600.0
    history_path: str = "~/.assetroute/processing_history.json"
    history_max_records: int = 500


class TemplateSettings(AssetRouteBaseModel):
    """Folder template analysis service settings.

    Attributes:
        analysis_url: Endpoint that maps a folder tree to asset categories.
        timeout_seconds: Request timeout for the analysis service.
        device_id: Anonymous identifier sent with analysis requests.
    """

    analysis_url: str = "https://folder-analysis.assetroute.dev/api/analyze-folder-structure"
    timeout_seconds: float = 30.0
    device_id: Optional[str] = None


class LoggingSettings(AssetRouteBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(AssetRouteBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        history_limit: Default number of history entries to display.
    """

    quiet_default: bool = False
    history_limit: int = 20


class AssetRouteConfig(AssetRouteBaseModel):
    """Top-level configuration struct for assetroute.

    Attributes:
        classification: Classification chain settings.
        routing: Destination resolution settings.
        queue: Queue lifecycle settings.
        templates: Folder template analysis settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    classification: ClassificationSettings = Field(default_factory=ClassificationSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    templates: TemplateSettings = Field(default_factory=TemplateSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "AssetRouteBaseModel",
    "MusicMode",
    "FolderStructurePreset",
    "DaemonSettings",
    "SubprocessSettings",
    "ThermalSettings",
    "ClassificationSettings",
    "RoutingSettings",
    "QueueSettings",
    "TemplateSettings",
    "LoggingSettings",
    "CLIOptions",
    "AssetRouteConfig",
]
