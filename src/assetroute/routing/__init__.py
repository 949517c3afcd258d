"""Destination resolution for routed assets."""

from .errors import InvalidProjectRoot, RoutingError, UnknownAssetType
from .matching import find_existing_folder, find_or_create_folder, normalize_folder_name
from .models import ProjectReference
from .resolver import PathResolver, find_existing_audio_folder, find_project_main_folder
from .vocabulary import FOLDER_NAMES

__all__ = [
    "FOLDER_NAMES",
    "InvalidProjectRoot",
    "PathResolver",
    "ProjectReference",
    "RoutingError",
    "UnknownAssetType",
    "find_existing_audio_folder",
    "find_existing_folder",
    "find_or_create_folder",
    "find_project_main_folder",
    "normalize_folder_name",
]
