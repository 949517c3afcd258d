"""Folder template scanning, analysis, deployment and persistence."""

from .analysis import FolderAnalysisClient
from .deployer import STANDARD_SKELETON, deploy
from .errors import InvalidTargetDirectory, TemplateAnalysisError, TemplateError, TemplateStoreError
from .models import CategoryPathMapping, CustomFolderTemplate, DeployConfig, FolderNode
from .scanner import scan_folder_tree, tree_to_string
from .store import TemplateStore

__all__ = [
    "CategoryPathMapping",
    "CustomFolderTemplate",
    "DeployConfig",
    "FolderAnalysisClient",
    "FolderNode",
    "InvalidTargetDirectory",
    "STANDARD_SKELETON",
    "TemplateAnalysisError",
    "TemplateError",
    "TemplateStore",
    "TemplateStoreError",
    "deploy",
    "scan_folder_tree",
    "tree_to_string",
]
