"""Classification strategy chain package."""

from .daemon import DaemonClient, HealthCache
from .engine import ClassificationEngine
from .heuristics import HeuristicClassifier
from .local_model import SubprocessClassifier, extract_json_object
from .models import AssetCategory, ClassificationResult, Confidence, DetectedSource
from .runtime import ModelRuntime, ModelRuntimeError
from .sources import SourceDetector
from .stock_cache import StockMetadata, StockMetadataCache
from .thermal import ThermalGate

__all__ = [
    "AssetCategory",
    "ClassificationEngine",
    "ClassificationResult",
    "Confidence",
    "DaemonClient",
    "DetectedSource",
    "HealthCache",
    "HeuristicClassifier",
    "ModelRuntime",
    "ModelRuntimeError",
    "SourceDetector",
    "StockMetadata",
    "StockMetadataCache",
    "SubprocessClassifier",
    "ThermalGate",
    "extract_json_object",
]
