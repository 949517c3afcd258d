"""Asset metadata extraction."""

from .extractors import MetadataExtractor
from .models import AssetMetadata

__all__ = ["AssetMetadata", "MetadataExtractor"]
