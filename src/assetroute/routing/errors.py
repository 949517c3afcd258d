"""Routing errors."""


class RoutingError(Exception):
    """Base exception for destination resolution."""


class UnknownAssetType(RoutingError):
    """Raised when an asset without a known category is routed."""


class InvalidProjectRoot(RoutingError):
    """Raised when a project's root directory is missing or unusable."""
