"""Folder template errors."""


class TemplateError(Exception):
    """Base exception for folder template operations."""


class InvalidTargetDirectory(TemplateError):
    """Raised when a deploy target is missing or not a directory."""


class TemplateAnalysisError(TemplateError):
    """Raised when the analysis service cannot produce a mapping.

    The message is the service's own error text when one was returned.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TemplateStoreError(TemplateError):
    """Raised when the persisted template cannot be read or written."""
