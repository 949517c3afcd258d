"""Processing queue errors."""


class QueueError(Exception):
    """Base exception for processing queue operations."""


class ItemNotFoundError(QueueError):
    """Raised when an item id is not in the queue."""


class ItemStateError(QueueError):
    """Raised when an operation does not apply to an item's current status."""


class MoveError(QueueError):
    """Raised when an asset cannot be moved or unpacked into its destination."""
