"""Item processing queue."""

from .errors import ItemNotFoundError, ItemStateError, MoveError, QueueError
from .models import (
    AssetItem,
    ConflictResolution,
    DecisionKind,
    ItemStatus,
    PendingDecision,
    ProcessOutcome,
    RootResolution,
    StatusChange,
)
from .mover import FileMover, next_versioned_path
from .service import ProcessingQueue

__all__ = [
    "AssetItem",
    "ConflictResolution",
    "DecisionKind",
    "FileMover",
    "ItemNotFoundError",
    "ItemStateError",
    "ItemStatus",
    "MoveError",
    "PendingDecision",
    "ProcessOutcome",
    "ProcessingQueue",
    "QueueError",
    "RootResolution",
    "StatusChange",
    "next_versioned_path",
]
