"""Conflict detection and resolution for concurrently edited reservations."""

from .detector import ConflictDetector
from .resolver import ConflictResolver
from .types import (
    ConflictInfo,
    ConflictSummary,
    FieldConflictSummary,
    MergeResult,
    ResolutionStrategy,
)

__all__ = [
    "ConflictDetector",
    "ConflictResolver",
    "ConflictInfo",
    "ConflictSummary",
    "FieldConflictSummary",
    "MergeResult",
    "ResolutionStrategy",
]
