"""Merge strategy executors keyed by :class:`ResolutionStrategy`."""

from .base import MergeStrategyExecutor
from .last_write_wins import LastWriteWinsMerge
from .manual_merge import ManualMergeRequired
from .priority_based import PriorityBasedMerge

__all__ = [
    "MergeStrategyExecutor",
    "LastWriteWinsMerge",
    "ManualMergeRequired",
    "PriorityBasedMerge",
]
