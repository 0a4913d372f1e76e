"""Base merge strategy interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..types import ConflictInfo, MergeResult, ResolutionStrategy


class MergeStrategyExecutor(ABC):
    """Interface for turning a detected conflict into a merge result."""

    strategy: ResolutionStrategy

    @abstractmethod
    def merge(self, conflict: ConflictInfo) -> MergeResult:
        """Compute the merged update for ``conflict``."""

    @staticmethod
    def side_label(use_remote: bool) -> str:
        return "remote" if use_remote else "local"

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"{self.__class__.__name__}(strategy={self.strategy.value})"
