"""Always hand the conflict to a human."""

from __future__ import annotations

from reservations.models import ReservationPatch

from ..types import ConflictInfo, MergeResult, ResolutionStrategy
from .base import MergeStrategyExecutor


class ManualMergeRequired(MergeStrategyExecutor):
    strategy = ResolutionStrategy.MANUAL_MERGE

    def merge(self, conflict: ConflictInfo) -> MergeResult:
        return MergeResult(
            merged=ReservationPatch(),
            requires_manual_review=True,
            details=(
                f"Manual merge required. Conflicting fields: {', '.join(conflict.conflict_fields)}",
                "Review both changes and resolve them by hand.",
            ),
            strategy=self.strategy,
        )
