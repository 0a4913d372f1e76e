"""Last-write-wins: the later document wins in full."""

from __future__ import annotations

from reservations.models import ReservationPatch

from ..types import ConflictInfo, MergeResult, ResolutionStrategy
from .base import MergeStrategyExecutor


class LastWriteWinsMerge(MergeStrategyExecutor):
    strategy = ResolutionStrategy.LAST_WRITE_WINS

    def merge(self, conflict: ConflictInfo) -> MergeResult:
        use_remote = conflict.remote_is_newer
        winner = conflict.remote if use_remote else conflict.local

        merged = ReservationPatch(
            content=winner.content,
            category=winner.category,
            status=winner.status,
            last_edit_by=winner.last_edit_by,
        )
        return MergeResult(
            merged=merged,
            requires_manual_review=False,
            details=(
                f"Adopted the {self.side_label(use_remote)} change "
                f"(last modified {winner.last_modified})",
            ),
            strategy=self.strategy,
        )
