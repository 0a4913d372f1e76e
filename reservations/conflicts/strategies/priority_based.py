"""Field-level heuristics for merging a conflict."""

from __future__ import annotations

from typing import Dict, List

from reservations.models import ReservationPatch

from ..types import ConflictInfo, MergeResult, ResolutionStrategy
from .base import MergeStrategyExecutor

# At this many simultaneously conflicting fields the heuristics are not trusted.
MANUAL_REVIEW_FIELD_THRESHOLD = 3


class PriorityBasedMerge(MergeStrategyExecutor):
    """Status from remote, longer content, category from the newer side."""

    strategy = ResolutionStrategy.PRIORITY_BASED

    def merge(self, conflict: ConflictInfo) -> MergeResult:
        local, remote = conflict.local, conflict.remote
        changes: Dict[str, object] = {}
        details: List[str] = []

        for field_name in conflict.conflict_fields:
            if field_name == "status":
                # Remote reflects the latest real-world booking state.
                changes["status"] = remote.status
                details.append(f"status: adopted remote value {remote.status.value!r}")
            elif field_name == "content":
                use_remote = len(remote.content) >= len(local.content)
                changes["content"] = remote.content if use_remote else local.content
                details.append(
                    f"content: adopted {self.side_label(use_remote)} value (more detailed)"
                )
            elif field_name == "category":
                use_remote = conflict.remote_is_newer
                changes["category"] = remote.category if use_remote else local.category
                details.append(
                    f"category: adopted {self.side_label(use_remote)} value (most recent update)"
                )

        newer = remote if conflict.remote_is_newer else local
        changes["last_edit_by"] = newer.last_edit_by

        return MergeResult(
            merged=ReservationPatch(**changes),
            requires_manual_review=len(conflict.conflict_fields) >= MANUAL_REVIEW_FIELD_THRESHOLD,
            details=tuple(details),
            strategy=self.strategy,
        )
