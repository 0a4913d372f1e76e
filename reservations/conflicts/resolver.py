"""Resolve detected conflicts with a caller-selected strategy."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from infrastructure.constants import DEFAULT_TIMEZONE

from .strategies import (
    LastWriteWinsMerge,
    ManualMergeRequired,
    MergeStrategyExecutor,
    PriorityBasedMerge,
)
from .types import (
    ConflictInfo,
    ConflictSummary,
    FieldConflictSummary,
    MergeResult,
    ResolutionStrategy,
)


def default_executors() -> Dict[ResolutionStrategy, MergeStrategyExecutor]:
    return {
        executor.strategy: executor
        for executor in (LastWriteWinsMerge(), PriorityBasedMerge(), ManualMergeRequired())
    }


class ConflictResolver:
    """Dispatch conflicts to merge strategies and build operator summaries."""

    def __init__(
        self,
        *,
        executors: Optional[Iterable[MergeStrategyExecutor]] = None,
        timezone: str = DEFAULT_TIMEZONE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if executors is None:
            self._executors = default_executors()
        else:
            self._executors = {executor.strategy: executor for executor in executors}
        self._timezone = timezone
        self._logger = logger or logging.getLogger('ConflictResolver')

    def resolve(self, conflict: ConflictInfo, strategy: ResolutionStrategy) -> MergeResult:
        strategy = ResolutionStrategy(strategy)
        executor = self._executors.get(strategy)
        if executor is None:
            raise ValueError(f"No merge strategy registered for {strategy.value}")

        result = executor.merge(conflict)
        self._logger.info(
            "Resolved conflict on %s with %s: fields=%s manual_review=%s",
            conflict.reservation_id,
            strategy.value,
            ",".join(conflict.conflict_fields),
            result.requires_manual_review,
        )
        return result

    def summarize(self, conflict: ConflictInfo) -> ConflictSummary:
        """Structured per-field local/remote values for display."""

        return ConflictSummary(
            reservation_id=conflict.reservation_id,
            fields=tuple(
                FieldConflictSummary(
                    field=name,
                    local_value=conflict.local.field_value(name),
                    remote_value=conflict.remote.field_value(name),
                    remote_editor=conflict.last_edit_by_remote,
                )
                for name in conflict.conflict_fields
            ),
            local_last_modified=conflict.local.last_modified,
            remote_last_modified=conflict.remote.last_modified,
        )

    def generate_conflict_summary(self, conflict: ConflictInfo) -> str:
        return self.summarize(conflict).render(self._timezone)
