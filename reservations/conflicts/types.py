"""Shared conflict detection and resolution types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Tuple

import pytz

from infrastructure.constants import CATEGORY_LABELS, STATUS_LABELS
from reservations.models import Reservation, ReservationPatch

FIELD_LABELS = {"category": CATEGORY_LABELS, "status": STATUS_LABELS}


class ResolutionStrategy(Enum):
    """Enumeration of available merge strategies."""

    LAST_WRITE_WINS = "last-write-wins"
    PRIORITY_BASED = "priority-based"
    MANUAL_MERGE = "manual-merge"


@dataclass(frozen=True)
class ConflictInfo:
    """Divergence between a caller's copy and the store's copy of one reservation."""

    local: Reservation
    remote: Reservation
    conflict_fields: Tuple[str, ...]
    last_edit_by_local: str
    last_edit_by_remote: str

    @property
    def reservation_id(self) -> str:
        return self.remote.reservation_id

    @property
    def remote_is_newer(self) -> bool:
        return self.remote.last_modified > self.local.last_modified


@dataclass(frozen=True)
class MergeResult:
    """Computed update plus whether a human still has to look at it."""

    merged: ReservationPatch
    requires_manual_review: bool
    details: Tuple[str, ...] = field(default_factory=tuple)
    strategy: ResolutionStrategy = ResolutionStrategy.MANUAL_MERGE


@dataclass(frozen=True)
class FieldConflictSummary:
    field: str
    local_value: Any
    remote_value: Any
    remote_editor: str

    def display(self, value: Any) -> str:
        labels = FIELD_LABELS.get(self.field, {})
        return labels.get(value, str(value))


def format_timestamp(millis: int, timezone: str) -> str:
    """Render epoch milliseconds in the business timezone."""

    moment = datetime.fromtimestamp(millis / 1000, tz=pytz.UTC)
    return moment.astimezone(pytz.timezone(timezone)).strftime("%Y-%m-%d %H:%M:%S %Z")


@dataclass(frozen=True)
class ConflictSummary:
    """Operator-facing explanation of a conflict, one record per field."""

    reservation_id: str
    fields: Tuple[FieldConflictSummary, ...]
    local_last_modified: int
    remote_last_modified: int

    def render(self, timezone: str = "UTC") -> str:
        lines: List[str] = [f"Conflict detected on reservation {self.reservation_id}:", ""]
        for item in self.fields:
            lines.append(f"[{item.field}]")
            lines.append(f"  Your change: {item.display(item.local_value)}")
            lines.append(f"  Other change: {item.display(item.remote_value)}")
            lines.append(f"  Edited by: {item.remote_editor}")
            lines.append("")
        lines.append("Last modified:")
        lines.append(f"  Yours: {format_timestamp(self.local_last_modified, timezone)}")
        lines.append(f"  Theirs: {format_timestamp(self.remote_last_modified, timezone)}")
        return "\n".join(lines)
