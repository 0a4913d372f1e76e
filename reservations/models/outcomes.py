"""Result types returned by the update services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .reservation import Reservation, ReservationPatch


class UpdateStatus(Enum):
    """Outcome of an optimistic-locked update."""

    APPLIED = "applied"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


UPDATE_MESSAGES = {
    UpdateStatus.APPLIED: "Update applied",
    UpdateStatus.CONFLICT: "Another editor changed this reservation",
    UpdateStatus.NOT_FOUND: "Reservation not found",
}


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of ``update_with_lock``.

    ``remote`` is the store's current document when the update conflicted;
    ``reservation`` is the stored result when it applied.
    """

    status: UpdateStatus
    reservation_id: str
    message: str
    remote: Optional[Reservation] = None
    reservation: Optional[Reservation] = None

    @property
    def applied(self) -> bool:
        return self.status == UpdateStatus.APPLIED

    @property
    def conflicted(self) -> bool:
        return self.status == UpdateStatus.CONFLICT

    @property
    def not_found(self) -> bool:
        return self.status == UpdateStatus.NOT_FOUND

    @classmethod
    def applied_with(cls, reservation: Reservation) -> "UpdateOutcome":
        return cls(
            status=UpdateStatus.APPLIED,
            reservation_id=reservation.reservation_id,
            message=UPDATE_MESSAGES[UpdateStatus.APPLIED],
            reservation=reservation,
        )

    @classmethod
    def conflict_with(cls, remote: Reservation) -> "UpdateOutcome":
        return cls(
            status=UpdateStatus.CONFLICT,
            reservation_id=remote.reservation_id,
            message=UPDATE_MESSAGES[UpdateStatus.CONFLICT],
            remote=remote,
        )

    @classmethod
    def missing(cls, reservation_id: str) -> "UpdateOutcome":
        return cls(
            status=UpdateStatus.NOT_FOUND,
            reservation_id=reservation_id,
            message=UPDATE_MESSAGES[UpdateStatus.NOT_FOUND],
        )


@dataclass(frozen=True)
class BatchItem:
    """One entry of a batch update."""

    reservation_id: str
    patch: ReservationPatch
    expected_version: int


@dataclass(frozen=True)
class BatchItemResult:
    """Per-item batch result: either an outcome or the error that prevented one."""

    reservation_id: str
    outcome: Optional[UpdateOutcome] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is not None and self.outcome.applied

    @property
    def conflicted(self) -> bool:
        return self.outcome is not None and not self.outcome.applied

    @property
    def errored(self) -> bool:
        return self.outcome is None


@dataclass(frozen=True)
class BatchResult:
    """Aggregate counts for a batch update."""

    total: int
    succeeded: int
    conflicted: int
    errored: int
    results: Tuple[BatchItemResult, ...] = field(default_factory=tuple)

    @classmethod
    def from_results(cls, results: Tuple[BatchItemResult, ...]) -> "BatchResult":
        return cls(
            total=len(results),
            succeeded=sum(1 for item in results if item.succeeded),
            conflicted=sum(1 for item in results if item.conflicted),
            errored=sum(1 for item in results if item.errored),
            results=results,
        )
