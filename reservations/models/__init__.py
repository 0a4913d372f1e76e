"""Domain model definitions for salon reservations."""

from .reservation import (
    Reservation,
    ReservationCategory,
    ReservationDraft,
    ReservationPatch,
    ReservationStatus,
)
from .outcomes import (
    BatchItem,
    BatchItemResult,
    BatchResult,
    UpdateOutcome,
    UpdateStatus,
)

__all__ = [
    "Reservation",
    "ReservationCategory",
    "ReservationDraft",
    "ReservationPatch",
    "ReservationStatus",
    "BatchItem",
    "BatchItemResult",
    "BatchResult",
    "UpdateOutcome",
    "UpdateStatus",
]
