"""Reservation-level exceptions.

Conflicts and missing reservations are reported as data by the update
services; these exceptions cover the write paths that cannot return an
outcome and malformed input.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from infrastructure.store.errors import TransportError

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from reservations.models import Reservation

__all__ = [
    "ReservationError",
    "InvalidReservationError",
    "ReservationNotFoundError",
    "VersionConflictError",
    "TransportError",
]


class ReservationError(Exception):
    """Base class for reservation errors."""


class InvalidReservationError(ReservationError, ValueError):
    """A draft or patch carries values outside the reservation vocabulary."""


class ReservationNotFoundError(ReservationError, LookupError):
    """A write targeted a reservation id that does not exist."""

    def __init__(self, reservation_id: str) -> None:
        super().__init__(f"Reservation {reservation_id} not found")
        self.reservation_id = reservation_id


class VersionConflictError(ReservationError):
    """A conditional write lost against a newer version of the reservation."""

    def __init__(self, reservation_id: str, expected_version: int, remote: "Reservation") -> None:
        super().__init__(
            f"Reservation {reservation_id} is at version {remote.last_modified}, "
            f"expected {expected_version}"
        )
        self.reservation_id = reservation_id
        self.expected_version = expected_version
        self.remote = remote
