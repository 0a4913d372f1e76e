"""
Constants Module - Centralized configuration values
===================================================

Single source of truth for the reservation vocabulary: slot labels, category
and status values and their display labels.
"""

from datetime import datetime, timedelta
from typing import Tuple

RESERVATIONS_COLLECTION = "reservations"

# Business hours and slot length used when no settings override them
DEFAULT_BUSINESS_HOURS_START = "09:00"
DEFAULT_BUSINESS_HOURS_END = "20:00"
DEFAULT_TIME_SLOT_MINUTES = 30

DEFAULT_TIMEZONE = "Asia/Tokyo"

# Editor id recorded when a document carries no last editor
UNKNOWN_EDITOR = "unknown"

# Display labels for stored category / status values
CATEGORY_LABELS = {
    "haircut": "Haircut",
    "color": "Color",
    "perm": "Perm",
    "treatment": "Treatment",
    "other": "Other",
}

STATUS_LABELS = {
    "available": "Available",
    "booked": "Booked",
    "blocked": "Blocked",
}

# Fields compared when deciding whether two versions really conflict
CONFLICT_FIELDS = ("content", "category", "status")


def build_time_slots(start: str, end: str, minutes: int) -> Tuple[str, ...]:
    """Return ``HH:MM`` labels from ``start`` to ``end`` inclusive."""

    if minutes <= 0:
        raise ValueError(f"Slot length must be positive, got {minutes}")
    current = datetime.strptime(start, "%H:%M")
    last = datetime.strptime(end, "%H:%M")
    if last < current:
        raise ValueError(f"Business hours end {end} is before start {start}")

    slots = []
    step = timedelta(minutes=minutes)
    while current <= last:
        slots.append(current.strftime("%H:%M"))
        current += step
    return tuple(slots)


TIME_SLOTS = build_time_slots(
    DEFAULT_BUSINESS_HOURS_START,
    DEFAULT_BUSINESS_HOURS_END,
    DEFAULT_TIME_SLOT_MINUTES,
)
