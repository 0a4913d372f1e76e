"""Centralized application settings.

Runtime configuration is read from the environment (and a ``.env`` file during
development) into an immutable :class:`AppSettings` snapshot. Components take
the values they need from the snapshot instead of calling ``os.getenv``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional, Tuple

import pytz
from dotenv import load_dotenv

from . import constants

STORE_BACKENDS = ("memory", "firestore")


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Normalize environment strings such as "true"/"1" into booleans."""

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppSettings:
    """Immutable snapshot of high-level configuration values."""

    production_mode: bool
    timezone: str
    store_backend: str
    firestore_project_id: Optional[str]
    reservations_collection: str
    business_hours_start: str
    business_hours_end: str
    time_slot_minutes: int
    log_directory: str

    @property
    def time_slots(self) -> Tuple[str, ...]:
        return constants.build_time_slots(
            self.business_hours_start,
            self.business_hours_end,
            self.time_slot_minutes,
        )


def load_settings(env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Load configuration from the environment and fall back to defaults."""

    if env is None:
        load_dotenv(override=False)
        env = os.environ

    production_mode = _to_bool(env.get("PRODUCTION_MODE", "false"), default=False)

    timezone = env.get("SALON_TIMEZONE", constants.DEFAULT_TIMEZONE)
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Unknown SALON_TIMEZONE {timezone!r}") from exc

    store_backend = env.get("DOCUMENT_STORE_BACKEND", "memory").strip().lower()
    if store_backend not in STORE_BACKENDS:
        raise ValueError(
            f"DOCUMENT_STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}; got {store_backend!r}"
        )

    firestore_project_id = env.get("FIRESTORE_PROJECT_ID") or None
    reservations_collection = env.get(
        "RESERVATIONS_COLLECTION", constants.RESERVATIONS_COLLECTION
    )

    business_hours_start = env.get("BUSINESS_HOURS_START", constants.DEFAULT_BUSINESS_HOURS_START)
    business_hours_end = env.get("BUSINESS_HOURS_END", constants.DEFAULT_BUSINESS_HOURS_END)
    time_slot_minutes = int(env.get("TIME_SLOT_MINUTES", str(constants.DEFAULT_TIME_SLOT_MINUTES)))
    # Fail fast on malformed business hours.
    constants.build_time_slots(business_hours_start, business_hours_end, time_slot_minutes)

    log_directory = env.get("LOG_DIRECTORY", os.path.join("logs", "latest_log"))

    return AppSettings(
        production_mode=production_mode,
        timezone=timezone,
        store_backend=store_backend,
        firestore_project_id=firestore_project_id,
        reservations_collection=reservations_collection,
        business_hours_start=business_hours_start,
        business_hours_end=business_hours_end,
        time_slot_minutes=time_slot_minutes,
        log_directory=log_directory,
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached :class:`AppSettings` instance."""

    return load_settings()
