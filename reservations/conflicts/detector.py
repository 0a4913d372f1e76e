"""Decide whether two versions of a reservation really conflict."""

from __future__ import annotations

from typing import Optional

from infrastructure.constants import CONFLICT_FIELDS
from reservations.models import Reservation

from .types import ConflictInfo


class ConflictDetector:
    """Field-level comparison of a local and a remote reservation."""

    def detect(self, local: Reservation, remote: Reservation) -> Optional[ConflictInfo]:
        """Return :class:`ConflictInfo` or ``None`` when nothing visible diverged.

        Identical ``last_modified`` values mean the caller already saw the
        remote version. Differing timestamps with identical content, category
        and status (a no-op re-save) are not a conflict either.
        """

        if local.last_modified == remote.last_modified:
            return None

        conflict_fields = tuple(
            name for name in CONFLICT_FIELDS if getattr(local, name) != getattr(remote, name)
        )
        if not conflict_fields:
            return None

        return ConflictInfo(
            local=local,
            remote=remote,
            conflict_fields=conflict_fields,
            last_edit_by_local=local.editor,
            last_edit_by_remote=remote.editor,
        )
