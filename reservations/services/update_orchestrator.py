"""Optimistic-locked updates for reservations.

The orchestrator is the façade callers use to write reservations. A write
names the version the caller last read; if the store has moved on, the caller
gets the current remote document back instead of a silent overwrite. Conflicts
and missing reservations are returned as :class:`UpdateOutcome` values. Only
infrastructure failures (:class:`TransportError`) are raised.
"""

from __future__ import annotations

import inspect
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from infrastructure.constants import TIME_SLOTS
from reservations.conflicts import (
    ConflictDetector,
    ConflictInfo,
    ConflictResolver,
    ConflictSummary,
    MergeResult,
    ResolutionStrategy,
)
from reservations.errors import (
    ReservationError,
    ReservationNotFoundError,
    TransportError,
    VersionConflictError,
)
from reservations.models import (
    BatchItem,
    BatchItemResult,
    BatchResult,
    Reservation,
    ReservationDraft,
    ReservationPatch,
    UpdateOutcome,
)
from reservations.repository import ReservationRepository

ConflictListener = Callable[[Reservation], Union[None, Awaitable[None]]]


class UpdateOrchestrator:
    """Create, read, delete and optimistic-locked update of reservations."""

    def __init__(
        self,
        repository: ReservationRepository,
        *,
        detector: Optional[ConflictDetector] = None,
        resolver: Optional[ConflictResolver] = None,
        time_slots: Sequence[str] = TIME_SLOTS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.repository = repository
        self.detector = detector or ConflictDetector()
        self.resolver = resolver or ConflictResolver()
        self._time_slots = tuple(time_slots)
        self.logger = logger or logging.getLogger('UpdateOrchestrator')
        self._listeners: Dict[str, ConflictListener] = {}
        self._listeners_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Plain reads and writes
    # ------------------------------------------------------------------
    async def create(self, draft: ReservationDraft) -> str:
        draft.validate_slot(self._time_slots)
        return await self.repository.create(draft)

    async def get(self, reservation_id: str) -> Optional[Reservation]:
        return await self.repository.get(reservation_id)

    async def delete(self, reservation_id: str) -> bool:
        return await self.repository.delete(reservation_id)

    # ------------------------------------------------------------------
    # Optimistic locking
    # ------------------------------------------------------------------
    async def update_with_lock(
        self,
        reservation_id: str,
        patch: ReservationPatch,
        expected_version: int,
        editor_id: str,
    ) -> UpdateOutcome:
        """Apply ``patch`` only if the reservation is still at ``expected_version``.

        Any mismatch, including a remote version that looks older, is a
        conflict. The write itself is conditional on the same version, so of
        two concurrent callers holding the same version only one can apply.
        """

        current = await self.repository.get(reservation_id)
        if current is None:
            self.logger.info("Update of %s skipped: reservation not found", reservation_id)
            return UpdateOutcome.missing(reservation_id)

        if current.last_modified != expected_version:
            return await self._conflict(current, expected_version, editor_id)

        try:
            stored = await self.repository.update_if_unmodified(
                reservation_id,
                patch.with_editor(editor_id),
                expected_version,
            )
        except VersionConflictError as exc:
            return await self._conflict(exc.remote, expected_version, editor_id)
        except ReservationNotFoundError:
            self.logger.info("Reservation %s vanished before the write", reservation_id)
            return UpdateOutcome.missing(reservation_id)

        self.logger.info(
            "Reservation %s updated by %s: version %s -> %s",
            reservation_id,
            editor_id,
            expected_version,
            stored.last_modified,
        )
        return UpdateOutcome.applied_with(stored)

    async def batch_update(self, items: Sequence[BatchItem], editor_id: str) -> BatchResult:
        """Run each item through :meth:`update_with_lock` independently.

        A conflict or transport failure on one item never stops the rest.
        Conflicted items are reported, not resolved.
        """

        results: List[BatchItemResult] = []
        for item in items:
            try:
                outcome = await self.update_with_lock(
                    item.reservation_id,
                    item.patch,
                    item.expected_version,
                    editor_id,
                )
            except (TransportError, ReservationError) as exc:
                self.logger.error("Batch update of %s failed: %s", item.reservation_id, exc)
                results.append(BatchItemResult(reservation_id=item.reservation_id, error=str(exc)))
                continue
            results.append(BatchItemResult(reservation_id=item.reservation_id, outcome=outcome))

        batch = BatchResult.from_results(tuple(results))
        self.logger.info(
            "BATCH UPDATE COMPLETE - editor=%s total=%s succeeded=%s conflicted=%s errored=%s",
            editor_id,
            batch.total,
            batch.succeeded,
            batch.conflicted,
            batch.errored,
        )
        return batch

    # ------------------------------------------------------------------
    # Conflict helpers
    # ------------------------------------------------------------------
    def detect_conflict(self, local: Reservation, remote: Reservation) -> Optional[ConflictInfo]:
        return self.detector.detect(local, remote)

    def resolve(self, conflict: ConflictInfo, strategy: ResolutionStrategy) -> MergeResult:
        return self.resolver.resolve(conflict, strategy)

    def summarize(self, conflict: ConflictInfo) -> ConflictSummary:
        return self.resolver.summarize(conflict)

    def register_conflict_listener(self, reservation_id: str, listener: ConflictListener) -> None:
        """Call ``listener`` with the remote document whenever an update of this id conflicts."""

        with self._listeners_lock:
            self._listeners[reservation_id] = listener

    def unregister_conflict_listener(self, reservation_id: str) -> None:
        with self._listeners_lock:
            self._listeners.pop(reservation_id, None)

    async def _conflict(self, remote: Reservation, expected_version: int, editor_id: str) -> UpdateOutcome:
        self.logger.warning(
            "Version conflict on %s: %s expected %s, store has %s (last edit by %s)",
            remote.reservation_id,
            editor_id,
            expected_version,
            remote.last_modified,
            remote.editor,
        )
        await self._notify_listener(remote)
        return UpdateOutcome.conflict_with(remote)

    async def _notify_listener(self, remote: Reservation) -> None:
        with self._listeners_lock:
            listener = self._listeners.get(remote.reservation_id)
        if listener is None:
            return
        try:
            result: Any = listener(remote)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self.logger.exception("Conflict listener for %s failed", remote.reservation_id)
