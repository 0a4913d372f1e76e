"""Typed reservation access on top of a document store collection."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional

from infrastructure.constants import RESERVATIONS_COLLECTION
from infrastructure.store import (
    DocumentNotFoundError,
    DocumentStore,
    Equals,
    OrderBy,
    PreconditionFailedError,
    Query,
    RangeBound,
    StoredDocument,
    WatchHandle,
)
from reservations.errors import ReservationNotFoundError, VersionConflictError
from reservations.models import (
    Reservation,
    ReservationDraft,
    ReservationPatch,
    ReservationStatus,
)

ReservationsCallback = Callable[[List[Reservation]], None]

SCHEDULE_ORDER = (OrderBy("date"), OrderBy("time_slot"))


class ReservationRepository:
    """Read/write/watch reservations in a single collection.

    Pure adapter: no optimistic-lock decisions are made here. Transport errors
    from the store propagate unchanged.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        collection: str = RESERVATIONS_COLLECTION,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._collection = collection
        self._logger = logger or logging.getLogger('ReservationRepository')

    @property
    def collection(self) -> str:
        return self._collection

    async def create(self, draft: ReservationDraft) -> str:
        document = await self._store.create(self._collection, draft.to_payload())
        self._logger.info(
            "Reservation %s created for %s %s",
            document.doc_id,
            draft.date.isoformat(),
            draft.time_slot,
        )
        return document.doc_id

    async def update(self, reservation_id: str, patch: ReservationPatch) -> None:
        """Apply ``patch`` unconditionally."""

        try:
            await self._store.update(self._collection, reservation_id, patch.to_changes())
        except DocumentNotFoundError as exc:
            raise ReservationNotFoundError(reservation_id) from exc
        self._logger.debug("Reservation %s updated: %s", reservation_id, patch.to_changes())

    async def update_if_unmodified(
        self,
        reservation_id: str,
        patch: ReservationPatch,
        expected_version: int,
    ) -> Reservation:
        """Apply ``patch`` only if the stored version still equals ``expected_version``."""

        try:
            document = await self._store.update(
                self._collection,
                reservation_id,
                patch.to_changes(),
                expected_updated_at=expected_version,
            )
        except DocumentNotFoundError as exc:
            raise ReservationNotFoundError(reservation_id) from exc
        except PreconditionFailedError as exc:
            if exc.current is None:
                raise ReservationNotFoundError(reservation_id) from exc
            raise VersionConflictError(
                reservation_id,
                expected_version,
                Reservation.from_document(exc.current),
            ) from exc
        return Reservation.from_document(document)

    async def delete(self, reservation_id: str) -> bool:
        deleted = await self._store.delete(self._collection, reservation_id)
        if deleted:
            self._logger.info("Reservation %s deleted", reservation_id)
        else:
            self._logger.debug("Delete skipped; reservation %s does not exist", reservation_id)
        return deleted

    async def get(self, reservation_id: str) -> Optional[Reservation]:
        document = await self._store.get(self._collection, reservation_id)
        if document is None:
            return None
        return Reservation.from_document(document)

    async def get_by_date_range(self, start: date, end: date) -> List[Reservation]:
        documents = await self._store.query(self._date_range_query(start, end))
        return self._to_reservations(documents)

    async def get_by_date(self, day: date) -> List[Reservation]:
        return await self.get_by_date_range(day, day)

    async def get_by_status(self, status: ReservationStatus) -> List[Reservation]:
        query = Query(
            collection=self._collection,
            filters=(Equals("status", ReservationStatus(status).value),),
            order_by=SCHEDULE_ORDER,
        )
        return self._to_reservations(await self._store.query(query))

    def watch_by_date_range(
        self,
        start: date,
        end: date,
        on_change: ReservationsCallback,
    ) -> WatchHandle:
        """Watch a date range; ``on_change`` gets the full ordered list each time."""

        def _on_snapshot(documents: List[StoredDocument]) -> None:
            on_change(self._to_reservations(documents))

        handle = self._store.watch(self._date_range_query(start, end), _on_snapshot)
        self._logger.debug(
            "Watching %s from %s to %s (%s)",
            self._collection,
            start.isoformat(),
            end.isoformat(),
            handle.description,
        )
        return handle

    def watch_by_date(self, day: date, on_change: ReservationsCallback) -> WatchHandle:
        return self.watch_by_date_range(day, day, on_change)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _date_range_query(self, start: date, end: date) -> Query:
        if end < start:
            raise ValueError(f"Date range end {end} is before start {start}")
        return Query(
            collection=self._collection,
            filters=(RangeBound("date", lower=start.isoformat(), upper=end.isoformat()),),
            order_by=SCHEDULE_ORDER,
        )

    def _to_reservations(self, documents: List[StoredDocument]) -> List[Reservation]:
        reservations: List[Reservation] = []
        for document in documents:
            try:
                reservations.append(Reservation.from_document(document))
            except ValueError as exc:
                self._logger.warning("Skipping malformed reservation %s: %s", document.doc_id, exc)
        return reservations
