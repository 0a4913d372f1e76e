"""Google Cloud Firestore adapter for the document store contract.

The synchronous Firestore client is used so that ``on_snapshot`` listeners are
available; blocking calls run in worker threads via :func:`asyncio.to_thread`
and listener callbacks, which Firestore fires on its own thread, are handed
back to the event loop that registered the watch.

Versions (``created_at`` / ``updated_at``) are taken from this process's clock,
not from Firestore's server time. Per-document monotonicity still holds because
updates read the previous value inside a transaction and write
``max(now, previous + 1)``; ordering across documents written from different
hosts is only as good as their clock sync.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from google.api_core import exceptions as api_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from .base import (
    DocumentStore,
    SnapshotCallback,
    StoredDocument,
    WatchHandle,
    next_updated_at,
    now_millis,
    sort_documents,
)
from .errors import DocumentNotFoundError, PreconditionFailedError, TransportError
from .query import Equals, Membership, Query, RangeBound

CREATED_AT_FIELD = "created_at"
UPDATED_AT_FIELD = "updated_at"


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by a Firestore collection."""

    def __init__(
        self,
        client: Optional[firestore.Client] = None,
        *,
        project: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        # Application Default Credentials when no client is injected.
        self._client = client or firestore.Client(project=project)
        self._logger = logger or logging.getLogger('FirestoreDocumentStore')

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    async def create(self, collection: str, data: Mapping[str, Any]) -> StoredDocument:
        def _create() -> StoredDocument:
            ref = self._client.collection(collection).document()
            timestamp = now_millis()
            ref.set({**dict(data), CREATED_AT_FIELD: timestamp, UPDATED_AT_FIELD: timestamp})
            return StoredDocument(
                doc_id=ref.id,
                data=dict(data),
                created_at=timestamp,
                updated_at=timestamp,
            )

        document = await self._call("create", _create)
        self._logger.debug("Created %s/%s", collection, document.doc_id)
        return document

    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        def _get() -> Optional[StoredDocument]:
            snapshot = self._client.collection(collection).document(doc_id).get()
            if not snapshot.exists:
                return None
            return self._to_document(snapshot)

        return await self._call("get", _get)

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        *,
        expected_updated_at: Optional[int] = None,
    ) -> StoredDocument:
        ref = self._client.collection(collection).document(doc_id)

        @firestore.transactional
        def _apply(transaction: firestore.Transaction) -> StoredDocument:
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise DocumentNotFoundError(collection, doc_id)
            current = self._to_document(snapshot)
            if expected_updated_at is not None and current.updated_at != expected_updated_at:
                raise PreconditionFailedError(collection, doc_id, expected_updated_at, current)

            updated_at = next_updated_at(now_millis(), current.updated_at)
            transaction.update(ref, {**dict(changes), UPDATED_AT_FIELD: updated_at})
            return StoredDocument(
                doc_id=doc_id,
                data={**current.data, **dict(changes)},
                created_at=current.created_at,
                updated_at=updated_at,
            )

        return await self._call("update", lambda: self._in_transaction("update", _apply))

    async def delete(self, collection: str, doc_id: str) -> bool:
        ref = self._client.collection(collection).document(doc_id)

        @firestore.transactional
        def _delete(transaction: firestore.Transaction) -> bool:
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                return False
            transaction.delete(ref)
            return True

        return await self._call("delete", lambda: self._in_transaction("delete", _delete))

    async def query(self, query: Query) -> List[StoredDocument]:
        def _query() -> List[StoredDocument]:
            return [self._to_document(snapshot) for snapshot in self._build_query(query).stream()]

        return await self._call("query", _query)

    # ------------------------------------------------------------------
    # Watches
    # ------------------------------------------------------------------
    def watch(self, query: Query, on_snapshot: SnapshotCallback) -> WatchHandle:
        loop = asyncio.get_running_loop()

        def _listener(snapshots, _changes, _read_time) -> None:
            documents = sort_documents((self._to_document(item) for item in snapshots), query)
            loop.call_soon_threadsafe(on_snapshot, documents)

        try:
            watch = self._build_query(query).on_snapshot(_listener)
        except api_exceptions.GoogleAPIError as exc:
            raise TransportError(f"Firestore watch failed: {exc}") from exc
        return WatchHandle(watch.unsubscribe, description=f"firestore:{query.collection}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _call(self, operation: str, func):
        try:
            return await asyncio.to_thread(func)
        except api_exceptions.GoogleAPIError as exc:
            self._logger.error("Firestore %s failed: %s", operation, exc)
            raise TransportError(f"Firestore {operation} failed: {exc}") from exc

    def _in_transaction(self, operation: str, func):
        try:
            return func(self._client.transaction())
        except ValueError as exc:
            # ``firestore.transactional`` gives up with ValueError once commit retries are exhausted.
            self._logger.error("Firestore %s transaction failed: %s", operation, exc)
            raise TransportError(f"Firestore {operation} transaction failed: {exc}") from exc

    def _build_query(self, query: Query):
        ref = self._client.collection(query.collection)
        for item in query.filters:
            if isinstance(item, Equals):
                ref = ref.where(filter=FieldFilter(item.field, "==", item.value))
            elif isinstance(item, RangeBound):
                if item.lower is not None:
                    ref = ref.where(filter=FieldFilter(item.field, ">=", item.lower))
                if item.upper is not None:
                    ref = ref.where(filter=FieldFilter(item.field, "<=", item.upper))
            elif isinstance(item, Membership):
                ref = ref.where(filter=FieldFilter(item.field, "in", list(item.values)))
            else:  # pragma: no cover - closed union
                raise TypeError(f"Unsupported filter {item!r}")
        for order in query.order_by:
            direction = firestore.Query.DESCENDING if order.descending else firestore.Query.ASCENDING
            ref = ref.order_by(order.field, direction=direction)
        return ref

    @staticmethod
    def _to_document(snapshot) -> StoredDocument:
        payload: Dict[str, Any] = snapshot.to_dict() or {}
        created_at = int(payload.pop(CREATED_AT_FIELD, 0) or 0)
        updated_at = int(payload.pop(UPDATED_AT_FIELD, created_at) or created_at)
        return StoredDocument(
            doc_id=snapshot.id,
            data=payload,
            created_at=created_at,
            updated_at=updated_at,
        )
