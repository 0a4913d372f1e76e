"""In-process document store used for tests and local development."""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .base import (
    DocumentStore,
    SnapshotCallback,
    StoredDocument,
    WatchHandle,
    next_updated_at,
    now_millis,
    sort_documents,
)
from .errors import DocumentNotFoundError, PreconditionFailedError
from .query import Query


@dataclass
class _Watch:
    query: Query
    callback: SnapshotCallback
    loop: asyncio.AbstractEventLoop


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store with Firestore-like watch semantics.

    Writes to one document are serialized by an internal lock, so a
    conditional update either observes the expected ``updated_at`` and applies
    or raises. Watch snapshots are computed at write time and delivered on the
    watcher's event loop in emission order.
    """

    def __init__(
        self,
        *,
        clock: Optional[Callable[[], int]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._clock = clock or now_millis
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._logger = logger or logging.getLogger('InMemoryDocumentStore')
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, StoredDocument]] = {}
        self._watches: Dict[int, _Watch] = {}
        self._watch_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    async def create(self, collection: str, data: Mapping[str, Any]) -> StoredDocument:
        await asyncio.sleep(0)
        with self._lock:
            documents = self._collections.setdefault(collection, {})
            doc_id = self._id_factory()
            while doc_id in documents:
                doc_id = self._id_factory()
            timestamp = self._clock()
            document = StoredDocument(
                doc_id=doc_id,
                data=dict(data),
                created_at=timestamp,
                updated_at=timestamp,
            )
            documents[doc_id] = document
            self._logger.debug("Created %s/%s at %s", collection, doc_id, timestamp)
            self._notify(collection, None, document)
        return document

    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        await asyncio.sleep(0)
        with self._lock:
            return self._collections.get(collection, {}).get(doc_id)

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        *,
        expected_updated_at: Optional[int] = None,
    ) -> StoredDocument:
        await asyncio.sleep(0)
        with self._lock:
            documents = self._collections.get(collection, {})
            current = documents.get(doc_id)
            if current is None:
                raise DocumentNotFoundError(collection, doc_id)
            if expected_updated_at is not None and current.updated_at != expected_updated_at:
                raise PreconditionFailedError(collection, doc_id, expected_updated_at, current)

            updated = StoredDocument(
                doc_id=doc_id,
                data={**current.data, **dict(changes)},
                created_at=current.created_at,
                updated_at=next_updated_at(self._clock(), current.updated_at),
            )
            documents[doc_id] = updated
            self._logger.debug(
                "Updated %s/%s: %s -> %s", collection, doc_id, current.updated_at, updated.updated_at,
            )
            self._notify(collection, current, updated)
        return updated

    async def delete(self, collection: str, doc_id: str) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            removed = self._collections.get(collection, {}).pop(doc_id, None)
            if removed is None:
                return False
            self._logger.debug("Deleted %s/%s", collection, doc_id)
            self._notify(collection, removed, None)
        return True

    async def query(self, query: Query) -> List[StoredDocument]:
        await asyncio.sleep(0)
        with self._lock:
            return self._run_query(query)

    # ------------------------------------------------------------------
    # Watches
    # ------------------------------------------------------------------
    def watch(self, query: Query, on_snapshot: SnapshotCallback) -> WatchHandle:
        loop = asyncio.get_running_loop()
        with self._lock:
            watch_id = next(self._watch_ids)
            self._watches[watch_id] = _Watch(query=query, callback=on_snapshot, loop=loop)
            initial = self._run_query(query)
        loop.call_soon(self._deliver, watch_id, initial)
        return WatchHandle(
            lambda: self._cancel_watch(watch_id),
            description=f"{query.collection}#{watch_id}",
        )

    @property
    def watch_count(self) -> int:
        with self._lock:
            return len(self._watches)

    def _cancel_watch(self, watch_id: int) -> None:
        with self._lock:
            self._watches.pop(watch_id, None)

    def _deliver(self, watch_id: int, documents: List[StoredDocument]) -> None:
        with self._lock:
            watch = self._watches.get(watch_id)
        if watch is None:
            return
        watch.callback(documents)

    def _notify(
        self,
        collection: str,
        before: Optional[StoredDocument],
        after: Optional[StoredDocument],
    ) -> None:
        # Caller holds ``_lock``.
        for watch_id, watch in self._watches.items():
            if watch.query.collection != collection:
                continue
            touched = (before is not None and watch.query.matches(before.data)) or (
                after is not None and watch.query.matches(after.data)
            )
            if not touched:
                continue
            snapshot = self._run_query(watch.query)
            watch.loop.call_soon_threadsafe(self._deliver, watch_id, snapshot)

    def _run_query(self, query: Query) -> List[StoredDocument]:
        documents = self._collections.get(query.collection, {}).values()
        return sort_documents(
            (doc for doc in documents if query.matches(doc.data)),
            query,
        )
