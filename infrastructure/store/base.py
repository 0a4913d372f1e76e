"""Document store contract shared by the in-memory and Firestore adapters."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .query import Query

SnapshotCallback = Callable[[List["StoredDocument"]], None]


def now_millis() -> int:
    """Wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


def next_updated_at(now: int, previous: Optional[int]) -> int:
    """Return a timestamp strictly greater than ``previous``."""

    if previous is None:
        return now
    return max(now, previous + 1)


@dataclass(frozen=True)
class StoredDocument:
    """A document as held by the store, with store-managed timestamps."""

    doc_id: str
    data: Mapping[str, Any]
    created_at: int
    updated_at: int


def sort_documents(documents: Iterable[StoredDocument], query: Query) -> List[StoredDocument]:
    """Apply ``query.order_by`` to documents, last key first for a stable sort."""

    ordered = list(documents)
    for order in reversed(query.order_by):
        ordered.sort(
            key=lambda doc: (doc.data.get(order.field) is None, doc.data.get(order.field)),
            reverse=order.descending,
        )
    return ordered


@dataclass
class WatchHandle:
    """Cancellation handle returned by :meth:`DocumentStore.watch`."""

    _cancel: Callable[[], None]
    description: str = ""
    _active: bool = field(default=True, init=False)

    def unsubscribe(self) -> None:
        """Stop the watch. Calling it more than once is a no-op."""

        if not self._active:
            return
        self._active = False
        self._cancel()


class DocumentStore(ABC):
    """Versioned key-document store with change-feed support."""

    @abstractmethod
    async def create(self, collection: str, data: Mapping[str, Any]) -> StoredDocument:
        """Insert a document, assigning its id and timestamps."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        """Return the document or ``None`` when it does not exist."""

    @abstractmethod
    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        *,
        expected_updated_at: Optional[int] = None,
    ) -> StoredDocument:
        """Merge ``changes`` into a document and advance ``updated_at``.

        When ``expected_updated_at`` is given the write only happens if the
        stored ``updated_at`` still equals it; otherwise
        :class:`PreconditionFailedError` is raised.
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document, returning ``False`` when it did not exist."""

    @abstractmethod
    async def query(self, query: Query) -> List[StoredDocument]:
        """Return documents matching ``query`` in its requested order."""

    @abstractmethod
    def watch(self, query: Query, on_snapshot: SnapshotCallback) -> WatchHandle:
        """Subscribe to ``query``; ``on_snapshot`` gets the full result set on every change."""
