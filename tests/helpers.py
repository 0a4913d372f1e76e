"""Shared fakes and utilities for unit tests."""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from infrastructure.store import (
    DocumentStore,
    InMemoryDocumentStore,
    Query,
    StoredDocument,
    TransportError,
    WatchHandle,
)
from reservations.models import Reservation, ReservationCategory, ReservationStatus


class DummyLogger:
    """Lightweight stand-in for ``logging.Logger`` that records calls."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        self.records.append((level, args, kwargs))

    def debug(self, *args: Any, **kwargs: Any) -> None:
        self._record("debug", *args, **kwargs)

    def info(self, *args: Any, **kwargs: Any) -> None:
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        self._record("error", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        self._record("exception", *args, **kwargs)

    @property
    def messages(self) -> List[Tuple[str, Any]]:
        """Return formatted messages for quick assertions."""

        formatted: List[Tuple[str, Any]] = []
        for level, args, _kwargs in self.records:
            template = args[0] if args else ""
            if isinstance(template, str) and len(args) > 1:
                try:
                    message = template % args[1:]
                except (TypeError, ValueError):
                    message = template
            else:
                message = template
            formatted.append((level, message))
        return formatted

    def levels(self) -> List[str]:
        return [level for level, _args, _kwargs in self.records]


class ScriptedClock:
    """Millisecond clock returning scripted values, then counting up by one."""

    def __init__(self, values: Iterable[int] = (), start: int = 1_000) -> None:
        self._values = list(values)
        self._last = start

    def __call__(self) -> int:
        if self._values:
            self._last = self._values.pop(0)
        else:
            self._last += 1
        return self._last

    def queue(self, *values: int) -> None:
        self._values.extend(values)


class SequentialIds:
    """Deterministic document id factory: res-1, res-2, ..."""

    def __init__(self, prefix: str = "res") -> None:
        self._prefix = prefix
        self._next = 0

    def __call__(self) -> str:
        self._next += 1
        return f"{self._prefix}-{self._next}"


class FailingStore(DocumentStore):
    """Wrap a store and raise :class:`TransportError` for selected document ids."""

    def __init__(self, inner: DocumentStore, failing_ids: Sequence[str] = ()) -> None:
        self.inner = inner
        self.failing_ids = set(failing_ids)

    def _check(self, doc_id: str) -> None:
        if doc_id in self.failing_ids:
            raise TransportError(f"store unavailable for {doc_id}")

    async def create(self, collection: str, data: Mapping[str, Any]) -> StoredDocument:
        return await self.inner.create(collection, data)

    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        self._check(doc_id)
        return await self.inner.get(collection, doc_id)

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Mapping[str, Any],
        *,
        expected_updated_at: Optional[int] = None,
    ) -> StoredDocument:
        self._check(doc_id)
        return await self.inner.update(
            collection, doc_id, changes, expected_updated_at=expected_updated_at
        )

    async def delete(self, collection: str, doc_id: str) -> bool:
        self._check(doc_id)
        return await self.inner.delete(collection, doc_id)

    async def query(self, query: Query) -> List[StoredDocument]:
        return await self.inner.query(query)

    def watch(self, query: Query, on_snapshot) -> WatchHandle:
        return self.inner.watch(query, on_snapshot)


def make_store(*clock_values: int) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock=ScriptedClock(clock_values), id_factory=SequentialIds())


def make_reservation(
    *,
    reservation_id: str = "res-1",
    day: date = date(2024, 1, 15),
    time_slot: str = "10:00",
    content: str = "",
    category: ReservationCategory = ReservationCategory.OTHER,
    status: ReservationStatus = ReservationStatus.AVAILABLE,
    last_modified: int = 100,
    created_at: int = 50,
    last_edit_by: Optional[str] = None,
) -> Reservation:
    return Reservation(
        reservation_id=reservation_id,
        date=day,
        time_slot=time_slot,
        content=content,
        category=category,
        status=status,
        created_at=created_at,
        last_modified=last_modified,
        last_edit_by=last_edit_by,
    )


async def settle(rounds: int = 10) -> None:
    """Let pending ``call_soon`` callbacks and delivery tasks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)
