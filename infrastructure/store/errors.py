"""Exceptions raised by document store adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .base import StoredDocument


class TransportError(Exception):
    """The document store call itself failed (network, quota, permission)."""


class DocumentNotFoundError(LookupError):
    """A write targeted a document id that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class PreconditionFailedError(Exception):
    """A conditional write found a different ``updated_at`` than expected."""

    def __init__(
        self,
        collection: str,
        doc_id: str,
        expected_updated_at: int,
        current: Optional["StoredDocument"] = None,
    ) -> None:
        actual = current.updated_at if current is not None else None
        super().__init__(
            f"Document {collection}/{doc_id} changed: expected updated_at "
            f"{expected_updated_at}, found {actual}"
        )
        self.collection = collection
        self.doc_id = doc_id
        self.expected_updated_at = expected_updated_at
        self.current = current
