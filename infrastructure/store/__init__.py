"""Document store contract and adapters."""

from .base import DocumentStore, StoredDocument, WatchHandle
from .errors import DocumentNotFoundError, PreconditionFailedError, TransportError
from .memory import InMemoryDocumentStore
from .query import Equals, FieldFilter, Membership, OrderBy, Query, RangeBound

__all__ = [
    "DocumentStore",
    "StoredDocument",
    "WatchHandle",
    "DocumentNotFoundError",
    "PreconditionFailedError",
    "TransportError",
    "InMemoryDocumentStore",
    "Equals",
    "FieldFilter",
    "Membership",
    "OrderBy",
    "Query",
    "RangeBound",
]
