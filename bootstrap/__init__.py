"""Bootstrap helpers for assembling the reservation sync runtime."""

from .container import DependencyContainer, build_document_store

__all__ = ["DependencyContainer", "build_document_store"]
