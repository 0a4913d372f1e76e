"""Dependency container wiring the reservation sync components together."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from infrastructure.settings import AppSettings
from infrastructure.store import DocumentStore, InMemoryDocumentStore
from monitoring import SyncCoordinator
from reservations.conflicts import ConflictDetector, ConflictResolver
from reservations.repository import ReservationRepository
from reservations.services import UpdateOrchestrator


def build_document_store(settings: AppSettings) -> DocumentStore:
    """Return the document store selected by ``settings.store_backend``."""

    if settings.store_backend == "memory":
        return InMemoryDocumentStore()
    if settings.store_backend == "firestore":
        # Imported lazily so the in-memory backend never touches Google credentials.
        from infrastructure.store.firestore import FirestoreDocumentStore

        return FirestoreDocumentStore(project=settings.firestore_project_id)
    raise ValueError(f"Unsupported document store backend: {settings.store_backend!r}")


class DependencyContainer:
    """Lazy dependency container with optional override support."""

    def __init__(
        self,
        settings: AppSettings,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.settings = settings
        self._cache: Dict[str, Any] = {}
        if overrides:
            self._cache.update(overrides)

    # ------------------------------------------------------------------
    # Internal helpers
    def _resolve(self, key: str, factory: Callable[[], Any]) -> Any:
        if key not in self._cache:
            self._cache[key] = factory()
        return self._cache[key]

    # ------------------------------------------------------------------
    # Core dependencies
    @property
    def store(self) -> DocumentStore:
        """Cached document store for the configured backend."""

        return self._resolve('store', lambda: build_document_store(self.settings))

    @property
    def repository(self) -> ReservationRepository:
        def factory() -> ReservationRepository:
            return ReservationRepository(
                self.store,
                collection=self.settings.reservations_collection,
            )

        return self._resolve('repository', factory)

    @property
    def resolver(self) -> ConflictResolver:
        return self._resolve(
            'resolver',
            lambda: ConflictResolver(timezone=self.settings.timezone),
        )

    @property
    def orchestrator(self) -> UpdateOrchestrator:
        def factory() -> UpdateOrchestrator:
            return UpdateOrchestrator(
                self.repository,
                detector=ConflictDetector(),
                resolver=self.resolver,
                time_slots=self.settings.time_slots,
            )

        return self._resolve('orchestrator', factory)

    @property
    def sync_coordinator(self) -> SyncCoordinator:
        """Cached sync coordinator; must first be used inside a running loop."""

        return self._resolve('sync_coordinator', lambda: SyncCoordinator(self.repository))

    async def shutdown(self) -> None:
        """Close the sync coordinator if one was built."""

        coordinator = self._cache.get('sync_coordinator')
        if coordinator is not None:
            await coordinator.close()
