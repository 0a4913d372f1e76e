"""Live synchronisation of clients with the shared reservation schedule."""

from .sync_coordinator import SyncCallback, SyncCoordinator

__all__ = ["SyncCallback", "SyncCoordinator"]
