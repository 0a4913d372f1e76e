"""Reservation update services."""

from .update_orchestrator import ConflictListener, UpdateOrchestrator

__all__ = ["ConflictListener", "UpdateOrchestrator"]
