"""Reservation concurrency-control core: repository, conflicts and update services."""
