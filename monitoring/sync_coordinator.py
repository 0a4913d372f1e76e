"""Live schedule synchronisation over reservation watches."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from datetime import date
from typing import Awaitable, Callable, Dict, List, Optional, Union

from infrastructure.store import WatchHandle
from reservations.models import Reservation
from reservations.repository import ReservationRepository

SyncCallback = Callable[[List[Reservation]], Union[None, Awaitable[None]]]


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class _Subscription:
    """One active watch and the task that delivers its snapshots in order."""

    def __init__(self, sync_id: str, callback: SyncCallback, logger: logging.Logger) -> None:
        self.sync_id = sync_id
        self.handle: Optional[WatchHandle] = None
        self._callback = callback
        self._logger = logger
        self._active = True
        self._pending: asyncio.Queue = asyncio.Queue()
        self._loop = asyncio.get_running_loop()
        self.task = self._loop.create_task(
            self._deliver(),
            name=f"sync-{sync_id}",
        )

    def push(self, reservations: List[Reservation]) -> None:
        if self._active:
            self._pending.put_nowait(reservations)

    def close(self) -> None:
        if not self._active:
            return
        self._active = False
        if self.handle is not None:
            self.handle.unsubscribe()
        if _running_loop() is self._loop:
            self.task.cancel()
        else:
            self._loop.call_soon_threadsafe(self.task.cancel)

    async def _deliver(self) -> None:
        while True:
            reservations = await self._pending.get()
            # Snapshots queued before close() are dropped.
            if not self._active:
                return
            try:
                result = self._callback(reservations)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self._logger.exception("Sync callback for %s failed", self.sync_id)


class SyncCoordinator:
    """Registry of live reservation watches keyed by a caller-chosen id.

    Starting a sync under an id that is already active replaces the previous
    watch. Every change delivers the full current reservation list for the
    watched range to the callback; each id has its own delivery task so a slow
    callback only delays its own subscription. Once :meth:`stop_sync` returns,
    the callback for that id is not invoked again.

    Syncs must be started from the event loop that will run the callbacks.
    Stopping may happen from any thread: task cancellation is handed to the
    owning loop with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        repository: ReservationRepository,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._repository = repository
        self._logger = logger or logging.getLogger('SyncCoordinator')
        self._subscriptions: Dict[str, _Subscription] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start_date_range_sync(
        self,
        start: date,
        end: date,
        callback: SyncCallback,
        sync_id: str,
    ) -> None:
        self._start(
            sync_id,
            callback,
            lambda push: self._repository.watch_by_date_range(start, end, push),
            f"{start.isoformat()}..{end.isoformat()}",
        )

    def start_date_sync(self, day: date, callback: SyncCallback, sync_id: str) -> None:
        self._start(
            sync_id,
            callback,
            lambda push: self._repository.watch_by_date(day, push),
            day.isoformat(),
        )

    def stop_sync(self, sync_id: str) -> None:
        """Stop one sync; unknown or already stopped ids are ignored."""

        with self._lock:
            subscription = self._subscriptions.pop(sync_id, None)
        if subscription is None:
            return
        subscription.close()
        self._logger.info("Sync %s stopped (%s active)", sync_id, self.active_count())

    def stop_all_sync(self) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.close()
        if subscriptions:
            self._logger.info("Stopped %s syncs", len(subscriptions))

    async def close(self) -> None:
        """Stop every sync and wait for the delivery tasks to finish."""

        with self._lock:
            tasks = [subscription.task for subscription in self._subscriptions.values()]
        self.stop_all_sync()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def active_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def active_ids(self) -> List[str]:
        with self._lock:
            return list(self._subscriptions.keys())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _start(
        self,
        sync_id: str,
        callback: SyncCallback,
        open_watch: Callable[[Callable[[List[Reservation]], None]], WatchHandle],
        description: str,
    ) -> None:
        with self._lock:
            previous = self._subscriptions.pop(sync_id, None)
            if previous is not None:
                previous.close()
                self._logger.debug("Replacing existing sync %s", sync_id)

            subscription = _Subscription(sync_id, callback, self._logger)
            try:
                subscription.handle = open_watch(subscription.push)
            except Exception:
                subscription.close()
                raise
            self._subscriptions[sync_id] = subscription

        self._logger.info(
            "Sync %s started for %s (%s active)",
            sync_id,
            description,
            self.active_count(),
        )
