import asyncio
from datetime import date

import pytest

from monitoring import SyncCoordinator
from reservations.models import ReservationDraft
from reservations.repository import ReservationRepository
from tests.helpers import DummyLogger, make_store, settle

DAY = date(2024, 1, 15)


def _setup():
    store = make_store()
    repository = ReservationRepository(store)
    coordinator = SyncCoordinator(repository, logger=DummyLogger())
    return store, repository, coordinator


def _draft(slot="10:00", day=DAY, **extra):
    return ReservationDraft(date=day, time_slot=slot, **extra)


@pytest.mark.asyncio
async def test_sync_delivers_initial_and_updated_schedule():
    _store, repository, coordinator = _setup()
    await repository.create(_draft("11:00"))
    snapshots = []

    coordinator.start_date_sync(DAY, snapshots.append, "front-desk")
    await settle()
    await repository.create(_draft("09:30"))
    await settle()

    assert [[r.time_slot for r in snapshot] for snapshot in snapshots] == [
        ["11:00"],
        ["09:30", "11:00"],
    ]
    assert coordinator.active_ids() == ["front-desk"]
    await coordinator.close()


@pytest.mark.asyncio
async def test_date_range_sync_covers_every_day_in_range():
    _store, repository, coordinator = _setup()
    received = []

    async def callback(reservations):
        received.append([r.date.day for r in reservations])

    coordinator.start_date_range_sync(date(2024, 1, 15), date(2024, 1, 17), callback, "week")
    await settle()
    await repository.create(_draft(day=date(2024, 1, 17)))
    await repository.create(_draft(day=date(2024, 1, 18)))
    await settle()

    assert received == [[], [17]]
    await coordinator.close()


@pytest.mark.asyncio
async def test_restarting_an_id_replaces_the_previous_watch():
    store, repository, coordinator = _setup()
    first, second = [], []

    coordinator.start_date_sync(DAY, first.append, "desk")
    coordinator.start_date_sync(DAY, second.append, "desk")
    await settle()
    await repository.create(_draft())
    await settle()

    assert first == []
    assert len(second) == 2
    assert coordinator.active_count() == 1
    assert store.watch_count == 1
    await coordinator.close()


@pytest.mark.asyncio
async def test_stop_sync_is_idempotent():
    store, _repository, coordinator = _setup()
    coordinator.start_date_sync(DAY, lambda reservations: None, "desk")
    coordinator.start_date_sync(DAY, lambda reservations: None, "tablet")
    assert coordinator.active_count() == 2

    coordinator.stop_sync("desk")
    assert coordinator.active_count() == 1
    coordinator.stop_sync("desk")
    coordinator.stop_sync("never-started")

    assert coordinator.active_count() == 1
    assert coordinator.active_ids() == ["tablet"]
    assert store.watch_count == 1
    await coordinator.close()


@pytest.mark.asyncio
async def test_no_callback_after_stop_even_for_pending_snapshots():
    _store, repository, coordinator = _setup()
    snapshots = []

    coordinator.start_date_sync(DAY, snapshots.append, "desk")
    await settle()
    await repository.create(_draft("10:00"))
    await repository.create(_draft("10:30"))
    coordinator.stop_sync("desk")
    await settle()
    await repository.create(_draft("11:00"))
    await settle()

    assert snapshots == [[]]


@pytest.mark.asyncio
async def test_slow_callback_does_not_delay_other_syncs():
    _store, repository, coordinator = _setup()
    release = asyncio.Event()
    slow_calls, fast_calls = [], []

    async def slow(reservations):
        slow_calls.append(len(reservations))
        await release.wait()

    coordinator.start_date_sync(DAY, slow, "slow")
    coordinator.start_date_sync(DAY, fast_calls.append, "fast")
    await settle()
    await repository.create(_draft("10:00"))
    await repository.create(_draft("10:30"))
    await settle()

    assert slow_calls == [0]
    assert [len(snapshot) for snapshot in fast_calls] == [0, 1, 2]

    release.set()
    await settle()
    assert slow_calls == [0, 1, 2]
    await coordinator.close()


@pytest.mark.asyncio
async def test_callback_errors_are_logged_and_delivery_continues():
    store = make_store()
    repository = ReservationRepository(store)
    logger = DummyLogger()
    coordinator = SyncCoordinator(repository, logger=logger)
    calls = []

    def callback(reservations):
        calls.append(len(reservations))
        if len(calls) == 1:
            raise RuntimeError("render failed")

    coordinator.start_date_sync(DAY, callback, "desk")
    await settle()
    await repository.create(_draft())
    await settle()

    assert calls == [0, 1]
    assert "exception" in logger.levels()
    await coordinator.close()


@pytest.mark.asyncio
async def test_stop_all_and_close_release_every_watch():
    store, _repository, coordinator = _setup()
    for sync_id in ("a", "b", "c"):
        coordinator.start_date_sync(DAY, lambda reservations: None, sync_id)
    await settle()

    coordinator.stop_all_sync()
    assert coordinator.active_count() == 0
    assert store.watch_count == 0

    coordinator.start_date_sync(DAY, lambda reservations: None, "d")
    await coordinator.close()
    assert coordinator.active_count() == 0
    assert store.watch_count == 0


@pytest.mark.asyncio
async def test_failed_start_leaves_no_subscription():
    _store, _repository, coordinator = _setup()

    with pytest.raises(ValueError):
        coordinator.start_date_range_sync(date(2024, 1, 20), date(2024, 1, 10), lambda r: None, "bad")

    assert coordinator.active_count() == 0
    await settle()


@pytest.mark.asyncio
async def test_stop_from_another_thread_cancels_delivery_on_the_loop():
    _store, repository, coordinator = _setup()
    snapshots = []

    coordinator.start_date_sync(DAY, snapshots.append, "desk")
    await settle()
    task = next(iter(coordinator._subscriptions.values())).task

    await asyncio.to_thread(coordinator.stop_sync, "desk")
    await settle()
    await repository.create(_draft())
    await settle()

    assert task.cancelled()
    assert coordinator.active_count() == 0
    assert snapshots == [[]]


@pytest.mark.asyncio
async def test_start_outside_the_event_loop_is_rejected():
    _store, _repository, coordinator = _setup()

    with pytest.raises(RuntimeError):
        await asyncio.to_thread(coordinator.start_date_sync, DAY, lambda r: None, "desk")

    assert coordinator.active_count() == 0
