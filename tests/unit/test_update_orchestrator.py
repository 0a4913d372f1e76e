import asyncio
from datetime import date

import pytest

from infrastructure.store import InMemoryDocumentStore
from reservations.errors import InvalidReservationError, TransportError
from reservations.models import (
    BatchItem,
    ReservationDraft,
    ReservationPatch,
    ReservationStatus,
    UpdateStatus,
)
from reservations.repository import ReservationRepository
from reservations.services import UpdateOrchestrator
from tests.helpers import DummyLogger, FailingStore, ScriptedClock, make_store


def _orchestrator(store, logger=None):
    return UpdateOrchestrator(ReservationRepository(store), logger=logger or DummyLogger())


def _draft(**overrides):
    values = dict(date="2024-12-26", time_slot="10:00", content="cut", category="haircut", status="booked")
    values.update(overrides)
    return ReservationDraft(**values)


@pytest.mark.asyncio
async def test_stale_version_returns_conflict_with_remote_document():
    store = InMemoryDocumentStore(clock=ScriptedClock([100, 200, 300]), id_factory=lambda: "r1")
    orchestrator = _orchestrator(store)
    reservation_id = await orchestrator.create(_draft())

    seen_by_a = await orchestrator.get(reservation_id)
    assert seen_by_a.last_modified == 100

    by_b = await orchestrator.update_with_lock("r1", ReservationPatch(content="color"), 100, "staffB")
    assert by_b.status is UpdateStatus.APPLIED
    assert by_b.reservation.last_modified == 200

    by_a = await orchestrator.update_with_lock(
        "r1", ReservationPatch(status="blocked"), seen_by_a.last_modified, "staffA"
    )

    assert by_a.status is UpdateStatus.CONFLICT
    assert by_a.message == "Another editor changed this reservation"
    assert by_a.remote.last_modified == 200
    assert by_a.remote.content == "color"
    assert by_a.remote.last_edit_by == "staffB"
    assert (await orchestrator.get("r1")).status is ReservationStatus.BOOKED


@pytest.mark.asyncio
async def test_applied_update_records_editor_and_new_version():
    store = make_store(100, 250)
    orchestrator = _orchestrator(store)
    reservation_id = await orchestrator.create(_draft())

    outcome = await orchestrator.update_with_lock(
        reservation_id, ReservationPatch(content="cut and color"), 100, "staffA"
    )

    assert outcome.applied
    assert outcome.message == "Update applied"
    assert outcome.reservation.content == "cut and color"
    assert outcome.reservation.last_edit_by == "staffA"
    assert outcome.reservation.last_modified == 250
    assert outcome.reservation.category.value == "haircut"


@pytest.mark.asyncio
async def test_any_version_mismatch_is_a_conflict():
    store = make_store(100)
    orchestrator = _orchestrator(store)
    reservation_id = await orchestrator.create(_draft())

    # A caller claiming a newer version than the store holds is still rejected.
    outcome = await orchestrator.update_with_lock(
        reservation_id, ReservationPatch(content="x"), 999, "staffA"
    )

    assert outcome.conflicted
    assert outcome.remote.last_modified == 100


@pytest.mark.asyncio
async def test_missing_reservation_is_not_found():
    orchestrator = _orchestrator(make_store())

    outcome = await orchestrator.update_with_lock("nope", ReservationPatch(content="x"), 1, "staffA")

    assert outcome.not_found
    assert outcome.reservation_id == "nope"
    assert outcome.message == "Reservation not found"


@pytest.mark.asyncio
async def test_concurrent_updates_with_same_version_apply_once():
    store = make_store(100)
    orchestrator = _orchestrator(store)
    reservation_id = await orchestrator.create(_draft())

    outcomes = await asyncio.gather(
        orchestrator.update_with_lock(reservation_id, ReservationPatch(content="first"), 100, "staffA"),
        orchestrator.update_with_lock(reservation_id, ReservationPatch(content="second"), 100, "staffB"),
    )

    statuses = sorted(outcome.status.value for outcome in outcomes)
    assert statuses == ["applied", "conflict"]
    winner = next(outcome for outcome in outcomes if outcome.applied)
    loser = next(outcome for outcome in outcomes if not outcome.applied)
    assert loser.remote.last_modified == winner.reservation.last_modified


@pytest.mark.asyncio
async def test_transport_errors_propagate_from_single_update():
    store = FailingStore(make_store(), failing_ids=["res-1"])
    orchestrator = _orchestrator(store)
    await orchestrator.create(_draft())

    with pytest.raises(TransportError):
        await orchestrator.update_with_lock("res-1", ReservationPatch(content="x"), 1000, "staffA")


@pytest.mark.asyncio
async def test_batch_update_reports_stale_item_as_conflict():
    store = make_store()
    orchestrator = _orchestrator(store)
    ids = [await orchestrator.create(_draft(time_slot=slot)) for slot in ("10:00", "10:30", "11:00")]
    versions = {rid: (await orchestrator.get(rid)).last_modified for rid in ids}

    other = await orchestrator.update_with_lock(
        ids[1], ReservationPatch(content="changed elsewhere"), versions[ids[1]], "staffB"
    )
    assert other.applied

    result = await orchestrator.batch_update(
        [BatchItem(rid, ReservationPatch(status="blocked"), versions[rid]) for rid in ids],
        "staffA",
    )

    assert (result.total, result.succeeded, result.conflicted, result.errored) == (3, 2, 1, 0)
    assert [item.reservation_id for item in result.results] == ids
    assert result.results[1].outcome.remote.content == "changed elsewhere"
    assert result.results[0].succeeded and result.results[2].succeeded


@pytest.mark.asyncio
async def test_batch_update_counts_transport_failures_and_missing_items():
    inner = make_store()
    store = FailingStore(inner, failing_ids=["res-2"])
    logger = DummyLogger()
    orchestrator = _orchestrator(store, logger=logger)
    ids = [await orchestrator.create(_draft(time_slot=slot)) for slot in ("10:00", "10:30")]
    version = (await inner.get("reservations", "res-1")).updated_at

    result = await orchestrator.batch_update(
        [
            BatchItem(ids[0], ReservationPatch(content="ok"), version),
            BatchItem(ids[1], ReservationPatch(content="boom"), 1),
            BatchItem("missing", ReservationPatch(content="gone"), 1),
        ],
        "staffA",
    )

    assert result.total == len(result.results) == 3
    assert result.succeeded + result.conflicted + result.errored == result.total
    assert (result.succeeded, result.conflicted, result.errored) == (1, 1, 1)
    assert result.results[1].errored
    assert "res-2" in result.results[1].error
    assert result.results[2].outcome.not_found
    assert "error" in logger.levels()


@pytest.mark.asyncio
async def test_empty_batch():
    result = await _orchestrator(make_store()).batch_update([], "staffA")

    assert (result.total, result.succeeded, result.conflicted, result.errored) == (0, 0, 0, 0)
    assert result.results == ()


@pytest.mark.asyncio
async def test_create_rejects_unknown_time_slot():
    orchestrator = _orchestrator(make_store())

    with pytest.raises(InvalidReservationError):
        await orchestrator.create(_draft(time_slot="10:15"))


@pytest.mark.asyncio
async def test_conflict_listener_receives_remote_document():
    store = make_store(100, 200)
    orchestrator = _orchestrator(store)
    reservation_id = await orchestrator.create(_draft())
    await orchestrator.update_with_lock(reservation_id, ReservationPatch(content="color"), 100, "staffB")

    received = []

    async def listener(remote):
        received.append(remote)

    orchestrator.register_conflict_listener(reservation_id, listener)
    await orchestrator.update_with_lock(reservation_id, ReservationPatch(content="perm"), 100, "staffA")

    assert [item.content for item in received] == ["color"]

    orchestrator.unregister_conflict_listener(reservation_id)
    orchestrator.unregister_conflict_listener(reservation_id)
    await orchestrator.update_with_lock(reservation_id, ReservationPatch(content="perm"), 100, "staffA")
    assert len(received) == 1


@pytest.mark.asyncio
async def test_failing_conflict_listener_does_not_break_update():
    store = make_store(100, 200)
    logger = DummyLogger()
    orchestrator = _orchestrator(store, logger=logger)
    reservation_id = await orchestrator.create(_draft())
    await orchestrator.update_with_lock(reservation_id, ReservationPatch(content="color"), 100, "staffB")

    def listener(remote):
        raise RuntimeError("listener broke")

    orchestrator.register_conflict_listener(reservation_id, listener)
    outcome = await orchestrator.update_with_lock(
        reservation_id, ReservationPatch(content="perm"), 100, "staffA"
    )

    assert outcome.conflicted
    assert "exception" in logger.levels()


@pytest.mark.asyncio
async def test_detect_and_resolve_through_orchestrator():
    store = make_store(100, 200)
    orchestrator = _orchestrator(store)
    reservation_id = await orchestrator.create(_draft())
    local = await orchestrator.get(reservation_id)
    await orchestrator.update_with_lock(reservation_id, ReservationPatch(content="color"), 100, "staffB")
    remote = (await orchestrator.update_with_lock(
        reservation_id, ReservationPatch(content="perm"), 100, "staffA"
    )).remote

    conflict = orchestrator.detect_conflict(local, remote)
    merged = orchestrator.resolve(conflict, "last-write-wins").merged
    applied = await orchestrator.update_with_lock(reservation_id, merged, remote.last_modified, "staffA")

    assert applied.applied
    assert applied.reservation.content == "color"
    assert orchestrator.summarize(conflict).fields[0].remote_value == "color"
    assert date(2024, 12, 26) == applied.reservation.date
