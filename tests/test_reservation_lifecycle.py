# tests/test_reservation_lifecycle.py
import asyncio
from datetime import date

import pytest

from reservation_engine.domain.entities import Principal
from reservation_engine.domain.enums import ReservationStatus, TableSection, TableStatus, UserRole
from reservation_engine.exceptions.reservation_exceptions import (
    CapacityExceededError,
    ConcurrentModificationError,
    InvalidStatusTransitionError,
    NoActiveBookingsForDateError,
    ReservationAccessDeniedError,
    ReservationNotFoundError,
    SlotTakenError,
)
from reservation_engine.exceptions.storage_exceptions import StorageTimeoutError
from reservation_engine.services.engine import build_memory_engine
from reservation_engine.services.reservation_lifecycle import CREATION_NOTE, ReservationRequest

JUNE_FIRST = date(2024, 6, 1)


async def test_create_confirms_with_single_history_entry(engine, table4, alice, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id, time="9:30"), alice)

    assert reservation.status == ReservationStatus.CONFIRMED
    assert reservation.user_id == "alice"
    assert reservation.time == "09:30"
    assert len(reservation.confirmation_code) == 6
    assert len(reservation.status_history) == 1
    entry = reservation.status_history[0]
    assert entry.status == ReservationStatus.CONFIRMED
    assert entry.actor_role == UserRole.CUSTOMER
    assert entry.note == CREATION_NOTE


async def test_double_booking_scenario(engine, alice, bob) -> None:
    table = await engine.registry.create_table(5, 4, TableSection.INDOOR)
    request = ReservationRequest(table_id=table.id, date=JUNE_FIRST, time="19:00", guest_count=4)

    first = await engine.lifecycle.create(request, alice)
    assert first.status == ReservationStatus.CONFIRMED

    with pytest.raises(SlotTakenError):
        await engine.lifecycle.create(request, bob)


async def test_capacity_scenario_writes_nothing(engine, alice) -> None:
    table = await engine.registry.create_table(5, 4, TableSection.INDOOR)
    request = ReservationRequest(table_id=table.id, date=JUNE_FIRST, time="19:00", guest_count=5)

    with pytest.raises(CapacityExceededError):
        await engine.lifecycle.create(request, alice)

    assert await engine.lifecycle.list_for_user(alice) == []


async def test_same_calendar_day_with_time_component_conflicts(engine, table4, alice, bob) -> None:
    await engine.lifecycle.create(
        ReservationRequest(table_id=table4.id, date="2024-06-01T00:00:00Z", time="19:00", guest_count=2),
        alice
    )
    with pytest.raises(SlotTakenError):
        await engine.lifecycle.create(
            ReservationRequest(table_id=table4.id, date="2024-06-01T18:45:00", time="19:00", guest_count=2),
            bob
        )


async def test_concurrent_creates_have_one_winner(engine, table4) -> None:
    request = ReservationRequest(table_id=table4.id, date=JUNE_FIRST, time="20:00", guest_count=2)

    results = await asyncio.gather(
        *(engine.lifecycle.create(request, Principal(user_id=f"user-{i}")) for i in range(10)),
        return_exceptions=True
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 9
    assert all(isinstance(e, SlotTakenError) for e in losers)

    stored = await engine.reservations.find_conflicting(table4.id, JUNE_FIRST, "20:00")
    assert [r.id for r in stored] == [winners[0].id]


async def test_cancel_all_for_date_scenario(engine, alice, manager) -> None:
    for number in (1, 2, 3):
        table = await engine.registry.create_table(number, 4)
        await engine.lifecycle.create(
            ReservationRequest(table_id=table.id, date=JUNE_FIRST, time="19:00", guest_count=2),
            alice
        )

    assert await engine.lifecycle.cancel_all_for_date(JUNE_FIRST, manager) == 3

    for reservation in await engine.lifecycle.list_for_user(alice):
        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.status_history[-1].note == "Cancelled by manager"
        assert reservation.status_history[-1].actor_role == UserRole.MANAGER

    with pytest.raises(NoActiveBookingsForDateError):
        await engine.lifecycle.cancel_all_for_date(JUNE_FIRST, manager)


async def test_cancel_all_leaves_seated_and_other_dates(engine, table4, table2, alice, admin, booking) -> None:
    seated = await engine.lifecycle.create(booking(table4.id), alice)
    await engine.lifecycle.edit(seated.id, {"status": ReservationStatus.SEATED}, admin)
    other_day = await engine.lifecycle.create(booking(table2.id, booking_date=date(2030, 5, 18)), alice)
    await engine.lifecycle.create(booking(table2.id), alice)

    assert await engine.lifecycle.cancel_all_for_date(date(2030, 5, 17), admin) == 1
    assert (await engine.lifecycle.get(seated.id, admin)).status == ReservationStatus.SEATED
    assert (await engine.lifecycle.get(other_day.id, admin)).status == ReservationStatus.CONFIRMED


@pytest.mark.parametrize("role", [UserRole.CUSTOMER, UserRole.STAFF])
async def test_cancel_all_requires_admin_or_manager(engine, role) -> None:
    with pytest.raises(ReservationAccessDeniedError):
        await engine.lifecycle.cancel_all_for_date(JUNE_FIRST, Principal(user_id="x", role=role))


async def test_edit_authorization_scenario(engine, table4, alice, bob, manager, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)

    with pytest.raises(ReservationAccessDeniedError):
        await engine.lifecycle.edit(reservation.id, {"guest_count": 3}, bob)

    edited = await engine.lifecycle.edit(reservation.id, {"guest_count": 3}, manager)
    assert edited.guest_count == 3


async def test_edit_missing_reservation(engine, alice) -> None:
    with pytest.raises(ReservationNotFoundError):
        await engine.lifecycle.edit("missing", {"guest_count": 2}, alice)


async def test_edit_checks_capacity_in_every_mode(engine, safe_engine, alice, booking) -> None:
    for eng in (engine, safe_engine):
        table = await eng.registry.create_table(10, 2)
        reservation = await eng.lifecycle.create(booking(table.id), alice)
        with pytest.raises(CapacityExceededError):
            await eng.lifecycle.edit(reservation.id, {"guest_count": 3}, alice)


async def test_edit_into_taken_slot_legacy_mode(engine, table4, alice, bob, booking, monkeypatch) -> None:
    await engine.lifecycle.create(booking(table4.id, time="19:00"), alice)
    moving = await engine.lifecycle.create(booking(table4.id, time="20:00"), bob)

    async def no_check(*args, **kwargs):
        raise AssertionError("legacy edits must not run the conflict check")

    monkeypatch.setattr(engine.checker, "check", no_check)

    with pytest.raises(SlotTakenError):
        await engine.lifecycle.edit(moving.id, {"time": "19:00"}, bob)
    assert (await engine.lifecycle.get(moving.id, bob)).time == "20:00"


async def test_edit_into_taken_slot_safe_mode(safe_engine, alice, bob, booking) -> None:
    table = await safe_engine.registry.create_table(1, 4)
    await safe_engine.lifecycle.create(booking(table.id, time="19:00"), alice)
    moving = await safe_engine.lifecycle.create(booking(table.id, time="20:00"), bob)

    with pytest.raises(SlotTakenError):
        await safe_engine.lifecycle.edit(moving.id, {"time": "19:00"}, bob)

    # Keeping its own slot is not a conflict.
    edited = await safe_engine.lifecycle.edit(moving.id, {"time": "20:00", "guest_count": 3}, bob)
    assert edited.guest_count == 3


async def test_status_history_is_monotonic(engine, table4, alice, admin, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)
    for next_status in (
            ReservationStatus.PENDING,
            ReservationStatus.CONFIRMED,
            ReservationStatus.SEATED,
            ReservationStatus.COMPLETED,
    ):
        reservation = await engine.lifecycle.edit(reservation.id, {"status": next_status}, admin)

    history = reservation.status_history
    assert [e.status for e in history] == [
        ReservationStatus.CONFIRMED,
        ReservationStatus.PENDING,
        ReservationStatus.CONFIRMED,
        ReservationStatus.SEATED,
        ReservationStatus.COMPLETED,
    ]
    assert all(a.timestamp <= b.timestamp for a, b in zip(history, history[1:]))
    assert history[1].note == "Status updated by admin"


async def test_same_status_edit_adds_no_history(engine, table4, alice, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)
    edited = await engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.CONFIRMED}, alice)
    assert len(edited.status_history) == 1


@pytest.mark.parametrize("start, target", [
    (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED),
    (ReservationStatus.CANCELLED, ReservationStatus.CONFIRMED),
])
async def test_invalid_transitions_rejected(engine, table4, alice, admin, booking, start, target) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)
    if start == ReservationStatus.CANCELLED:
        await engine.lifecycle.cancel(reservation.id, admin)

    with pytest.raises(InvalidStatusTransitionError):
        await engine.lifecycle.edit(reservation.id, {"status": target}, admin)


async def test_seating_occupies_and_completion_releases_table(engine, table4, alice, admin, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id, guest_count=3), alice)

    await engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.SEATED}, admin)
    table = await engine.registry.get_table(table4.id)
    assert table.status == TableStatus.OCCUPIED
    assert table.current_occupancy == 3

    await engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.COMPLETED}, admin)
    table = await engine.registry.get_table(table4.id)
    assert table.status == TableStatus.AVAILABLE
    assert table.current_occupancy == 0


async def test_cancel_one_is_admin_only(engine, table4, alice, manager, admin, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)

    for actor in (alice, manager):
        with pytest.raises(ReservationAccessDeniedError):
            await engine.lifecycle.cancel(reservation.id, actor)

    cancelled = await engine.lifecycle.cancel(reservation.id, admin)
    assert cancelled.status == ReservationStatus.CANCELLED
    assert cancelled.status_history[-1].note == "Cancelled by admin"

    with pytest.raises(InvalidStatusTransitionError):
        await engine.lifecycle.cancel(reservation.id, admin)


async def test_owner_cancels_through_edit(engine, table4, alice, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)

    edited = await engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.CANCELLED}, alice)
    assert edited.status == ReservationStatus.CANCELLED
    assert edited.status_history[-1].note == "Status updated by customer"


async def test_racing_status_changes_never_drop_history(alice, manager, admin) -> None:
    engine = build_memory_engine(latency=0.01)
    table = await engine.registry.create_table(1, 4)
    reservation = await engine.lifecycle.create(
        ReservationRequest(table_id=table.id, date=JUNE_FIRST, time="19:00", guest_count=2),
        alice
    )

    results = await asyncio.gather(
        engine.lifecycle.cancel(reservation.id, admin),
        engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.SEATED}, manager),
        return_exceptions=True
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1 and isinstance(losers[0], ConcurrentModificationError)

    stored = await engine.reservations.get(reservation.id)
    assert stored.status == winners[0].status
    assert [e.status for e in stored.status_history] == [ReservationStatus.CONFIRMED, winners[0].status]


async def test_stale_copy_cannot_overwrite_history(engine, table4, alice, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)
    first = await engine.reservations.get(reservation.id)
    second = await engine.reservations.get(reservation.id)

    first.record_status(ReservationStatus.CANCELLED, UserRole.ADMIN, "Cancelled by admin")
    await engine.reservations.update(first)

    second.notes = "window please"
    with pytest.raises(ConcurrentModificationError):
        await engine.reservations.update(second)

    stored = await engine.reservations.get(reservation.id)
    assert stored.status == ReservationStatus.CANCELLED
    assert stored.notes is None


async def test_moving_seated_party_moves_occupancy(engine, table4, admin, alice, booking) -> None:
    other = await engine.registry.create_table(7, 6)
    reservation = await engine.lifecycle.create(booking(table4.id, guest_count=3), alice)
    await engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.SEATED}, admin)

    await engine.lifecycle.edit(reservation.id, {"table_id": other.id}, admin)
    old_table = await engine.registry.get_table(table4.id)
    new_table = await engine.registry.get_table(other.id)
    assert old_table.status == TableStatus.AVAILABLE
    assert new_table.status == TableStatus.OCCUPIED
    assert new_table.current_occupancy == 3

    await engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.COMPLETED}, admin)
    new_table = await engine.registry.get_table(other.id)
    assert new_table.status == TableStatus.AVAILABLE


async def test_find_by_user_ordered_by_date_then_time(engine, table4, table2, alice, booking) -> None:
    await engine.lifecycle.create(booking(table4.id, time="21:00", booking_date=date(2030, 5, 18)), alice)
    await engine.lifecycle.create(booking(table4.id, time="19:00", booking_date=date(2030, 5, 18)), alice)
    await engine.lifecycle.create(booking(table2.id, time="20:00", booking_date=date(2030, 5, 17)), alice)

    mine = await engine.lifecycle.list_for_user(alice)
    assert [(r.date.day, r.time) for r in mine] == [(17, "20:00"), (18, "19:00"), (18, "21:00")]


async def test_get_and_list_authorization(engine, table4, alice, bob, staff, manager, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)

    assert (await engine.lifecycle.get(reservation.id, alice)).id == reservation.id
    with pytest.raises(ReservationAccessDeniedError):
        await engine.lifecycle.get(reservation.id, bob)
    with pytest.raises(ReservationAccessDeniedError):
        await engine.lifecycle.list_reservations(staff)

    listed = await engine.lifecycle.list_reservations(manager, table_id=table4.id)
    assert [r.id for r in listed] == [reservation.id]


async def test_slow_store_raises_storage_timeout() -> None:
    engine = build_memory_engine(timeout=0.01, latency=0.2)

    with pytest.raises(StorageTimeoutError):
        await engine.registry.create_table(1, 4)
