# tests/test_sql_store.py
from datetime import date

import pytest

from reservation_engine.core.database import (
    close_db,
    create_engine,
    create_session_factory,
    init_db,
)
from reservation_engine.domain.entities import Reservation, Table
from reservation_engine.domain.enums import ReservationStatus, UserRole
from reservation_engine.exceptions.reservation_exceptions import (
    ConcurrentModificationError,
    SlotTakenError,
)
from reservation_engine.exceptions.table_exceptions import DuplicateTableNumberError
from reservation_engine.models.user import User
from reservation_engine.services.engine import build_database_engine
from reservation_engine.services.reservation_lifecycle import ReservationRequest

DAY = date(2030, 5, 17)


@pytest.fixture
async def session_factory(tmp_path):
    db_engine = create_engine(f"sqlite:///{tmp_path / 'reservations.sqlite3'}")
    await init_db(db_engine)
    yield create_session_factory(db_engine)
    await close_db(db_engine)


@pytest.fixture
def sql_engine(session_factory):
    return build_database_engine(session_factory)


async def test_table_roundtrip_and_duplicate_number(sql_engine) -> None:
    table = await sql_engine.registry.create_table(1, 4, features=["quiet"])

    fetched = await sql_engine.registry.get_table(table.id)
    assert fetched.table_number == 1
    assert fetched.features == ["quiet"]
    assert fetched.created_at.tzinfo is not None

    with pytest.raises(DuplicateTableNumberError):
        await sql_engine.tables.add(Table(table_number=1, capacity=2))


async def test_unique_index_rejects_direct_duplicate(sql_engine, alice) -> None:
    table = await sql_engine.registry.create_table(1, 4)
    await sql_engine.lifecycle.create(
        ReservationRequest(table_id=table.id, date=DAY, time="19:00", guest_count=2),
        alice
    )

    duplicate = Reservation(table_id=table.id, user_id="bob", date=DAY, time="19:00", guest_count=2)
    with pytest.raises(SlotTakenError):
        await sql_engine.reservations.add(duplicate)


async def test_cancelled_slot_can_be_rebooked(sql_engine, alice, bob, admin) -> None:
    table = await sql_engine.registry.create_table(1, 4)
    request = ReservationRequest(table_id=table.id, date=DAY, time="19:00", guest_count=2)
    first = await sql_engine.lifecycle.create(request, alice)
    await sql_engine.lifecycle.cancel(first.id, admin)

    second = await sql_engine.lifecycle.create(request, bob)
    assert second.status == ReservationStatus.CONFIRMED


async def test_history_persists_in_order(sql_engine, alice, admin) -> None:
    table = await sql_engine.registry.create_table(1, 4)
    reservation = await sql_engine.lifecycle.create(
        ReservationRequest(table_id=table.id, date=DAY, time="19:00", guest_count=2),
        alice
    )
    await sql_engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.SEATED}, admin)
    await sql_engine.lifecycle.edit(reservation.id, {"status": ReservationStatus.COMPLETED}, admin)

    stored = await sql_engine.reservations.get(reservation.id)
    assert [e.status for e in stored.status_history] == [
        ReservationStatus.CONFIRMED,
        ReservationStatus.SEATED,
        ReservationStatus.COMPLETED,
    ]
    assert stored.status_history[1].actor_role == UserRole.ADMIN
    assert not await sql_engine.reservations.has_active_for_table(table.id)


async def test_cancel_all_and_user_ordering(sql_engine, alice, manager) -> None:
    t1 = await sql_engine.registry.create_table(1, 4)
    t2 = await sql_engine.registry.create_table(2, 4)
    for table, time in ((t1, "21:00"), (t2, "18:30"), (t1, "18:30")):
        await sql_engine.lifecycle.create(
            ReservationRequest(table_id=table.id, date=DAY, time=time, guest_count=2),
            alice
        )

    mine = await sql_engine.lifecycle.list_for_user(alice)
    assert [r.time for r in mine] == ["18:30", "18:30", "21:00"]

    assert await sql_engine.lifecycle.cancel_all_for_date(DAY, manager) == 3
    mine = await sql_engine.lifecycle.list_for_user(alice)
    assert {r.status for r in mine} == {ReservationStatus.CANCELLED}
    assert all(len(r.status_history) == 2 for r in mine)


async def test_user_directory_lookup(sql_engine, session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            session.add(User(id="alice", name="Alice", email="alice@example.com", role=UserRole.CUSTOMER))

    users = await sql_engine.users.get_summaries(["alice", "ghost"])
    assert list(users) == ["alice"]
    assert users["alice"].email == "alice@example.com"


async def test_stale_copy_rejected_without_losing_history(sql_engine, alice) -> None:
    table = await sql_engine.registry.create_table(1, 4)
    reservation = await sql_engine.lifecycle.create(
        ReservationRequest(table_id=table.id, date=DAY, time="19:00", guest_count=2),
        alice
    )
    first = await sql_engine.reservations.get(reservation.id)
    second = await sql_engine.reservations.get(reservation.id)

    first.record_status(ReservationStatus.CANCELLED, UserRole.ADMIN, "Cancelled by admin")
    await sql_engine.reservations.update(first)

    second.record_status(ReservationStatus.SEATED, UserRole.MANAGER, "Status updated by manager")
    with pytest.raises(ConcurrentModificationError):
        await sql_engine.reservations.update(second)

    stored = await sql_engine.reservations.get(reservation.id)
    assert [e.status for e in stored.status_history] == [
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    ]
