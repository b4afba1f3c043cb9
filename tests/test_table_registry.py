# tests/test_table_registry.py
from datetime import timedelta

import pytest

from reservation_engine.core.timeutils import get_current_utc_time
from reservation_engine.domain.enums import TableSection, TableStatus
from reservation_engine.exceptions.reservation_exceptions import CapacityExceededError
from reservation_engine.exceptions.table_exceptions import (
    DuplicateTableNumberError,
    InvalidCapacityError,
    InvalidTableStatusError,
    TableInUseError,
    TableNotFoundError,
)


async def test_create_and_get_table(engine) -> None:
    table = await engine.registry.create_table(7, 6, TableSection.BALCONY, "by the rail", features=["quiet"])

    fetched = await engine.registry.get_table(table.id)
    assert fetched.table_number == 7
    assert fetched.capacity == 6
    assert fetched.section == TableSection.BALCONY
    assert fetched.status == TableStatus.AVAILABLE
    assert fetched.features == ["quiet"]


async def test_duplicate_table_number_rejected(engine, table4) -> None:
    with pytest.raises(DuplicateTableNumberError):
        await engine.registry.create_table(table4.table_number, 2)


@pytest.mark.parametrize("number, capacity", [(0, 2), (3, 0), (-1, 4)])
async def test_invalid_number_or_capacity_rejected(engine, number, capacity) -> None:
    with pytest.raises(InvalidCapacityError):
        await engine.registry.create_table(number, capacity)


async def test_get_missing_table(engine) -> None:
    with pytest.raises(TableNotFoundError):
        await engine.registry.get_table("nope")


async def test_find_available_tables_filters_and_orders(engine) -> None:
    t3 = await engine.registry.create_table(3, 6, TableSection.INDOOR, features=["near_window", "quiet"])
    t1 = await engine.registry.create_table(1, 4, TableSection.INDOOR, features=["quiet"])
    t2 = await engine.registry.create_table(2, 8, TableSection.OUTDOOR)
    inactive = await engine.registry.create_table(4, 8, TableSection.INDOOR)
    await engine.registry.update_table(inactive.id, {"is_active": False})
    await engine.registry.occupy(t2.id, 2)

    found = await engine.registry.find_available_tables()
    assert [t.id for t in found] == [t1.id, t3.id]

    found = await engine.registry.find_available_tables(min_capacity=5)
    assert [t.id for t in found] == [t3.id]

    found = await engine.registry.find_available_tables(features=["quiet"])
    assert [t.id for t in found] == [t1.id, t3.id]

    found = await engine.registry.find_available_tables(section=TableSection.OUTDOOR)
    assert found == []


async def test_occupy_and_release(engine, table4) -> None:
    table = await engine.registry.occupy(table4.id, 3)
    assert table.status == TableStatus.OCCUPIED
    assert table.current_occupancy == 3
    assert table.occupied_since is not None

    table = await engine.registry.release(table4.id)
    assert table.status == TableStatus.AVAILABLE
    assert table.current_occupancy == 0
    assert table.occupied_since is None


async def test_occupancy_beyond_capacity_rejected(engine, table4) -> None:
    with pytest.raises(InvalidTableStatusError):
        await engine.registry.occupy(table4.id, 5)


async def test_reserve_requires_future_end(engine, table4) -> None:
    with pytest.raises(InvalidTableStatusError):
        await engine.registry.reserve(table4.id, get_current_utc_time() - timedelta(minutes=1))

    until = get_current_utc_time() + timedelta(hours=2)
    table = await engine.registry.reserve(table4.id, until)
    assert table.status == TableStatus.RESERVED
    assert table.reserved_until == until

    table = await engine.registry.set_status(table4.id, TableStatus.MAINTENANCE)
    assert table.reserved_until is None


async def test_update_table_keeps_number(engine, table4) -> None:
    table = await engine.registry.update_table(table4.id, {"capacity": 6, "notes": "window", "table_number": 99})
    assert table.capacity == 6
    assert table.notes == "window"
    assert table.table_number == table4.table_number


async def test_capacity_cannot_drop_below_active_party(engine, table4, alice, booking) -> None:
    await engine.lifecycle.create(booking(table4.id, guest_count=4), alice)

    with pytest.raises(CapacityExceededError):
        await engine.registry.update_table(table4.id, {"capacity": 3})
    with pytest.raises(InvalidCapacityError):
        await engine.registry.update_table(table4.id, {"capacity": 0})


async def test_delete_refused_while_reservation_active(engine, table4, alice, admin, booking) -> None:
    reservation = await engine.lifecycle.create(booking(table4.id), alice)

    with pytest.raises(TableInUseError):
        await engine.registry.delete_table(table4.id)

    await engine.lifecycle.cancel(reservation.id, admin)
    await engine.registry.delete_table(table4.id)
    with pytest.raises(TableNotFoundError):
        await engine.registry.get_table(table4.id)


async def test_delete_refused_with_open_order(engine, table4) -> None:
    table = await engine.registry.get_table(table4.id)
    table.current_order_id = "order-1"
    await engine.tables.update(table)

    with pytest.raises(TableInUseError):
        await engine.registry.delete_table(table4.id)
