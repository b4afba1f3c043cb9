# tests/conftest.py
from datetime import date

import pytest

from reservation_engine.domain.entities import Principal, UserSummary
from reservation_engine.domain.enums import TableSection, UserRole
from reservation_engine.services.engine import build_memory_engine
from reservation_engine.services.reservation_lifecycle import ReservationRequest

BOOKING_DATE = date(2030, 5, 17)


@pytest.fixture
def engine():
    return build_memory_engine(users=[
        UserSummary(id="alice", name="Alice", email="alice@example.com", role=UserRole.CUSTOMER),
        UserSummary(id="bob", name="Bob", email="bob@example.com", role=UserRole.CUSTOMER),
    ])


@pytest.fixture
def safe_engine():
    return build_memory_engine(revalidate_edits=True)


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id="alice", role=UserRole.CUSTOMER)


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id="bob", role=UserRole.CUSTOMER)


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id="root", role=UserRole.ADMIN)


@pytest.fixture
def manager() -> Principal:
    return Principal(user_id="mona", role=UserRole.MANAGER)


@pytest.fixture
def staff() -> Principal:
    return Principal(user_id="sam", role=UserRole.STAFF)


@pytest.fixture
async def table4(engine):
    return await engine.registry.create_table(1, 4, TableSection.INDOOR)


@pytest.fixture
async def table2(engine):
    return await engine.registry.create_table(2, 2, TableSection.OUTDOOR)


@pytest.fixture
def booking():
    """Factory of booking requests on a fixed future date."""
    def make(table_id: str, time: str = "19:00", guest_count: int = 2, booking_date: date = BOOKING_DATE) -> ReservationRequest:
        return ReservationRequest(table_id=table_id, date=booking_date, time=time, guest_count=guest_count)
    return make
