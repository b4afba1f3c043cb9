# reservation_engine/stores/base.py
"""
Store interfaces injected into the engine services.

Records are addressed by identifier only; a reservation points at its table
by id and every join happens outside the store.
"""
import asyncio
from abc import ABC, abstractmethod
from datetime import date
from typing import Awaitable, Dict, Iterable, List, Optional, Sequence, TypeVar

from reservation_engine.domain.entities import Reservation, Table, UserSummary
from reservation_engine.domain.enums import (
    IN_USE_STATUSES,
    ReservationStatus,
    TableSection,
    TableStatus,
)
from reservation_engine.exceptions.storage_exceptions import StorageTimeoutError

T = TypeVar("T")


async def bounded(awaitable: Awaitable[T], operation: str, timeout: float) -> T:
    """
    Await a store operation within the configured time budget.

    Raises:
        StorageTimeoutError: If the operation does not finish in time
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise StorageTimeoutError(operation, timeout)


class TableStore(ABC):
    """Persistence of table records."""

    @abstractmethod
    async def add(self, table: Table) -> Table:
        """Insert a table. Raises DuplicateTableNumberError on a taken number."""

    @abstractmethod
    async def get(self, table_id: str) -> Optional[Table]:
        ...

    @abstractmethod
    async def get_by_number(self, table_number: int) -> Optional[Table]:
        ...

    @abstractmethod
    async def update(self, table: Table) -> Table:
        ...

    @abstractmethod
    async def delete(self, table_id: str) -> None:
        ...

    @abstractmethod
    async def list(
            self,
            section: Optional[TableSection] = None,
            status: Optional[TableStatus] = None,
            is_active: Optional[bool] = None,
            min_capacity: Optional[int] = None
    ) -> List[Table]:
        """Tables matching every given filter, ordered by table_number."""

    @abstractmethod
    async def get_many(self, table_ids: Iterable[str]) -> Dict[str, Table]:
        ...


class ReservationStore(ABC):
    """Persistence of reservation records and their status histories."""

    @abstractmethod
    async def add(self, reservation: Reservation) -> Reservation:
        """Insert a reservation. Raises SlotTakenError if its slot is held."""

    @abstractmethod
    async def get(self, reservation_id: str) -> Optional[Reservation]:
        ...

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Persist changed fields and new history entries of one reservation."""

    @abstractmethod
    async def update_many(self, reservations: Sequence[Reservation]) -> List[Reservation]:
        """Persist several reservations as one all-or-nothing unit."""

    @abstractmethod
    async def find_conflicting(
            self,
            table_id: str,
            booking_date: date,
            booking_time: str,
            statuses: Iterable[ReservationStatus] = IN_USE_STATUSES,
            exclude_id: Optional[str] = None
    ) -> List[Reservation]:
        ...

    @abstractmethod
    async def find_for_slot(
            self,
            booking_date: date,
            booking_time: str,
            statuses: Iterable[ReservationStatus] = IN_USE_STATUSES
    ) -> List[Reservation]:
        """Reservations at date and time across every table."""

    @abstractmethod
    async def find_for_date(
            self,
            booking_date: date,
            statuses: Iterable[ReservationStatus]
    ) -> List[Reservation]:
        ...

    @abstractmethod
    async def find_by_user(self, user_id: str) -> List[Reservation]:
        """User's reservations ordered by date then time."""

    @abstractmethod
    async def list(
            self,
            status: Optional[ReservationStatus] = None,
            booking_date: Optional[date] = None,
            table_id: Optional[str] = None,
            user_id: Optional[str] = None
    ) -> List[Reservation]:
        ...

    @abstractmethod
    async def has_active_for_table(self, table_id: str) -> bool:
        ...


class UserDirectory(ABC):
    """Read-only lookup of users owned by the user management service."""

    @abstractmethod
    async def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        ...


def sort_by_slot(reservations: Iterable[Reservation]) -> List[Reservation]:
    return sorted(reservations, key=lambda r: (r.date, r.time, r.created_at))
