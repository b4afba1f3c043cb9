# reservation_engine/stores/memory.py
"""
In-process store backend.

Each call yields to the event loop (plus optional simulated latency) the way
a database driver would, so concurrent coroutines genuinely interleave between
the conflict read and the write. Records are copied in and out; callers never
hold a reference into the store.
"""
import asyncio
import copy
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from reservation_engine.core.timeutils import get_current_utc_time
from reservation_engine.domain.entities import Reservation, Table, UserSummary
from reservation_engine.domain.enums import (
    IN_USE_STATUSES,
    ReservationStatus,
    TableSection,
    TableStatus,
)
from reservation_engine.exceptions.reservation_exceptions import (
    ConcurrentModificationError,
    SlotTakenError,
)
from reservation_engine.exceptions.table_exceptions import DuplicateTableNumberError
from reservation_engine.stores.base import (
    ReservationStore,
    TableStore,
    UserDirectory,
    bounded,
    sort_by_slot,
)


class _SimulatedIO:
    def __init__(self, timeout: float, latency: float):
        self.timeout = timeout
        self.latency = latency

    async def _io(self) -> None:
        await asyncio.sleep(self.latency)

    async def _run(self, operation: str, fn, *args):
        async def call():
            await self._io()
            return await fn(*args)

        return await bounded(call(), operation, self.timeout)


class InMemoryTableStore(_SimulatedIO, TableStore):
    """Table records kept in a dict keyed by id."""

    def __init__(self, timeout: float = 5.0, latency: float = 0.0):
        super().__init__(timeout, latency)
        self._tables: Dict[str, Table] = {}
        self._lock = asyncio.Lock()

    async def add(self, table: Table) -> Table:
        return await self._run("tables.add", self._add, table)

    async def _add(self, table: Table) -> Table:
        async with self._lock:
            if any(t.table_number == table.table_number for t in self._tables.values()):
                raise DuplicateTableNumberError(table.table_number)
            self._tables[table.id] = copy.deepcopy(table)
            return copy.deepcopy(table)

    async def get(self, table_id: str) -> Optional[Table]:
        return await self._run("tables.get", self._get, table_id)

    async def _get(self, table_id: str) -> Optional[Table]:
        table = self._tables.get(table_id)
        return copy.deepcopy(table) if table else None

    async def get_by_number(self, table_number: int) -> Optional[Table]:
        return await self._run("tables.get_by_number", self._get_by_number, table_number)

    async def _get_by_number(self, table_number: int) -> Optional[Table]:
        for table in self._tables.values():
            if table.table_number == table_number:
                return copy.deepcopy(table)
        return None

    async def update(self, table: Table) -> Table:
        return await self._run("tables.update", self._update, table)

    async def _update(self, table: Table) -> Table:
        async with self._lock:
            table.updated_at = get_current_utc_time()
            self._tables[table.id] = copy.deepcopy(table)
            return copy.deepcopy(table)

    async def delete(self, table_id: str) -> None:
        return await self._run("tables.delete", self._delete, table_id)

    async def _delete(self, table_id: str) -> None:
        async with self._lock:
            self._tables.pop(table_id, None)

    async def list(
            self,
            section: Optional[TableSection] = None,
            status: Optional[TableStatus] = None,
            is_active: Optional[bool] = None,
            min_capacity: Optional[int] = None
    ) -> List[Table]:
        return await self._run(
            "tables.list",
            self._list,
            section, status, is_active, min_capacity
        )

    async def _list(self, section, status, is_active, min_capacity) -> List[Table]:
        tables = [
            t for t in self._tables.values()
            if (section is None or t.section == section)
            and (status is None or t.status == status)
            and (is_active is None or t.is_active == is_active)
            and (min_capacity is None or t.capacity >= min_capacity)
        ]
        return [copy.deepcopy(t) for t in sorted(tables, key=lambda t: t.table_number)]

    async def get_many(self, table_ids: Iterable[str]) -> Dict[str, Table]:
        return await self._run("tables.get_many", self._get_many, table_ids)

    async def _get_many(self, table_ids: Iterable[str]) -> Dict[str, Table]:
        return {
            table_id: copy.deepcopy(self._tables[table_id])
            for table_id in set(table_ids)
            if table_id in self._tables
        }


class InMemoryReservationStore(_SimulatedIO, ReservationStore):
    """
    Reservation records with a fingerprint index standing in for the
    database's partial unique index.
    """

    def __init__(self, timeout: float = 5.0, latency: float = 0.0):
        super().__init__(timeout, latency)
        self._reservations: Dict[str, Reservation] = {}
        self._slots: Dict[str, str] = {}  # fingerprint -> reservation id
        self._lock = asyncio.Lock()

    def _check_slot(self, reservation: Reservation, taken: Dict[str, str]) -> None:
        fingerprint = reservation.fingerprint
        if fingerprint is None:
            return
        holder = taken.get(fingerprint)
        if holder is not None and holder != reservation.id:
            raise SlotTakenError()

    def _store(self, reservation: Reservation, slots: Dict[str, str]) -> None:
        previous = self._reservations.get(reservation.id)
        if previous is not None and previous.fingerprint is not None:
            if slots.get(previous.fingerprint) == reservation.id:
                del slots[previous.fingerprint]
        if reservation.fingerprint is not None:
            slots[reservation.fingerprint] = reservation.id
        self._reservations[reservation.id] = copy.deepcopy(reservation)

    async def add(self, reservation: Reservation) -> Reservation:
        return await self._run("reservations.add", self._add, reservation)

    async def _add(self, reservation: Reservation) -> Reservation:
        async with self._lock:
            self._check_slot(reservation, self._slots)
            self._store(reservation, self._slots)
            return copy.deepcopy(reservation)

    async def get(self, reservation_id: str) -> Optional[Reservation]:
        return await self._run("reservations.get", self._get, reservation_id)

    async def _get(self, reservation_id: str) -> Optional[Reservation]:
        reservation = self._reservations.get(reservation_id)
        return copy.deepcopy(reservation) if reservation else None

    async def update(self, reservation: Reservation) -> Reservation:
        stored = await self._run("reservations.update", self._update_many, [reservation])
        return stored[0]

    async def update_many(self, reservations: Sequence[Reservation]) -> List[Reservation]:
        return await self._run("reservations.update_many", self._update_many, reservations)

    async def _update_many(self, reservations: Sequence[Reservation]) -> List[Reservation]:
        async with self._lock:
            # Validate against a scratch index first so a failure leaves nothing applied.
            scratch = dict(self._slots)
            for reservation in reservations:
                previous = self._reservations.get(reservation.id)
                if previous is not None and not reservation.extends_history(previous):
                    raise ConcurrentModificationError(reservation.id)
                if previous is not None and previous.fingerprint is not None:
                    if scratch.get(previous.fingerprint) == reservation.id:
                        del scratch[previous.fingerprint]
            for reservation in reservations:
                self._check_slot(reservation, scratch)
                if reservation.fingerprint is not None:
                    scratch[reservation.fingerprint] = reservation.id

            now = get_current_utc_time()
            for reservation in reservations:
                reservation.updated_at = max(reservation.updated_at, now)
                self._store(reservation, self._slots)

            return [copy.deepcopy(r) for r in reservations]

    async def find_conflicting(
            self,
            table_id: str,
            booking_date: date,
            booking_time: str,
            statuses: Iterable[ReservationStatus] = IN_USE_STATUSES,
            exclude_id: Optional[str] = None
    ) -> List[Reservation]:
        statuses = frozenset(statuses)
        return await self._run(
            "reservations.find_conflicting",
            self._select,
            lambda r: r.table_id == table_id
            and r.date == booking_date
            and r.time == booking_time
            and r.status in statuses
            and r.id != exclude_id
        )

    async def find_for_slot(
            self,
            booking_date: date,
            booking_time: str,
            statuses: Iterable[ReservationStatus] = IN_USE_STATUSES
    ) -> List[Reservation]:
        statuses = frozenset(statuses)
        return await self._run(
            "reservations.find_for_slot",
            self._select,
            lambda r: r.date == booking_date
            and r.time == booking_time
            and r.status in statuses
        )

    async def find_for_date(
            self,
            booking_date: date,
            statuses: Iterable[ReservationStatus]
    ) -> List[Reservation]:
        statuses = frozenset(statuses)
        return await self._run(
            "reservations.find_for_date",
            self._select,
            lambda r: r.date == booking_date and r.status in statuses
        )

    async def find_by_user(self, user_id: str) -> List[Reservation]:
        return await self._run(
            "reservations.find_by_user",
            self._select,
            lambda r: r.user_id == user_id
        )

    async def list(
            self,
            status: Optional[ReservationStatus] = None,
            booking_date: Optional[date] = None,
            table_id: Optional[str] = None,
            user_id: Optional[str] = None
    ) -> List[Reservation]:
        return await self._run(
            "reservations.list",
            self._select,
            lambda r: (status is None or r.status == status)
            and (booking_date is None or r.date == booking_date)
            and (table_id is None or r.table_id == table_id)
            and (user_id is None or r.user_id == user_id)
        )

    async def has_active_for_table(self, table_id: str) -> bool:
        found = await self._run(
            "reservations.has_active_for_table",
            self._select,
            lambda r: r.table_id == table_id and not r.is_terminal
        )
        return bool(found)

    async def _select(self, predicate) -> List[Reservation]:
        matches = [r for r in self._reservations.values() if predicate(r)]
        return [copy.deepcopy(r) for r in sort_by_slot(matches)]


class InMemoryUserDirectory(UserDirectory):
    """User summaries registered up front, typically by tests or a seed."""

    def __init__(self, users: Optional[Iterable[UserSummary]] = None):
        self._users: Dict[str, UserSummary] = {u.id: u for u in users or ()}

    async def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        return {uid: self._users[uid] for uid in set(user_ids) if uid in self._users}
