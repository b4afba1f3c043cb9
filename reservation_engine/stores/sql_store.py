# reservation_engine/stores/sql_store.py
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reservation_engine.core.timeutils import ensure_aware
from reservation_engine.domain.entities import (
    Reservation,
    StatusEntry,
    Table,
    UserSummary,
)
from reservation_engine.domain.enums import (
    IN_USE_STATUSES,
    ReservationStatus,
    TERMINAL_STATUSES,
    TableSection,
    TableStatus,
)
from reservation_engine.exceptions.reservation_exceptions import (
    ConcurrentModificationError,
    SlotTakenError,
)
from reservation_engine.exceptions.table_exceptions import DuplicateTableNumberError
from reservation_engine.models.reservation import Reservation as ReservationModel
from reservation_engine.models.reservation import ReservationStatusHistory
from reservation_engine.models.table import Table as TableModel
from reservation_engine.models.user import User as UserModel
from reservation_engine.stores.base import (
    ReservationStore,
    TableStore,
    UserDirectory,
    bounded,
)

logger = logging.getLogger(__name__)

TABLE_FIELDS = (
    "table_number", "capacity", "section", "shape", "status", "is_active",
    "notes", "current_occupancy", "occupied_since", "reserved_until",
    "current_order_id", "created_at", "updated_at",
)

RESERVATION_FIELDS = (
    "table_id", "user_id", "date", "time", "guest_count", "status",
    "special_requests", "occasion", "duration", "source", "contact_phone",
    "contact_email", "notes", "confirmation_code", "created_at", "updated_at",
)


def _aware_or_none(value):
    return ensure_aware(value) if value is not None else None


def table_from_row(row: TableModel) -> Table:
    return Table(
        id=row.id,
        table_number=row.table_number,
        capacity=row.capacity,
        section=row.section,
        shape=row.shape,
        features=list(row.features or []),
        status=row.status,
        is_active=row.is_active,
        notes=row.notes or "",
        current_occupancy=row.current_occupancy or 0,
        occupied_since=_aware_or_none(row.occupied_since),
        reserved_until=_aware_or_none(row.reserved_until),
        current_order_id=row.current_order_id,
        created_at=ensure_aware(row.created_at),
        updated_at=ensure_aware(row.updated_at),
    )


def _apply_table(row: TableModel, table: Table) -> None:
    for name in TABLE_FIELDS:
        setattr(row, name, getattr(table, name))
    row.features = list(table.features)


def reservation_from_row(row: ReservationModel) -> Reservation:
    return Reservation(
        id=row.id,
        table_id=row.table_id,
        user_id=row.user_id,
        date=row.date,
        time=row.time,
        guest_count=row.guest_count,
        status=row.status,
        status_history=[
            StatusEntry(
                status=entry.status,
                timestamp=ensure_aware(entry.timestamp),
                actor_role=entry.actor_role,
                note=entry.note or "",
            )
            for entry in row.status_history
        ],
        special_requests=row.special_requests or "",
        occasion=row.occasion,
        duration=row.duration,
        source=row.source,
        contact_phone=row.contact_phone,
        contact_email=row.contact_email,
        notes=row.notes,
        confirmation_code=row.confirmation_code,
        created_at=ensure_aware(row.created_at),
        updated_at=ensure_aware(row.updated_at),
    )


def _apply_reservation(row: ReservationModel, reservation: Reservation) -> None:
    for name in RESERVATION_FIELDS:
        setattr(row, name, getattr(reservation, name))
    # History is append-only: only entries beyond the stored ones are new.
    for position in range(len(row.status_history), len(reservation.status_history)):
        entry = reservation.status_history[position]
        row.status_history.append(ReservationStatusHistory(
            position=position,
            status=entry.status,
            actor_role=entry.actor_role,
            note=entry.note,
            timestamp=entry.timestamp,
        ))


class SqlTableStore(TableStore):
    """Table records persisted through SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], timeout: float = 5.0):
        self.session_factory = session_factory
        self.timeout = timeout

    async def add(self, table: Table) -> Table:
        return await bounded(self._add(table), "tables.add", self.timeout)

    async def _add(self, table: Table) -> Table:
        row = TableModel(id=table.id)
        _apply_table(row, table)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(row)
        except IntegrityError:
            raise DuplicateTableNumberError(table.table_number)
        return table_from_row(row)

    async def get(self, table_id: str) -> Optional[Table]:
        return await bounded(self._get(table_id), "tables.get", self.timeout)

    async def _get(self, table_id: str) -> Optional[Table]:
        async with self.session_factory() as session:
            row = await session.get(TableModel, table_id)
            return table_from_row(row) if row else None

    async def get_by_number(self, table_number: int) -> Optional[Table]:
        return await bounded(self._get_by_number(table_number), "tables.get_by_number", self.timeout)

    async def _get_by_number(self, table_number: int) -> Optional[Table]:
        async with self.session_factory() as session:
            row = await session.scalar(
                select(TableModel).where(TableModel.table_number == table_number)
            )
            return table_from_row(row) if row else None

    async def update(self, table: Table) -> Table:
        return await bounded(self._update(table), "tables.update", self.timeout)

    async def _update(self, table: Table) -> Table:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    row = await session.get(TableModel, table.id)
                    if row is None:
                        row = TableModel(id=table.id)
                        session.add(row)
                    _apply_table(row, table)
        except IntegrityError:
            raise DuplicateTableNumberError(table.table_number)
        return table_from_row(row)

    async def delete(self, table_id: str) -> None:
        return await bounded(self._delete(table_id), "tables.delete", self.timeout)

    async def _delete(self, table_id: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.get(TableModel, table_id)
                if row is not None:
                    await session.delete(row)

    async def list(
            self,
            section: Optional[TableSection] = None,
            status: Optional[TableStatus] = None,
            is_active: Optional[bool] = None,
            min_capacity: Optional[int] = None
    ) -> List[Table]:
        query = select(TableModel)
        if section is not None:
            query = query.where(TableModel.section == section)
        if status is not None:
            query = query.where(TableModel.status == status)
        if is_active is not None:
            query = query.where(TableModel.is_active == is_active)
        if min_capacity is not None:
            query = query.where(TableModel.capacity >= min_capacity)
        query = query.order_by(TableModel.table_number)
        return await bounded(self._all(query), "tables.list", self.timeout)

    async def get_many(self, table_ids: Iterable[str]) -> Dict[str, Table]:
        ids = set(table_ids)
        if not ids:
            return {}
        tables = await bounded(
            self._all(select(TableModel).where(TableModel.id.in_(ids))),
            "tables.get_many",
            self.timeout
        )
        return {table.id: table for table in tables}

    async def _all(self, query) -> List[Table]:
        async with self.session_factory() as session:
            rows = (await session.scalars(query)).all()
            return [table_from_row(row) for row in rows]


class SqlReservationStore(ReservationStore):
    """
    Reservation records persisted through SQLAlchemy.

    The partial unique index uq_reservations_active_slot is the final
    arbiter of double booking; its violations surface as SlotTakenError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], timeout: float = 5.0):
        self.session_factory = session_factory
        self.timeout = timeout

    async def add(self, reservation: Reservation) -> Reservation:
        return await bounded(self._save([reservation], insert=True), "reservations.add", self.timeout)

    async def get(self, reservation_id: str) -> Optional[Reservation]:
        return await bounded(self._get(reservation_id), "reservations.get", self.timeout)

    async def _get(self, reservation_id: str) -> Optional[Reservation]:
        async with self.session_factory() as session:
            row = await session.get(ReservationModel, reservation_id)
            return reservation_from_row(row) if row else None

    async def update(self, reservation: Reservation) -> Reservation:
        return await bounded(self._save([reservation]), "reservations.update", self.timeout)

    async def update_many(self, reservations: Sequence[Reservation]) -> List[Reservation]:
        if not reservations:
            return []
        return await bounded(
            self._save(reservations, many=True),
            "reservations.update_many",
            self.timeout
        )

    async def _save(self, reservations: Sequence[Reservation], insert: bool = False, many: bool = False):
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    rows = []
                    for reservation in reservations:
                        row = None if insert else await session.get(ReservationModel, reservation.id)
                        if row is not None and not reservation.extends_history(reservation_from_row(row)):
                            raise ConcurrentModificationError(reservation.id)
                        if row is None:
                            row = ReservationModel(id=reservation.id, status_history=[])
                            session.add(row)
                        _apply_reservation(row, reservation)
                        rows.append(row)
                    await session.flush()
                    saved = [reservation_from_row(row) for row in rows]
        except IntegrityError as e:
            if await self._any_slot_taken(reservations):
                logger.info(f"Slot already held, write rejected: {e.orig}")
                raise SlotTakenError()
            stale = await self._first_stale(reservations)
            if stale is not None:
                logger.info(f"Booking {stale} history moved on, write rejected: {e.orig}")
                raise ConcurrentModificationError(stale)
            raise
        return saved if many else saved[0]

    async def _first_stale(self, reservations: Sequence[Reservation]) -> Optional[str]:
        for reservation in reservations:
            stored = await self._get(reservation.id)
            if stored is not None and not reservation.extends_history(stored):
                return reservation.id
        return None

    async def _any_slot_taken(self, reservations: Sequence[Reservation]) -> bool:
        for reservation in reservations:
            if reservation.is_terminal:
                continue
            conflicts = await self._select(
                select(ReservationModel).where(
                    ReservationModel.table_id == reservation.table_id,
                    ReservationModel.date == reservation.date,
                    ReservationModel.time == reservation.time,
                    ReservationModel.status.in_(list(IN_USE_STATUSES)),
                    ReservationModel.id != reservation.id,
                )
            )
            if conflicts:
                return True
        return False

    async def find_conflicting(
            self,
            table_id: str,
            booking_date: date,
            booking_time: str,
            statuses: Iterable[ReservationStatus] = IN_USE_STATUSES,
            exclude_id: Optional[str] = None
    ) -> List[Reservation]:
        query = select(ReservationModel).where(
            ReservationModel.table_id == table_id,
            ReservationModel.date == booking_date,
            ReservationModel.time == booking_time,
            ReservationModel.status.in_(list(statuses)),
        )
        if exclude_id is not None:
            query = query.where(ReservationModel.id != exclude_id)
        return await bounded(self._select(query), "reservations.find_conflicting", self.timeout)

    async def find_for_slot(
            self,
            booking_date: date,
            booking_time: str,
            statuses: Iterable[ReservationStatus] = IN_USE_STATUSES
    ) -> List[Reservation]:
        query = select(ReservationModel).where(
            ReservationModel.date == booking_date,
            ReservationModel.time == booking_time,
            ReservationModel.status.in_(list(statuses)),
        )
        return await bounded(self._select(query), "reservations.find_for_slot", self.timeout)

    async def find_for_date(
            self,
            booking_date: date,
            statuses: Iterable[ReservationStatus]
    ) -> List[Reservation]:
        query = select(ReservationModel).where(
            ReservationModel.date == booking_date,
            ReservationModel.status.in_(list(statuses)),
        )
        return await bounded(self._select(query), "reservations.find_for_date", self.timeout)

    async def find_by_user(self, user_id: str) -> List[Reservation]:
        query = select(ReservationModel).where(ReservationModel.user_id == user_id)
        return await bounded(self._select(query), "reservations.find_by_user", self.timeout)

    async def list(
            self,
            status: Optional[ReservationStatus] = None,
            booking_date: Optional[date] = None,
            table_id: Optional[str] = None,
            user_id: Optional[str] = None
    ) -> List[Reservation]:
        query = select(ReservationModel)
        if status is not None:
            query = query.where(ReservationModel.status == status)
        if booking_date is not None:
            query = query.where(ReservationModel.date == booking_date)
        if table_id is not None:
            query = query.where(ReservationModel.table_id == table_id)
        if user_id is not None:
            query = query.where(ReservationModel.user_id == user_id)
        return await bounded(self._select(query), "reservations.list", self.timeout)

    async def has_active_for_table(self, table_id: str) -> bool:
        return await bounded(self._has_active(table_id), "reservations.has_active_for_table", self.timeout)

    async def _has_active(self, table_id: str) -> bool:
        query = select(exists().where(
            ReservationModel.table_id == table_id,
            ReservationModel.status.not_in(list(TERMINAL_STATUSES)),
        ))
        async with self.session_factory() as session:
            return bool(await session.scalar(query))

    async def _select(self, query) -> List[Reservation]:
        query = query.order_by(
            ReservationModel.date,
            ReservationModel.time,
            ReservationModel.created_at,
        )
        async with self.session_factory() as session:
            rows = (await session.scalars(query)).all()
            return [reservation_from_row(row) for row in rows]


class SqlUserDirectory(UserDirectory):
    """Looks up user summaries in the shared users table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], timeout: float = 5.0):
        self.session_factory = session_factory
        self.timeout = timeout

    async def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        ids = set(user_ids)
        if not ids:
            return {}
        return await bounded(self._get_summaries(ids), "users.get_summaries", self.timeout)

    async def _get_summaries(self, user_ids) -> Dict[str, UserSummary]:
        async with self.session_factory() as session:
            rows = (await session.scalars(select(UserModel).where(UserModel.id.in_(user_ids)))).all()
            return {
                row.id: UserSummary(id=row.id, name=row.name, email=row.email, role=row.role)
                for row in rows
            }
