# reservation_engine/services/table_registry.py
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from reservation_engine.core.cache import TableListingCache
from reservation_engine.core.timeutils import ensure_aware, get_current_utc_time
from reservation_engine.domain.entities import Table
from reservation_engine.domain.enums import TableSection, TableShape, TableStatus
from reservation_engine.exceptions.reservation_exceptions import CapacityExceededError
from reservation_engine.exceptions.table_exceptions import (
    DuplicateTableNumberError,
    InvalidCapacityError,
    InvalidTableStatusError,
    TableInUseError,
    TableNotFoundError,
)
from reservation_engine.stores.base import ReservationStore, TableStore

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("capacity", "section", "shape", "features", "notes", "is_active")


class TableRegistry:
    """Service owning table state: existence, capacity, activity and status."""

    def __init__(
            self,
            tables: TableStore,
            reservations: ReservationStore,
            cache: Optional[TableListingCache] = None
    ):
        self.tables = tables
        self.reservations = reservations
        self.cache = cache or TableListingCache(None)

    async def create_table(
            self,
            table_number: int,
            capacity: int,
            section: TableSection = TableSection.INDOOR,
            notes: str = "",
            shape: TableShape = TableShape.RECTANGULAR,
            features: Optional[Iterable[str]] = None
    ) -> Table:
        """
        Register a new table.

        Args:
            table_number: Unique positive table number
            capacity: Number of seats, at least 1
            section: Restaurant section
            notes: Free-text notes
            shape: Table shape
            features: Feature tags

        Returns:
            Created table

        Raises:
            InvalidCapacityError: If table_number or capacity is below 1
            DuplicateTableNumberError: If the number is already registered
        """
        if table_number < 1:
            raise InvalidCapacityError("Table number must be a positive integer")
        if capacity < 1:
            raise InvalidCapacityError()

        if await self.tables.get_by_number(table_number):
            raise DuplicateTableNumberError(table_number)

        table = Table(
            table_number=table_number,
            capacity=capacity,
            section=section,
            shape=shape,
            features=sorted(set(features or [])),
            notes=notes or "",
        )
        table = await self.tables.add(table)
        await self.cache.invalidate()

        logger.info(f"Table {table.table_number} created with id {table.id}")
        return table

    async def get_table(self, table_id: str) -> Table:
        table = await self.tables.get(table_id)
        if not table:
            raise TableNotFoundError(table_id)
        return table

    async def find_available_tables(
            self,
            min_capacity: Optional[int] = None,
            section: Optional[TableSection] = None,
            features: Optional[Iterable[str]] = None
    ) -> List[Table]:
        """
        Tables currently free to seat guests, ordered by table number.

        Only tables with status available and the active flag set are
        returned. A table must carry every requested feature.
        """
        tables = await self.tables.list(
            section=section,
            status=TableStatus.AVAILABLE,
            is_active=True,
            min_capacity=min_capacity
        )
        required = set(features or [])
        if required:
            tables = [t for t in tables if required.issubset(t.features)]
        return tables

    async def list_tables(
            self,
            section: Optional[TableSection] = None,
            status: Optional[TableStatus] = None
    ) -> List[Table]:
        return await self.tables.list(section=section, status=status)

    async def list_candidates(self, min_capacity: Optional[int] = None) -> List[Table]:
        """Active tables able to seat min_capacity guests, regardless of status."""
        return await self.tables.list(is_active=True, min_capacity=min_capacity)

    async def update_table(self, table_id: str, changes: Dict[str, Any]) -> Table:
        """
        Update mutable table attributes. The table number never changes.

        Raises:
            TableNotFoundError: If table doesn't exist
            InvalidCapacityError: If capacity would drop below 1
            CapacityExceededError: If an active reservation seats more guests
                than the new capacity
        """
        table = await self.get_table(table_id)

        for field in UPDATABLE_FIELDS:
            if field not in changes or changes[field] is None:
                continue
            value = changes[field]
            if field == "capacity":
                await self._check_new_capacity(table, value)
            elif field == "features":
                value = sorted(set(value))
            setattr(table, field, value)

        table.updated_at = get_current_utc_time()
        table = await self.tables.update(table)
        await self.cache.invalidate()

        logger.info(f"Table {table.table_number} updated")
        return table

    async def _check_new_capacity(self, table: Table, capacity: int) -> None:
        if capacity < 1:
            raise InvalidCapacityError()
        if capacity >= table.capacity:
            return
        active = await self.reservations.list(table_id=table.id)
        if any(r.is_active and r.guest_count > capacity for r in active):
            raise CapacityExceededError(capacity)

    async def set_status(
            self,
            table_id: str,
            new_status: TableStatus,
            occupancy: Optional[int] = None,
            reserved_until: Optional[datetime] = None
    ) -> Table:
        """
        Change the operational status of a table.

        Args:
            table_id: Table ID
            new_status: Target status
            occupancy: Seated guests, required to be within capacity for occupied
            reserved_until: End of the hold, must be in the future for reserved

        Returns:
            Updated table

        Raises:
            TableNotFoundError: If table doesn't exist
            InvalidTableStatusError: If occupancy or reserved_until is invalid
        """
        table = await self.get_table(table_id)
        now = get_current_utc_time()

        if new_status == TableStatus.OCCUPIED:
            occupancy = 1 if occupancy is None else occupancy
            if occupancy < 1 or occupancy > table.capacity:
                raise InvalidTableStatusError(
                    f"Occupancy must be between 1 and {table.capacity}"
                )
            table.current_occupancy = occupancy
            table.occupied_since = now
            table.reserved_until = None
        else:
            table.current_occupancy = 0
            table.occupied_since = None
            if new_status == TableStatus.RESERVED:
                if reserved_until is None or ensure_aware(reserved_until) <= now:
                    raise InvalidTableStatusError("Reservation end time must be in the future")
                table.reserved_until = ensure_aware(reserved_until)
            else:
                table.reserved_until = None

        previous = table.status
        table.status = new_status
        table.updated_at = now
        table = await self.tables.update(table)
        await self.cache.invalidate()

        logger.info(f"Table {table.table_number} status {previous.value} -> {new_status.value}")
        return table

    async def occupy(self, table_id: str, occupancy: int = 1) -> Table:
        return await self.set_status(table_id, TableStatus.OCCUPIED, occupancy=occupancy)

    async def release(self, table_id: str) -> Table:
        return await self.set_status(table_id, TableStatus.AVAILABLE)

    async def reserve(self, table_id: str, reserved_until: datetime) -> Table:
        return await self.set_status(table_id, TableStatus.RESERVED, reserved_until=reserved_until)

    async def delete_table(self, table_id: str) -> None:
        """
        Hard-delete a table nothing refers to any more.

        Raises:
            TableNotFoundError: If table doesn't exist
            TableInUseError: If a non-terminal reservation or an open order
                references the table
        """
        table = await self.get_table(table_id)

        if table.current_order_id:
            raise TableInUseError("Table has an open order")
        if await self.reservations.has_active_for_table(table_id):
            raise TableInUseError("Table has active reservations")

        await self.tables.delete(table_id)
        await self.cache.invalidate()

        logger.info(f"Table {table.table_number} deleted")
