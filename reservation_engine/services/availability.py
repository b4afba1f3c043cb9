# reservation_engine/services/availability.py
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from reservation_engine.domain.entities import Table
from reservation_engine.domain.enums import IN_USE_STATUSES
from reservation_engine.exceptions.reservation_exceptions import NoSuitableTablesError
from reservation_engine.services.table_registry import TableRegistry
from reservation_engine.stores.base import ReservationStore


@dataclass
class AvailabilityResult:
    available: bool
    tables: List[Table] = field(default_factory=list)


class AvailabilitySearch:
    """
    Read-only lookup of tables bookable at a date and time.

    Uses the same in-use status set as ConflictChecker, so a table reported
    here is accepted by a following create unless another writer wins it first.
    """

    def __init__(self, registry: TableRegistry, reservations: ReservationStore):
        self.registry = registry
        self.reservations = reservations

    async def search(
            self,
            booking_date: date,
            booking_time: str,
            guest_count: Optional[int] = None
    ) -> AvailabilityResult:
        """
        Args:
            booking_date: Calendar date
            booking_time: Normalized HH:MM time
            guest_count: Optional party size

        Returns:
            Candidate tables without a live reservation, in table number order

        Raises:
            NoSuitableTablesError: If no active table can seat the party
        """
        candidates = await self.registry.list_candidates(min_capacity=guest_count)
        if not candidates:
            raise NoSuitableTablesError()

        booked = await self.reservations.find_for_slot(booking_date, booking_time, IN_USE_STATUSES)
        taken = {r.table_id for r in booked}

        tables = [t for t in candidates if t.id not in taken]
        return AvailabilityResult(available=bool(tables), tables=tables)
