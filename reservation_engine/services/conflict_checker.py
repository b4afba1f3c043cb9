# reservation_engine/services/conflict_checker.py
"""
Accept/reject decision for a candidate reservation.

The checker only reads: it resolves the table, compares the party size with
its capacity and looks for a live reservation at the exact same table, date
and time. A booking's duration never blocks neighbouring slots.
"""
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from reservation_engine.domain.enums import IN_USE_STATUSES
from reservation_engine.exceptions.reservation_exceptions import (
    CapacityExceededError,
    SlotTakenError,
)
from reservation_engine.exceptions.table_exceptions import TableNotFoundError
from reservation_engine.stores.base import ReservationStore, TableStore

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    TABLE_NOT_FOUND = "table_not_found"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    SLOT_TAKEN = "slot_taken"


@dataclass(frozen=True)
class CheckRequest:
    table_id: str
    date: date
    time: str
    guest_count: int


@dataclass(frozen=True)
class CheckResult:
    accepted: bool
    reason: Optional[RejectReason] = None
    message: str = ""
    capacity: Optional[int] = None

    @classmethod
    def accept(cls) -> "CheckResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectReason, message: str, capacity: Optional[int] = None) -> "CheckResult":
        return cls(accepted=False, reason=reason, message=message, capacity=capacity)

    def raise_for_rejection(self, table_id: str) -> None:
        """Turn a rejection into the matching domain exception."""
        if self.accepted:
            return
        if self.reason == RejectReason.TABLE_NOT_FOUND:
            raise TableNotFoundError(table_id)
        if self.reason == RejectReason.CAPACITY_EXCEEDED:
            raise CapacityExceededError(self.capacity)
        raise SlotTakenError(self.message)


class ConflictChecker:
    def __init__(self, tables: TableStore, reservations: ReservationStore):
        self.tables = tables
        self.reservations = reservations

    async def check(self, request: CheckRequest, exclude_id: Optional[str] = None) -> CheckResult:
        """
        Decide whether the request can be booked.

        Args:
            request: Table, calendar date, HH:MM time and party size
            exclude_id: Reservation to ignore, used when re-checking an edit

        Returns:
            Accepted result, or a rejection with its reason
        """
        table = await self.tables.get(request.table_id)
        if table is None:
            return self._rejected(RejectReason.TABLE_NOT_FOUND, f"Table with id {request.table_id} not found")

        if request.guest_count > table.capacity:
            return self._rejected(
                RejectReason.CAPACITY_EXCEEDED,
                f"Table can only accommodate {table.capacity} guests",
                capacity=table.capacity
            )

        conflicts = await self.reservations.find_conflicting(
            request.table_id,
            request.date,
            request.time,
            IN_USE_STATUSES,
            exclude_id=exclude_id
        )
        if conflicts:
            return self._rejected(RejectReason.SLOT_TAKEN, "Table is already reserved for this date and time")

        return CheckResult.accept()

    @staticmethod
    def _rejected(reason: RejectReason, message: str, capacity: Optional[int] = None) -> CheckResult:
        logger.warning(f"Booking check rejected: {reason.value} ({message})")
        return CheckResult.reject(reason, message, capacity)
