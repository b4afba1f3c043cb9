# reservation_engine/services/reservation_lifecycle.py
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from reservation_engine.domain.entities import Principal, Reservation
from reservation_engine.domain.enums import (
    ALLOWED_TRANSITIONS,
    BookingSource,
    CANCELLABLE_IN_BULK,
    Occasion,
    ReservationStatus,
)
from reservation_engine.domain.slots import normalize_time, to_calendar_date
from reservation_engine.exceptions.reservation_exceptions import (
    CapacityExceededError,
    InvalidStatusTransitionError,
    NoActiveBookingsForDateError,
    ReservationAccessDeniedError,
    ReservationNotFoundError,
)
from reservation_engine.services.conflict_checker import CheckRequest, ConflictChecker
from reservation_engine.services.table_registry import TableRegistry
from reservation_engine.stores.base import ReservationStore

logger = logging.getLogger(__name__)

CREATION_NOTE = "Automatically confirmed on creation"

# Fields an edit may change besides status.
EDITABLE_FIELDS = (
    "date", "time", "guest_count", "table_id", "special_requests", "occasion",
    "duration", "contact_phone", "contact_email", "notes",
)
SLOT_FIELDS = ("table_id", "date", "time")


@dataclass
class ReservationRequest:
    """Validated input of a new booking."""
    table_id: str
    date: date
    time: str
    guest_count: int
    special_requests: str = ""
    occasion: Optional[Occasion] = None
    duration: int = 90
    source: BookingSource = BookingSource.WEBSITE
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    notes: Optional[str] = None


class ReservationLifecycleManager:
    """
    Applies every reservation state change: create, edit, cancel and
    cancel-all-for-date, with authorization and status history.
    """

    def __init__(
            self,
            reservations: ReservationStore,
            registry: TableRegistry,
            checker: ConflictChecker,
            revalidate_edits: bool = False
    ):
        self.reservations = reservations
        self.registry = registry
        self.checker = checker
        self.revalidate_edits = revalidate_edits

    async def create(self, request: ReservationRequest, actor: Principal) -> Reservation:
        """
        Book a table for the actor.

        Args:
            request: Booking input
            actor: Authenticated caller, becomes the owner

        Returns:
            Confirmed reservation

        Raises:
            TableNotFoundError: If table doesn't exist
            CapacityExceededError: If the party doesn't fit the table
            SlotTakenError: If the table is held at that date and time
        """
        booking_date = to_calendar_date(request.date)
        booking_time = normalize_time(request.time)

        result = await self.checker.check(CheckRequest(
            table_id=request.table_id,
            date=booking_date,
            time=booking_time,
            guest_count=request.guest_count
        ))
        result.raise_for_rejection(request.table_id)

        reservation = Reservation(
            table_id=request.table_id,
            user_id=actor.user_id,
            date=booking_date,
            time=booking_time,
            guest_count=request.guest_count,
            special_requests=request.special_requests or "",
            occasion=request.occasion,
            duration=request.duration,
            source=request.source,
            contact_phone=request.contact_phone,
            contact_email=request.contact_email,
            notes=request.notes,
        )
        reservation.record_status(ReservationStatus.CONFIRMED, actor.role, CREATION_NOTE)

        reservation = await self.reservations.add(reservation)

        logger.info(
            f"Reservation {reservation.id} created for table {reservation.table_id} "
            f"at {reservation.date.isoformat()} {reservation.time} by {actor.user_id}"
        )
        return reservation

    async def get(self, reservation_id: str, actor: Principal) -> Reservation:
        """
        Raises:
            ReservationNotFoundError: If reservation doesn't exist
            ReservationAccessDeniedError: If actor is neither owner nor staff
        """
        reservation = await self.reservations.get(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(reservation_id)

        if not actor.can_manage(reservation):
            raise ReservationAccessDeniedError("You are not authorized to view this booking")

        return reservation

    async def edit(self, reservation_id: str, changes: Dict[str, Any], actor: Principal) -> Reservation:
        """
        Change booking details and optionally its status.

        Args:
            reservation_id: Reservation ID
            changes: Subset of editable fields, plus an optional status
            actor: Authenticated caller

        Returns:
            Updated reservation

        Raises:
            ReservationNotFoundError: If reservation doesn't exist
            ReservationAccessDeniedError: If actor is neither owner nor staff
            InvalidStatusTransitionError: If the status change is not allowed
            TableNotFoundError: If the target table doesn't exist
            CapacityExceededError: If the party doesn't fit the target table
            SlotTakenError: If the target slot is held by another booking
            ConcurrentModificationError: If the booking changed since it was read
        """
        reservation = await self.reservations.get(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(reservation_id)

        if not actor.can_manage(reservation):
            raise ReservationAccessDeniedError()

        previous_status = reservation.status
        previous_table_id = reservation.table_id
        new_status = changes.get("status")
        if new_status is not None:
            new_status = ReservationStatus(new_status)
            if new_status != previous_status and new_status not in ALLOWED_TRANSITIONS[previous_status]:
                raise InvalidStatusTransitionError(previous_status.value, new_status.value)

        updates = {
            name: changes[name]
            for name in EDITABLE_FIELDS
            if name in changes and changes[name] is not None
        }
        if "date" in updates:
            updates["date"] = to_calendar_date(updates["date"])
        if "time" in updates:
            updates["time"] = normalize_time(updates["time"])

        slot_moved = any(
            name in updates and updates[name] != getattr(reservation, name)
            for name in SLOT_FIELDS
        )
        for name, value in updates.items():
            setattr(reservation, name, value)

        if "guest_count" in updates or "table_id" in updates:
            table = await self.registry.get_table(reservation.table_id)
            if reservation.guest_count > table.capacity:
                raise CapacityExceededError(table.capacity)

        if self.revalidate_edits and slot_moved and not reservation.is_terminal:
            result = await self.checker.check(
                CheckRequest(
                    table_id=reservation.table_id,
                    date=reservation.date,
                    time=reservation.time,
                    guest_count=reservation.guest_count
                ),
                exclude_id=reservation.id
            )
            result.raise_for_rejection(reservation.table_id)

        if new_status is not None and new_status != previous_status:
            reservation.record_status(new_status, actor.role, f"Status updated by {actor.role.value}")

        reservation = await self.reservations.update(reservation)
        await self._sync_table(reservation, previous_status, previous_table_id)

        logger.info(f"Reservation {reservation.id} edited by {actor.user_id}")
        return reservation

    async def cancel(self, reservation_id: str, actor: Principal) -> Reservation:
        """
        Cancel one reservation. Admins only; owners cancel through edit.

        Raises:
            ReservationAccessDeniedError: If actor is not an admin
            ReservationNotFoundError: If reservation doesn't exist
            InvalidStatusTransitionError: If the reservation is already terminal
            ConcurrentModificationError: If the booking changed since it was read
        """
        if not actor.is_admin:
            raise ReservationAccessDeniedError("Only admins can delete bookings")

        reservation = await self.reservations.get(reservation_id)
        if not reservation:
            raise ReservationNotFoundError(reservation_id)

        previous_status = reservation.status
        previous_table_id = reservation.table_id
        if reservation.is_terminal:
            raise InvalidStatusTransitionError(previous_status.value, ReservationStatus.CANCELLED.value)

        reservation.record_status(ReservationStatus.CANCELLED, actor.role, f"Cancelled by {actor.role.value}")
        reservation = await self.reservations.update(reservation)
        await self._sync_table(reservation, previous_status, previous_table_id)

        logger.info(f"Reservation {reservation.id} cancelled by {actor.user_id}")
        return reservation

    async def cancel_all_for_date(self, booking_date: date, actor: Principal) -> int:
        """
        Cancel every pending or confirmed booking on a date in one write.

        Seated parties are left alone.

        Returns:
            Number of cancelled reservations

        Raises:
            ReservationAccessDeniedError: If actor is not admin or manager
            NoActiveBookingsForDateError: If nothing is left to cancel
        """
        if not actor.is_staff:
            raise ReservationAccessDeniedError("Only admins and managers can cancel all bookings")

        booking_date = to_calendar_date(booking_date)
        reservations = await self.reservations.find_for_date(booking_date, CANCELLABLE_IN_BULK)
        if not reservations:
            raise NoActiveBookingsForDateError(booking_date)

        note = f"Cancelled by {actor.role.value}"
        for reservation in reservations:
            reservation.record_status(ReservationStatus.CANCELLED, actor.role, note)

        await self.reservations.update_many(reservations)

        logger.info(
            f"{len(reservations)} reservations on {booking_date.isoformat()} cancelled by {actor.user_id}"
        )
        return len(reservations)

    async def list_reservations(
            self,
            actor: Principal,
            status: Optional[ReservationStatus] = None,
            booking_date: Optional[date] = None,
            table_id: Optional[str] = None,
            user_id: Optional[str] = None
    ) -> List[Reservation]:
        if not actor.is_staff:
            raise ReservationAccessDeniedError("Only admins and managers can list all bookings")

        return await self.reservations.list(
            status=status,
            booking_date=booking_date,
            table_id=table_id,
            user_id=user_id
        )

    async def list_for_user(self, actor: Principal) -> List[Reservation]:
        """Actor's own bookings ordered by date then time."""
        return await self.reservations.find_by_user(actor.user_id)

    async def _sync_table(
            self,
            reservation: Reservation,
            previous_status: ReservationStatus,
            previous_table_id: str
    ) -> None:
        """Seating occupies the table; leaving seated or moving a seated party releases it."""
        was_seated = previous_status == ReservationStatus.SEATED
        is_seated = reservation.status == ReservationStatus.SEATED
        moved = reservation.table_id != previous_table_id
        if was_seated and (moved or not is_seated):
            await self.registry.release(previous_table_id)
        if is_seated and (moved or not was_seated):
            await self.registry.occupy(reservation.table_id, reservation.guest_count)
