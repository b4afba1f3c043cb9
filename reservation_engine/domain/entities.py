# reservation_engine/domain/entities.py
"""
Storage-neutral records exchanged between the engine components.

Store backends convert their own representation to and from these records;
services never see ORM instances.
"""
import secrets
import string
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from reservation_engine.core.timeutils import get_current_utc_time
from reservation_engine.domain.enums import (
    BookingSource,
    IN_USE_STATUSES,
    Occasion,
    ReservationStatus,
    STAFF_ROLES,
    TERMINAL_STATUSES,
    TableSection,
    TableShape,
    TableStatus,
    UserRole,
)
from reservation_engine.domain.slots import slot_fingerprint

CONFIRMATION_ALPHABET = string.ascii_uppercase + string.digits


def new_id() -> str:
    return uuid.uuid4().hex


def generate_confirmation_code() -> str:
    """Random 6-character alphanumeric confirmation code."""
    return ''.join(secrets.choice(CONFIRMATION_ALPHABET) for _ in range(6))


@dataclass
class Table:
    """A physical seating resource."""
    table_number: int
    capacity: int
    section: TableSection = TableSection.INDOOR
    shape: TableShape = TableShape.RECTANGULAR
    features: List[str] = field(default_factory=list)
    status: TableStatus = TableStatus.AVAILABLE
    is_active: bool = True
    notes: str = ""
    current_occupancy: int = 0
    occupied_since: Optional[datetime] = None
    reserved_until: Optional[datetime] = None
    current_order_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=get_current_utc_time)
    updated_at: datetime = field(default_factory=get_current_utc_time)


@dataclass
class StatusEntry:
    """One append-only line of a reservation's status history."""
    status: ReservationStatus
    timestamp: datetime
    actor_role: Optional[UserRole] = None
    note: str = ""


@dataclass
class Reservation:
    """A request to use one table at one date and time for a party."""
    table_id: str
    user_id: str
    date: date
    time: str
    guest_count: int
    status: ReservationStatus = ReservationStatus.CONFIRMED
    status_history: List[StatusEntry] = field(default_factory=list)
    special_requests: str = ""
    occasion: Optional[Occasion] = None
    duration: int = 90
    source: BookingSource = BookingSource.WEBSITE
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    notes: Optional[str] = None
    confirmation_code: str = field(default_factory=generate_confirmation_code)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=get_current_utc_time)
    updated_at: datetime = field(default_factory=get_current_utc_time)

    @property
    def is_active(self) -> bool:
        return self.status in IN_USE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def fingerprint(self) -> Optional[str]:
        """Slot key while the reservation holds its table, None once terminal."""
        if self.is_terminal:
            return None
        return slot_fingerprint(self.table_id, self.date, self.time)

    def record_status(
            self,
            status: ReservationStatus,
            actor_role: Optional[UserRole],
            note: str
    ) -> StatusEntry:
        """
        Move to a new status and append the matching history entry.

        The entry timestamp never goes below the previous one, so history
        stays ordered even if the wall clock steps backwards.
        """
        timestamp = get_current_utc_time()
        if self.status_history and self.status_history[-1].timestamp > timestamp:
            timestamp = self.status_history[-1].timestamp

        entry = StatusEntry(
            status=status,
            timestamp=timestamp,
            actor_role=actor_role,
            note=note
        )
        self.status = status
        self.status_history.append(entry)
        self.updated_at = timestamp
        return entry

    def extends_history(self, stored: "Reservation") -> bool:
        """True when this copy still starts with every entry already stored."""
        known = len(stored.status_history)
        return self.status_history[:known] == stored.status_history


@dataclass(frozen=True)
class UserSummary:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as asserted by the external auth collaborator."""
    user_id: str
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_manage(self, reservation: Reservation) -> bool:
        return self.is_staff or reservation.user_id == self.user_id
