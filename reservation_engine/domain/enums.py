# reservation_engine/domain/enums.py
from enum import Enum


class TableStatus(str, Enum):
    """Enum for table statuses."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


class TableSection(str, Enum):
    """Enum for restaurant sections."""
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    BALCONY = "balcony"
    PRIVATE = "private"


class TableShape(str, Enum):
    ROUND = "round"
    SQUARE = "square"
    RECTANGULAR = "rectangular"
    OVAL = "oval"


class TableFeature(str, Enum):
    WHEELCHAIR_ACCESSIBLE = "wheelchair_accessible"
    NEAR_WINDOW = "near_window"
    QUIET = "quiet"
    NEAR_KITCHEN = "near_kitchen"
    NEAR_BATHROOM = "near_bathroom"
    PRIVATE = "private"


class ReservationStatus(str, Enum):
    """Enum for reservation statuses."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Occasion(str, Enum):
    BIRTHDAY = "birthday"
    ANNIVERSARY = "anniversary"
    BUSINESS = "business"
    DATE = "date"
    FAMILY = "family"
    OTHER = "other"


class BookingSource(str, Enum):
    WEBSITE = "website"
    PHONE = "phone"
    WALK_IN = "walk_in"
    THIRD_PARTY = "third_party"


class UserRole(str, Enum):
    """Roles asserted by the auth gateway."""
    CUSTOMER = "customer"
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


# Statuses that block a new reservation at the same table, date and time.
IN_USE_STATUSES = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.SEATED,
})

TERMINAL_STATUSES = frozenset({
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
})

# Statuses swept by bulk cancellation; seated parties are left alone.
CANCELLABLE_IN_BULK = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
})

ALLOWED_TRANSITIONS = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.PENDING,
        ReservationStatus.SEATED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.SEATED: frozenset({
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}

STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})
