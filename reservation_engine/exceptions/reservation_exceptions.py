# reservation_engine/exceptions/reservation_exceptions.py
from datetime import date

from reservation_engine.exceptions.kinds import ErrorKind


class ReservationException(Exception):
    """Base exception for reservation-related errors."""
    kind = ErrorKind.INTERNAL


class ReservationNotFoundError(ReservationException):
    """Raised when reservation is not found."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(f"Booking with id {reservation_id} not found")


class ReservationAccessDeniedError(ReservationException):
    """Raised when user doesn't have rights on the reservation."""
    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "You are not authorized to modify this booking"):
        super().__init__(message)


class SlotTakenError(ReservationException):
    """Raised when the table is already reserved for the date and time."""
    kind = ErrorKind.CONFLICT

    def __init__(self, message: str = "Table is already reserved for this date and time"):
        super().__init__(message)


class CapacityExceededError(ReservationException):
    """Raised when guest count exceeds table capacity."""
    kind = ErrorKind.CONFLICT

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"Table can only accommodate {capacity} guests")


class InvalidStatusTransitionError(ReservationException):
    """Raised when a status change is not allowed by the lifecycle."""
    kind = ErrorKind.VALIDATION

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change booking status from {current} to {requested}")


class NoActiveBookingsForDateError(ReservationException):
    """Raised when bulk cancellation finds nothing to cancel."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, booking_date: date):
        self.booking_date = booking_date
        super().__init__(f"No active bookings found for {booking_date.isoformat()}")


class NoSuitableTablesError(ReservationException):
    """Raised when no table matches the capacity filter."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "No suitable tables found"):
        super().__init__(message)


class ConcurrentModificationError(ReservationException):
    """Raised when a reservation changed in storage after it was read."""
    kind = ErrorKind.CONFLICT

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(f"Booking {reservation_id} was modified concurrently, please retry")
