# reservation_engine/exceptions/table_exceptions.py
from reservation_engine.exceptions.kinds import ErrorKind


class TableException(Exception):
    """Base exception for table-related errors."""
    kind = ErrorKind.INTERNAL


class TableNotFoundError(TableException):
    """Raised when table is not found."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, table_id: str):
        self.table_id = table_id
        super().__init__(f"Table with id {table_id} not found")


class DuplicateTableNumberError(TableException):
    """Raised when a table number is already registered."""
    kind = ErrorKind.CONFLICT

    def __init__(self, table_number: int):
        self.table_number = table_number
        super().__init__(f"Table number {table_number} is already registered")


class InvalidCapacityError(TableException):
    """Raised when capacity or table number is not a positive integer."""
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = "Capacity must be a positive integer"):
        super().__init__(message)


class InvalidTableStatusError(TableException):
    """Raised when a status change violates table invariants."""
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = "Invalid table status change"):
        super().__init__(message)


class TableInUseError(TableException):
    """Raised when a table still has an active reservation or order."""
    kind = ErrorKind.CONFLICT

    def __init__(self, message: str = "Table has an active reservation or order"):
        super().__init__(message)
