# reservation_engine/exceptions/storage_exceptions.py
from reservation_engine.exceptions.kinds import ErrorKind


class StorageException(Exception):
    """Base exception for storage layer faults."""
    kind = ErrorKind.INTERNAL


class StorageTimeoutError(StorageException):
    """Raised when the store does not answer within the configured budget."""
    kind = ErrorKind.STORAGE_TIMEOUT

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Storage operation '{operation}' timed out after {timeout}s")
