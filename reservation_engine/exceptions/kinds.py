# reservation_engine/exceptions/kinds.py
from enum import Enum


class ErrorKind(str, Enum):
    """Abstract error categories shared by every domain exception."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    STORAGE_TIMEOUT = "storage_timeout"
    INTERNAL = "internal"
