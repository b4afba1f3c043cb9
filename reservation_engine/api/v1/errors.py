# reservation_engine/api/v1/errors.py
from fastapi import HTTPException, status

from reservation_engine.exceptions.kinds import ErrorKind
from reservation_engine.exceptions.reservation_exceptions import (
    CapacityExceededError,
    SlotTakenError,
)
from reservation_engine.exceptions.table_exceptions import TableInUseError

KIND_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.STORAGE_TIMEOUT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Booking conflicts keep the 400 clients already handle.
BAD_REQUEST_CONFLICTS = (SlotTakenError, CapacityExceededError, TableInUseError)


def to_http_exception(error: Exception) -> HTTPException:
    """
    Map a domain exception to the HTTP error returned to clients.

    Args:
        error: Exception carrying an ErrorKind

    Returns:
        HTTPException with the matching status code and message
    """
    if isinstance(error, BAD_REQUEST_CONFLICTS):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    kind = getattr(error, "kind", ErrorKind.INTERNAL)
    if kind == ErrorKind.INTERNAL:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )
    if kind == ErrorKind.STORAGE_TIMEOUT:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage is not responding, please try again"
        )
    return HTTPException(status_code=KIND_STATUS[kind], detail=str(error))
