# reservation_engine/api/v1/dependencies/auth.py
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from reservation_engine.domain.entities import Principal
from reservation_engine.domain.enums import UserRole


async def get_current_principal(
        user_id: Optional[str] = Header(None, alias="X-User-Id"),
        role: Optional[str] = Header(None, alias="X-User-Role")
) -> Principal:
    """
    Build the caller identity forwarded by the auth gateway.

    Args:
        user_id: Verified user ID header
        role: Verified role header, customer when absent

    Returns:
        Current principal

    Raises:
        HTTPException: 401 if the user id is missing, 403 on an unknown role
    """
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    try:
        user_role = UserRole(role.lower()) if role else UserRole.CUSTOMER
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Unknown role '{role}'"
        )

    return Principal(user_id=user_id, role=user_role)


async def require_staff(
        principal: Principal = Depends(get_current_principal)
) -> Principal:
    """
    Require an admin or manager caller.

    Raises:
        HTTPException: 403 for any other role
    """
    if not principal.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins and managers can perform this action"
        )
    return principal
