# app/core/rbac.py

from fastapi import Depends, HTTPException, status
from app.api.deps import get_current_user
from app.core.authorization import Decision
from app.models.user import ADMIN_ROLES, User, UserRole


def AllowRoles(*allowed_roles):
    """
    Coarse role gate:
    - Accepts UserRole values or raw strings (legacy spellings included)
    - Admin and power admin bypass everything
    """

    normalized_allowed = {UserRole.parse(r) for r in allowed_roles} - {None}

    async def role_checker(current_user: User = Depends(get_current_user)):
        user_role = UserRole.parse(current_user.role)

        if user_role in ADMIN_ROLES:
            return current_user

        if user_role not in normalized_allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied for role '{user_role.value if user_role else current_user.role}'"
            )

        return current_user

    return role_checker


async def require_power(current_user: User = Depends(get_current_user)) -> User:
    if UserRole.parse(current_user.role) != UserRole.Power:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only power admins can perform this action"
        )
    return current_user


def ensure_allowed(decision: Decision) -> None:
    """Translate a denied decision into the matching HTTP error."""
    if not decision.allowed:
        raise HTTPException(status_code=decision.status_code, detail=decision.reason)
