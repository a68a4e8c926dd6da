"""Role checks for Profile Designer API endpoints."""

from functools import wraps
from typing import Callable

from fastapi import HTTPException, Request, status

from profiledesigner.core.approval.models import ActingUser


class RoleChecker:
    """Checks the roles held by the acting user."""

    def __init__(self, user: ActingUser):
        self.roles = set(user.roles)

    def has_role(self, role: str) -> bool:
        return role in self.roles


def require_admin(func: Callable):
    """
    Decorator for FastAPI endpoints reserved to administrators.

    The administrator role name comes from the application settings, and
    the endpoint must declare ``request`` and ``current_user`` parameters.

    Usage:
        @router.post("/approve")
        @require_admin
        async def approve(request: Request, current_user: ActingUser = Depends(get_current_user)):
            ...
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request = kwargs.get("request")
        current_user: ActingUser = kwargs.get("current_user")

        if not current_user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required"
            )

        admin_role = request.app.state.settings.admin_role
        if not RoleChecker(current_user).has_role(admin_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {admin_role}"
            )

        return await func(*args, **kwargs)

    return wrapper
