from fastapi import Depends, HTTPException, status

from core.roles import Capability, has_capability
from models import User
from security.oauth2 import get_current_user


def require_capability(capability: Capability, detail: str = "Insufficient permissions"):
    """Dependency factory: the current user, or 403 when their role lacks ``capability``."""
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_capability(current_user.role, capability):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user
    return checker


def user_can(user: User, capability: Capability) -> bool:
    return has_capability(user.role, capability)
