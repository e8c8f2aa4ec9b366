from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Callable, Optional

from app.core.database import get_db
from app.core.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from app.core.logging_config import set_user_id
from app.core.roles import Role
from app.core.security import decode_token
from app.models.user import User

security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")

    payload = decode_token(credentials.credentials)

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Invalid token payload")

    user = await db.get(User, str(user_id))
    if user is None:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthorizationError("User account is inactive")

    # Rate limiter keys authenticated traffic by user id
    request.state.user_id = str(user.id)
    set_user_id(str(user.id))
    return user


def require_roles(*roles: Role) -> Callable:
    """
    Gate on the registration-time role.

    Only meaningful for platform roles (ADMIN, FACULTY). Society standing is
    checked against the membership ledger by the services.
    """
    allowed = set(roles)

    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            names = ", ".join(sorted(r.value.lower() for r in allowed))
            raise AuthorizationError(f"This action requires {names} access")
        return current_user

    return dependency


# Platform gates; admins pass the faculty gate too
get_current_admin = require_roles(Role.ADMIN)
get_current_faculty = require_roles(Role.FACULTY, Role.ADMIN)
