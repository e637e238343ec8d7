"""
FormRelay Backend — Auth Dependencies
=======================================

What:  FastAPI dependencies resolving the bearer token to a User row.
How:   HTTPBearer with auto_error disabled so a missing header raises our
       UnauthorizedError (uniform JSON body) instead of FastAPI's 403.

Usage:
    @router.get("/me")
    async def me(user: User = Depends(get_current_user)): ...

    @router.get("/users", dependencies=[Depends(require_admin)])
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.database import get_db_session
from formrelay.exceptions import ForbiddenError, UnauthorizedError
from formrelay.models.user import User
from formrelay.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Raises:
        UnauthorizedError: No token, bad token, or the account no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(message="Authentication required")

    claims = decode_access_token(credentials.credentials)
    user = await db.get(User, claims["sub"])
    if user is None:
        raise UnauthorizedError(message="User no longer exists")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError(message="Admin access required")
    return user
