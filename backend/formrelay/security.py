"""
FormRelay Backend — Password Hashing & Access Tokens
======================================================

What:  bcrypt password hashing and HS256 JWT issue/verify helpers.
How:   bcrypt work factor and JWT secret/expiry come from settings.
       Token claims: sub (user id), email, role, name, iat, exp.
Who:   Used by user_service (login, password changes), admin_service
       (account creation) and the auth dependencies in routes/deps.py.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt

from formrelay.config import settings
from formrelay.exceptions import UnauthorizedError


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison; malformed stored hashes count as a mismatch."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user: Any) -> str:
    """
    Issue a signed bearer token for a user.

    Args:
        user: Anything with id, email, role and name attributes (a User row).
    """
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "role": getattr(user.role, "value", user.role),
        "name": user.name,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        UnauthorizedError: Expired, tampered, or malformed token.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(message="Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError(message="Invalid token")

    try:
        claims["sub"] = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise UnauthorizedError(message="Invalid token")
    return claims
