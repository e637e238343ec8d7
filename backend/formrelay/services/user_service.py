"""
FormRelay Backend — User Service
==================================

What:  Login, profile maintenance, user search and the quota readout a
       creator sees for their own account.
Who:   Called by the /users route handlers and, for the bootstrap admin,
       by the application lifespan.
"""

import logging
from typing import Sequence, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.config import settings
from formrelay.exceptions import (
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from formrelay.models.user import User, UserRole
from formrelay.schemas.user import ChangePasswordRequest, UpdateProfileRequest
from formrelay.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


class UserService:

    async def get_by_id(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def get_by_email(self, db: AsyncSession, email: str):
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[str, User]:
        """
        Verify credentials and issue a bearer token.

        Unknown e-mail and wrong password produce the same 401 so the
        endpoint cannot be used to probe for accounts.

        Raises:
            UnauthorizedError: Bad credentials.
            ForbiddenError:    Account is deactivated.
        """
        user = await self.get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login for %s", email)
            raise UnauthorizedError(message="Invalid email or password")
        if not user.is_activated:
            raise ForbiddenError(message="Account is deactivated. Contact an administrator.")

        logger.info("User %s logged in", user.id)
        return create_access_token(user), user

    async def update_profile(
        self, db: AsyncSession, user: User, data: UpdateProfileRequest
    ) -> User:
        if data.name is not None:
            name = data.name.strip()
            if not name:
                raise ValidationError(message="Name cannot be empty", field="name")
            user.name = name
        await db.flush()
        return user

    async def change_password(
        self, db: AsyncSession, user: User, data: ChangePasswordRequest
    ) -> None:
        if not verify_password(data.old_password, user.password_hash):
            raise ValidationError(message="Current password is incorrect", field="oldPassword")
        if data.old_password == data.new_password:
            raise ValidationError(
                message="New password must differ from the current one", field="newPassword"
            )
        user.password_hash = hash_password(data.new_password)
        await db.flush()
        logger.info("Password changed for %s", user.id)

    async def search(self, db: AsyncSession, user: User, query: str) -> Sequence[User]:
        """Case-insensitive name/e-mail match, excluding the caller."""
        term = query.strip()
        if not term:
            return []
        pattern = f"%{term}%"
        result = await db.execute(
            select(User)
            .where(
                User.id != user.id,
                or_(User.name.ilike(pattern), User.email.ilike(pattern)),
            )
            .order_by(User.name)
            .limit(SEARCH_LIMIT)
        )
        return result.scalars().all()

    async def ensure_bootstrap_admin(self, db: AsyncSession) -> None:
        """
        Create the configured admin account if it does not exist yet.

        No-op unless BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD are set.
        """
        email = settings.bootstrap_admin_email
        password = settings.bootstrap_admin_password
        if not email or not password:
            return
        if await self.get_by_email(db, email) is not None:
            return

        db.add(
            User(
                name="Administrator",
                email=email.lower(),
                password_hash=hash_password(password),
                role=UserRole.ADMIN,
                is_activated=True,
            )
        )
        try:
            await db.commit()
        except IntegrityError:
            # Another worker created it first
            await db.rollback()
            return
        logger.info("Bootstrap admin %s created", email)


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
