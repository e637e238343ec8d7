"""
FormRelay Backend — Admin Service
===================================

What:  Account administration: activation codes, account creation, user
       listing and editing, quota top-ups, activation and role changes.
Who:   Called by the /admin route handlers (admin role enforced upstream).

Quota Top-Up (PATCH /admin/update-submission-count):
    submission_count += delta, where delta must be a non-negative integer.
    Accepted: 5, 5.0, "5". Rejected with 400: -1, 2.5, "abc", true, null.
    The user row is locked for the read-modify-write, and the
    COUNT_INCREASED notification commits with it before the live push.
"""

import logging
import secrets
from typing import Any, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    FormRelayError,
    NotFoundError,
    ValidationError,
)
from formrelay.models.notification import Notification, NotificationType
from formrelay.models.user import ActivationCode, User, UserRole
from formrelay.schemas.notification import NotificationPayload
from formrelay.schemas.user import CreateUserRequest, UpdateProfileRequest
from formrelay.security import hash_password
from formrelay.services.notification_service import notification_service
from formrelay.services.user_service import user_service

logger = logging.getLogger(__name__)

INVALID_COUNT_MESSAGE = "Invalid submission count value"


def generate_activation_code() -> str:
    """12 upper-case hex characters (6 random bytes)."""
    return secrets.token_hex(6).upper()


def coerce_quota_delta(value: Any) -> int:
    """
    Normalize an admin-supplied quota increment.

    Raises:
        ValidationError: Not a non-negative integer.
    """
    if isinstance(value, bool):
        raise ValidationError(message=INVALID_COUNT_MESSAGE, field="submission_count")

    number: Any = value
    if isinstance(number, str):
        text = number.strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise ValidationError(message=INVALID_COUNT_MESSAGE, field="submission_count")

    if isinstance(number, float):
        if not number.is_integer():
            raise ValidationError(message=INVALID_COUNT_MESSAGE, field="submission_count")
        number = int(number)

    if not isinstance(number, int) or number < 0:
        raise ValidationError(message=INVALID_COUNT_MESSAGE, field="submission_count")
    return number


def coerce_flag(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(message=f"{field} must be a boolean", field=field)


class AdminService:

    # ── Activation Codes & Account Creation ───────────────────────────────

    async def generate_code(self, db: AsyncSession) -> ActivationCode:
        code = ActivationCode(code=generate_activation_code())
        db.add(code)
        await db.flush()
        logger.info("Activation code generated")
        return code

    async def create_account(
        self,
        db: AsyncSession,
        data: CreateUserRequest,
        role: UserRole = UserRole.USER,
    ) -> User:
        """
        Create an activated account, consuming an unused activation code.

        Raises:
            ValidationError: Code unknown or already used.
            ConflictError:   E-mail already registered.
        """
        result = await db.execute(
            select(ActivationCode)
            .where(ActivationCode.code == data.activation_code.strip())
            .with_for_update()
        )
        code = result.scalar_one_or_none()
        if code is None or code.is_used:
            raise ValidationError(
                message="Invalid or already used activation code.",
                field="activationCode",
            )

        email = str(data.email).lower()
        if await user_service.get_by_email(db, email) is not None:
            raise ConflictError(message="User already exists.", context={"email": email})

        user = User(
            name=data.name.strip(),
            email=email,
            password_hash=hash_password(data.password),
            role=role,
            is_activated=True,
            activation_code=code.code,
        )
        db.add(user)
        code.is_used = True
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(message="User already exists.", context={"email": email})

        logger.info("Created %s account %s", role.value, user.id)
        return user

    # ── User Management ───────────────────────────────────────────────────

    async def list_users(self, db: AsyncSession) -> Sequence[User]:
        result = await db.execute(
            select(User).where(User.role == UserRole.USER).order_by(User.created_at.desc())
        )
        return result.scalars().all()

    async def update_user(
        self, db: AsyncSession, user_id: UUID, data: UpdateProfileRequest
    ) -> User:
        user = await user_service.get_by_id(db, user_id)
        return await user_service.update_profile(db, user, data)

    async def delete_user(self, db: AsyncSession, actor: User, user_id: UUID) -> None:
        """Forms, responses, templates and notifications cascade in the database."""
        if actor.id == user_id:
            raise ForbiddenError(message="Admins cannot delete their own account")
        user = await user_service.get_by_id(db, user_id)
        await db.delete(user)
        await db.flush()
        logger.info("User %s deleted by %s", user_id, actor.id)

    async def update_role(self, db: AsyncSession, user_id: UUID, role: str) -> User:
        try:
            new_role = UserRole(str(role).upper())
        except ValueError:
            raise ValidationError(message="Role must be USER or ADMIN", field="role")
        user = await user_service.get_by_id(db, user_id)
        user.role = new_role
        await db.flush()
        logger.info("User %s role set to %s", user_id, new_role.value)
        return user

    # ── Changes That Notify ───────────────────────────────────────────────

    async def _lock_user(self, db: AsyncSession, user_id: UUID) -> User:
        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def _commit_and_notify(
        self, db: AsyncSession, user: User, notice: NotificationPayload
    ) -> Tuple[Notification, int]:
        """Record the notice with the pending change, commit, then push."""
        try:
            notification = await notification_service.record(db, user.id, notice)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Admin update for %s failed: %s", user.id, str(e))
            raise DatabaseError(
                message="Failed to update the user. Please try again.",
                context={"user_id": str(user.id), "error_type": type(e).__name__},
            )
        delivered = await notification_service.deliver(user.id, notice)
        return notification, delivered

    async def update_submission_count(
        self, db: AsyncSession, user_id: UUID, raw_delta: Any
    ) -> User:
        """
        Add a non-negative delta to a user's remaining quota.

        Raises:
            ValidationError: Delta is not a non-negative integer.
            NotFoundError:   User missing.
        """
        delta = coerce_quota_delta(raw_delta)
        try:
            user = await self._lock_user(db, user_id)
        except FormRelayError:
            await db.rollback()
            raise

        user.submission_count += delta
        notice = NotificationPayload(
            title="Submission quota increased",
            message=(
                f"Your submission quota was increased by {delta}. "
                f"You now have {user.submission_count} submissions available."
            ),
            type=NotificationType.COUNT_INCREASED,
        )
        await self._commit_and_notify(db, user, notice)
        logger.info("Quota for %s increased by %d to %d", user_id, delta, user.submission_count)
        return user

    async def update_activation_status(
        self, db: AsyncSession, user_id: UUID, raw_flag: Any
    ) -> User:
        is_activated = coerce_flag(raw_flag, "isActivated")
        try:
            user = await self._lock_user(db, user_id)
        except FormRelayError:
            await db.rollback()
            raise

        user.is_activated = is_activated
        state = "activated" if is_activated else "deactivated"
        notice = NotificationPayload(
            title="Account status changed",
            message=f"Your account has been {state} by an administrator.",
            type=NotificationType.STATUS_CHANGED,
        )
        await self._commit_and_notify(db, user, notice)
        logger.info("User %s %s", user_id, state)
        return user

    async def send_test_notification(
        self, db: AsyncSession, user_id: UUID, title: str, message: str
    ) -> Tuple[Notification, int]:
        user = await user_service.get_by_id(db, user_id)
        notice = NotificationPayload(
            title=title,
            message=message,
            type=NotificationType.STATUS_CHANGED,
        )
        return await self._commit_and_notify(db, user, notice)


# ── Singleton Instance ────────────────────────────────────────────────────
admin_service = AdminService()
