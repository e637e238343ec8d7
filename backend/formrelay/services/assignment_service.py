"""
FormRelay Backend — Assignment Service
========================================

What:  Tasks a user with completing a form and tells them about it.
How:   Inserts the Assignment row and a FORM_ASSIGNED notification in one
       transaction, commits, then pushes the notification live.
Who:   Called by POST/GET /form/assign and GET /form/assigned-forms.

Uniqueness:
    (user_id, form_id) is unique. A repeat assignment is rejected with
    ConflictError whether it is caught by the pre-check or by the database
    constraint (two concurrent requests), and leaves no new rows behind.
"""

import logging
from typing import Sequence
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
)
from formrelay.models.form import Assignment, Form
from formrelay.models.notification import NotificationType
from formrelay.models.user import User
from formrelay.schemas.notification import NotificationPayload
from formrelay.services.notification_service import notification_service

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "User is already assigned to this form"


class AssignmentService:

    async def assign(
        self,
        db: AsyncSession,
        actor: User,
        user_id: UUID,
        form_id: UUID,
    ) -> Assignment:
        """
        Assign a user to a form.

        Raises:
            NotFoundError:  Form or user missing.
            ForbiddenError: Actor is neither the form creator nor an admin.
            ConflictError:  The pair is already assigned.
        """
        try:
            form = await db.get(Form, form_id)
            if form is None:
                raise NotFoundError(resource="form", resource_id=str(form_id))
            if form.user_id != actor.id and not actor.is_admin:
                raise ForbiddenError(
                    message="Only the form creator or an admin can assign this form",
                    context={"form_id": str(form_id)},
                )

            assignee = await db.get(User, user_id)
            if assignee is None:
                raise NotFoundError(resource="user", resource_id=str(user_id))

            existing = await db.execute(
                select(Assignment.id).where(
                    Assignment.user_id == user_id, Assignment.form_id == form_id
                )
            )
            if existing.first() is not None:
                raise ConflictError(
                    message=DUPLICATE_MESSAGE,
                    context={"user_id": str(user_id), "form_id": str(form_id)},
                )

            assignment = Assignment(user_id=user_id, form_id=form_id)
            db.add(assignment)

            notice = NotificationPayload(
                title="New form assigned",
                message=f'You have been assigned the form "{form.title}"',
                type=NotificationType.FORM_ASSIGNED,
                form_id=form.id,
            )
            await notification_service.record(db, user_id, notice)
            await db.commit()

        except FormRelayError:
            await db.rollback()
            raise
        except IntegrityError:
            await db.rollback()
            raise ConflictError(
                message=DUPLICATE_MESSAGE,
                context={"user_id": str(user_id), "form_id": str(form_id)},
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Assigning form %s to %s failed: %s", form_id, user_id, str(e))
            raise DatabaseError(
                message="Failed to assign the form. Please try again.",
                context={"form_id": str(form_id), "error_type": type(e).__name__},
            )

        logger.info("Form %s assigned to %s by %s", form_id, user_id, actor.id)
        await notification_service.deliver(user_id, notice)
        return assignment

    async def list_assignees(self, db: AsyncSession, form_id: UUID) -> Sequence[User]:
        form = await db.get(Form, form_id)
        if form is None:
            raise NotFoundError(resource="form", resource_id=str(form_id))
        result = await db.execute(
            select(User)
            .join(Assignment, Assignment.user_id == User.id)
            .where(Assignment.form_id == form_id)
            .order_by(Assignment.created_at)
        )
        return result.scalars().all()

    async def list_assigned_forms(self, db: AsyncSession, user: User) -> Sequence[Form]:
        result = await db.execute(
            select(Form)
            .join(Assignment, Assignment.form_id == Form.id)
            .where(Assignment.user_id == user.id)
            .order_by(Assignment.created_at.desc())
        )
        return result.scalars().all()


# ── Singleton Instance ────────────────────────────────────────────────────
assignment_service = AssignmentService()
