"""
FormRelay Backend — Notification Service (Dispatcher & Inbox)
===============================================================

What:  Durably records notifications, pushes them to live sessions, and
       serves the per-user inbox (list, mark read, delete).
How:   Composes the NotificationDirectory (who is online) with a Socket.IO
       emitter (how to reach them).
Who:   Called by submission, assignment and admin services, and by the
       notification routes.

Dispatch Flow:
    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐
    │ record(): add│───▶│ caller / we  │───▶│ deliver(): emit  │
    │ row to tx    │    │ commit       │    │ to each live sid │
    └──────────────┘    └──────────────┘    └──────────────────┘

    The row is written unconditionally; it is the source of truth a client
    reconciles against by polling GET /notification.
    Delivery is best-effort, at-most-once: no retries, no acknowledgements.
    A failed emit to one session is logged and the others still get theirs.
    Zero live sessions is the normal case for offline users.

    Callers that must bundle the notification with other writes (bulk
    submission, assignment) call record(), commit their own transaction,
    then call deliver(). Standalone callers use dispatch().
"""

import logging
from typing import Any, List, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.exceptions import DatabaseError, NotFoundError
from formrelay.models.form import Form
from formrelay.models.notification import Notification
from formrelay.realtime import notification_directory, sio
from formrelay.schemas.notification import NotificationOut, NotificationPayload
from formrelay.services.notification_directory import NotificationDirectory

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification"


class NotificationService:
    """
    Notification dispatcher bound to one directory and one emitter.

    Args:
        directory: Live session registry.
        emitter:   Object with `async emit(event, data, to=sid)`; in
                   production the Socket.IO server.
    """

    def __init__(self, directory: NotificationDirectory, emitter: Any):
        self.directory = directory
        self.emitter = emitter

    # ── Dispatch ──────────────────────────────────────────────────────────

    async def record(
        self,
        db: AsyncSession,
        account_id: UUID,
        payload: NotificationPayload,
    ) -> Notification:
        """Add the notification row to the caller's open transaction."""
        notification = Notification(
            user_id=account_id,
            title=payload.title,
            message=payload.message,
            type=payload.type,
            form_id=payload.form_id,
            is_read=False,
        )
        db.add(notification)
        await db.flush()
        return notification

    async def deliver(self, account_id: UUID, payload: NotificationPayload) -> int:
        """
        Push a notification to every live session of an account.

        Returns:
            Number of sessions the event was handed to successfully.
        """
        sessions = self.directory.lookup(str(account_id))
        if not sessions:
            return 0

        event = payload.to_event()
        delivered = 0
        for sid in sessions:
            try:
                await self.emitter.emit(NOTIFICATION_EVENT, event, to=sid)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Live delivery to session %s (account %s) failed: %s",
                    sid, account_id, str(e),
                )
        logger.debug("Delivered %s to %d/%d sessions of %s",
                     payload.type.value, delivered, len(sessions), account_id)
        return delivered

    async def dispatch(
        self,
        db: AsyncSession,
        account_id: UUID,
        payload: NotificationPayload,
    ) -> Notification:
        """
        Persist a notification, commit, then push it live.

        Raises:
            DatabaseError: The row could not be written; nothing is pushed.
        """
        try:
            notification = await self.record(db, account_id, payload)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to persist notification for %s: %s", account_id, str(e))
            raise DatabaseError(
                message="Could not save the notification. Please try again.",
                context={"user_id": str(account_id), "error_type": type(e).__name__},
            )

        await self.deliver(account_id, payload)
        return notification

    # ── Inbox ─────────────────────────────────────────────────────────────

    async def list_for_user(
        self, db: AsyncSession, user_id: UUID
    ) -> Tuple[List[NotificationOut], int]:
        """
        Newest-first inbox with the linked form title.

        Returns:
            (notifications, unread_count)
        """
        result = await db.execute(
            select(Notification, Form.title)
            .outerjoin(Form, Form.id == Notification.form_id)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
        )
        items = []
        for notification, form_title in result.all():
            item = NotificationOut.model_validate(notification)
            item.form_title = form_title
            items.append(item)
        unread = sum(1 for item in items if not item.is_read)
        return items, unread

    async def mark_read(self, db: AsyncSession, user_id: UUID, notification_id: UUID) -> None:
        result = await db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True)
        )
        if result.rowcount == 0:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount

    async def delete(self, db: AsyncSession, user_id: UUID, notification_id: UUID) -> None:
        result = await db.execute(
            delete(Notification).where(
                Notification.id == notification_id, Notification.user_id == user_id
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))

    async def delete_all(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(delete(Notification).where(Notification.user_id == user_id))
        return result.rowcount

    async def count_for_user(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(Notification.user_id == user_id)
        )
        return result.scalar() or 0


# ── Singleton Instance ────────────────────────────────────────────────────
notification_service = NotificationService(directory=notification_directory, emitter=sio)


