"""
FormRelay Backend — Notification Inbox Routes
===============================================

What:  The caller's notification inbox under /notification.
Why:   Live pushes are best-effort; clients reconcile against this list.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.database import get_db_session
from formrelay.models.user import User
from formrelay.routes.deps import get_current_user
from formrelay.schemas.common import ErrorResponse, MessageResponse
from formrelay.schemas.notification import NotificationListResponse
from formrelay.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notification", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse, summary="Inbox, newest first")
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    items, unread = await notification_service.list_for_user(db, user.id)
    return NotificationListResponse(count=len(items), unread=unread, notifications=items)


@router.patch("/read-all", response_model=MessageResponse, summary="Mark every notification read")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    updated = await notification_service.mark_all_read(db, user.id)
    return MessageResponse(message=f"{updated} notifications marked as read")


@router.patch(
    "/{notification_id}/read",
    response_model=MessageResponse,
    responses={404: {"description": "Not in the caller's inbox", "model": ErrorResponse}},
    summary="Mark one notification read",
)
async def mark_read(
    notification_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.mark_read(db, user.id, notification_id)
    return MessageResponse(message="Notification marked as read")


@router.delete("", response_model=MessageResponse, summary="Clear the inbox")
async def clear_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    deleted = await notification_service.delete_all(db, user.id)
    return MessageResponse(message=f"{deleted} notifications deleted")


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Not in the caller's inbox", "model": ErrorResponse}},
    summary="Delete one notification",
)
async def delete_notification(
    notification_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete(db, user.id, notification_id)
    return MessageResponse(message="Notification deleted")
