"""
FormRelay Backend — Notification Schemas
==========================================

What:  The payload pushed over Socket.IO and the inbox API contracts.

Live event shape (event name "notification"):
    {"title": "...", "message": "...", "type": "FORM_ASSIGNED", "formId": "..."}
formId is omitted when the notification is not about a form.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from formrelay.models.notification import NotificationType
from formrelay.schemas.common import APIModel


class NotificationPayload(APIModel):
    title: str
    message: str
    type: NotificationType = NotificationType.FORM_ASSIGNED
    form_id: Optional[uuid.UUID] = None

    def to_event(self) -> dict:
        """JSON-safe dict for Socket.IO emission."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class NotificationOut(APIModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: Optional[str] = None
    message: str
    type: NotificationType
    form_id: Optional[uuid.UUID] = None
    form_title: Optional[str] = None
    is_read: bool
    created_at: datetime


class NotificationListResponse(APIModel):
    success: bool = True
    count: int
    unread: int
    notifications: List[NotificationOut]


class TestNotificationRequest(APIModel):
    """Admin diagnostics: push a notification to a user (defaults to the caller)."""
    user_id: Optional[uuid.UUID] = None
    title: str = "Test notification"
    message: str = "This is a test notification from FormRelay"


class TestNotificationResponse(APIModel):
    success: bool = True
    message: str
    notification: NotificationOut
    delivered: int
