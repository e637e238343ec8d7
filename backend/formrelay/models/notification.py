"""
FormRelay Backend — Notification Model
========================================

What:  Durable, typed message addressed to one user.
How:   Rows are append-only; only `is_read` changes after insert, and rows
       may be deleted by their recipient. The row is the source of truth:
       live Socket.IO pushes are a best-effort copy of it.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from formrelay.database import Base
from formrelay.models.user import utcnow


class NotificationType(str, enum.Enum):
    """Closed set of notification kinds. Extend by adding members."""

    FORM_ASSIGNED = "FORM_ASSIGNED"
    STATUS_CHANGED = "STATUS_CHANGED"
    COUNT_INCREASED = "COUNT_INCREASED"
    FORM_SUBMITTED = "FORM_SUBMITTED"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", native_enum=False, length=32),
        nullable=False,
        default=NotificationType.FORM_ASSIGNED,
    )
    form_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="SET NULL"), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Inbox query: WHERE user_id = :me ORDER BY created_at DESC
    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, user={self.user_id}, "
            f"type='{self.type.value}', is_read={self.is_read})>"
        )
