"""
FormRelay Backend — Form, Response & Assignment Models
========================================================

What:  ORM models for `forms`, `form_responses` and `assignments`.

Table Design:
    - blocks / responses: opaque JSON serialized to TEXT. The backend never
      inspects their structure.
    - Every child row references its parent with ON DELETE CASCADE, so
      deleting a form (or its owner) removes responses and assignments in
      the database without loading them into the session.
    - assignments carries a UNIQUE (user_id, form_id) constraint; a second
      assignment of the same pair is rejected, never overwritten.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from formrelay.database import Base
from formrelay.models.user import utcnow


class FormPrivacy(str, enum.Enum):
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"
    READ_ONLY = "READ_ONLY"


class Form(Base):
    __tablename__ = "forms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''")
    )
    blocks: Mapped[str] = mapped_column(
        Text, nullable=False, default="[]", server_default=text("'[]'")
    )
    privacy: Mapped[FormPrivacy] = mapped_column(
        Enum(FormPrivacy, name="form_privacy", native_enum=False, length=16),
        nullable=False,
        default=FormPrivacy.PRIVATE,
        server_default=text("'PRIVATE'"),
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_favorite: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Form(id={self.id}, title='{self.title}', owner={self.user_id})>"


class FormResponse(Base):
    """
    One submitted answer set. Created only while the form owner's quota is
    positive; insert and quota decrement share one transaction.
    """

    __tablename__ = "form_responses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    responses: Mapped[str] = mapped_column(Text, nullable=False)
    response_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_form_responses_form_submitted", "form_id", "submitted_at"),
    )

    def __repr__(self) -> str:
        return f"<FormResponse(id={self.id}, form={self.form_id}, user={self.user_id})>"


class Assignment(Base):
    __tablename__ = "assignments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "form_id", name="uq_assignments_user_form"),
    )

    def __repr__(self) -> str:
        return f"<Assignment(user={self.user_id}, form={self.form_id})>"
