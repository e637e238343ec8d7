"""
FormRelay Backend — User & Activation Code Models
===================================================

What:  ORM models for the `users` and `activation_codes` tables.
Who:   Used by auth, admin and submission services.

Quota Ledger:
    Two counters live on the user row:
    - submission_count: remaining quota. Consumed when a form OWNED by this
      user receives a response. Never negative (CHECK constraint).
    - response_count: cumulative responses received on owned forms.
    Both are only mutated while the row is locked (SELECT ... FOR UPDATE),
    see services/submission_service.py.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Integer,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from formrelay.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    """
    An account that can build forms, answer forms, or administer others.

    Query Patterns:
        - Login: WHERE email = :email (unique index)
        - Quota lock: WHERE id = :owner FOR UPDATE
        - Admin listing: WHERE role = 'USER'
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", native_enum=False, length=16),
        nullable=False,
        default=UserRole.USER,
        server_default=text("'USER'"),
    )
    is_activated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    activation_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # ── Quota Ledger ──────────────────────────────────────────────────────
    submission_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    response_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
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

    __table_args__ = (
        CheckConstraint("submission_count >= 0", name="ck_users_submission_count_non_negative"),
        CheckConstraint("response_count >= 0", name="ck_users_response_count_non_negative"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, email='{self.email}', role='{self.role.value}', "
            f"submission_count={self.submission_count})>"
        )


class ActivationCode(Base):
    """One-time code an admin hands out; consumed when an account is created."""

    __tablename__ = "activation_codes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    is_used: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<ActivationCode(code='{self.code}', is_used={self.is_used})>"
