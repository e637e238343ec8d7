"""
FormRelay Backend — User & Admin Schemas
==========================================

What:  API contracts for login, profile, account administration and the
       quota ledger.

Naming:
    The quota counters keep their snake_case names on the wire
    (`submission_count`, `response_count`) to match existing clients; every
    other field is camelCase.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import EmailStr, Field

from formrelay.models.user import UserRole
from formrelay.schemas.common import APIModel


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserOut(APIModel):
    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    is_activated: bool
    activation_code: Optional[str] = None
    submission_count: int = Field(alias="submission_count")
    response_count: int = Field(alias="response_count")
    created_at: datetime


class UserSummary(APIModel):
    """Compact user representation for search results and assignee lists."""
    id: uuid.UUID
    name: str
    email: str


class UserEnvelope(APIModel):
    success: bool = True
    message: str
    user: UserOut


class UserListResponse(APIModel):
    success: bool = True
    message: str = "Users fetched successfully"
    count: int
    users: List[UserOut]


class LoginResponse(APIModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    user: UserOut


class SubmissionCountOut(APIModel):
    submission_count: int = Field(alias="submission_count")
    response_count: int = Field(alias="response_count")


class SubmissionCountResponse(APIModel):
    success: bool = True
    data: SubmissionCountOut


class ActivationCodeResponse(APIModel):
    success: bool = True
    message: str = "Activation code generated"
    code: str


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UpdateProfileRequest(APIModel):
    name: Optional[str] = Field(default=None, max_length=120)


class ChangePasswordRequest(APIModel):
    old_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


class CreateUserRequest(APIModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    activation_code: str = Field(min_length=1)


class UpdateSubmissionCountRequest(APIModel):
    """
    Admin quota top-up.

    submission_count is left untyped here; the service layer coerces it and
    reports "abc", -3 and 2.5 alike as a 400 with one message.
    """
    user_id: uuid.UUID
    submission_count: Any = Field(alias="submission_count")


class UpdateActivationStatusRequest(APIModel):
    user_id: uuid.UUID
    is_activated: Any


class UpdateUserRoleRequest(APIModel):
    user_id: uuid.UUID
    role: str


class UserSearchResponse(APIModel):
    success: bool = True
    count: int
    users: List[UserSummary]
