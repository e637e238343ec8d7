"""
FormRelay Backend — Admin Route Handlers
==========================================

What:  Account administration. Every route requires the ADMIN role.

Notable contract:
    PATCH /admin/update-submission-count
        body {"userId": "...", "submission_count": 10}
        → 200 {success, message, user}; 400 invalid delta; 404 unknown user.
    The delta is ADDED to the user's remaining quota.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.database import get_db_session
from formrelay.models.user import User, UserRole
from formrelay.routes.deps import require_admin
from formrelay.schemas.common import ErrorResponse, MessageResponse
from formrelay.schemas.notification import (
    NotificationOut,
    TestNotificationRequest,
    TestNotificationResponse,
)
from formrelay.schemas.user import (
    ActivationCodeResponse,
    CreateUserRequest,
    UpdateActivationStatusRequest,
    UpdateProfileRequest,
    UpdateSubmissionCountRequest,
    UpdateUserRoleRequest,
    UserEnvelope,
    UserListResponse,
    UserOut,
)
from formrelay.services.admin_service import admin_service
from formrelay.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={
        401: {"description": "Not signed in", "model": ErrorResponse},
        403: {"description": "Not an admin", "model": ErrorResponse},
    },
)


@router.post(
    "/code",
    response_model=ActivationCodeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a one-time activation code",
)
async def generate_code(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ActivationCodeResponse:
    code = await admin_service.generate_code(db)
    return ActivationCodeResponse(code=code.code)


@router.post(
    "/users",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "E-mail already registered", "model": ErrorResponse}},
    summary="Create a user account",
)
async def create_user(
    body: CreateUserRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await admin_service.create_account(db, body, role=UserRole.USER)
    return UserEnvelope(message="User created successfully", user=UserOut.model_validate(user))


@router.post(
    "/create-admin",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create an admin account",
)
async def create_admin(
    body: CreateUserRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await admin_service.create_account(db, body, role=UserRole.ADMIN)
    return UserEnvelope(message="Admin created successfully", user=UserOut.model_validate(user))


@router.get("/users", response_model=UserListResponse, summary="List non-admin users")
async def list_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users = await admin_service.list_users(db)
    return UserListResponse(count=len(users), users=[UserOut.model_validate(u) for u in users])


@router.get("/users/{user_id}", response_model=UserEnvelope, summary="Get one user")
async def get_user(
    user_id: UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.get_by_id(db, user_id)
    return UserEnvelope(message="User fetched successfully", user=UserOut.model_validate(user))


@router.put("/users/{user_id}", response_model=UserEnvelope, summary="Rename a user")
async def update_user(
    user_id: UUID,
    body: UpdateProfileRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await admin_service.update_user(db, user_id, body)
    return UserEnvelope(message="User updated successfully", user=UserOut.model_validate(user))


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete a user")
async def delete_user(
    user_id: UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await admin_service.delete_user(db, admin, user_id)
    return MessageResponse(message="User deleted successfully")


@router.patch(
    "/update-submission-count",
    response_model=UserEnvelope,
    responses={
        400: {"description": "Invalid submission count value", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Add to a user's remaining submission quota",
)
async def update_submission_count(
    body: UpdateSubmissionCountRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await admin_service.update_submission_count(db, body.user_id, body.submission_count)
    return UserEnvelope(
        message="Submission count updated successfully",
        user=UserOut.model_validate(user),
    )


@router.put(
    "/update-activation-status",
    response_model=UserEnvelope,
    summary="Activate or deactivate an account",
)
async def update_activation_status(
    body: UpdateActivationStatusRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await admin_service.update_activation_status(db, body.user_id, body.is_activated)
    return UserEnvelope(
        message="Activation status updated successfully",
        user=UserOut.model_validate(user),
    )


@router.put("/update-user-role", response_model=UserEnvelope, summary="Change a user's role")
async def update_user_role(
    body: UpdateUserRoleRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await admin_service.update_role(db, body.user_id, body.role)
    return UserEnvelope(message="User role updated successfully", user=UserOut.model_validate(user))


@router.post(
    "/test-notification",
    response_model=TestNotificationResponse,
    summary="Send a notification to check the live channel",
)
async def test_notification(
    body: TestNotificationRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> TestNotificationResponse:
    target = body.user_id or admin.id
    notification, delivered = await admin_service.send_test_notification(
        db, target, body.title, body.message
    )
    return TestNotificationResponse(
        message=f"Notification delivered to {delivered} live session(s)",
        notification=NotificationOut.model_validate(notification),
        delivered=delivered,
    )
