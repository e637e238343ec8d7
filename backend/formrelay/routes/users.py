"""
FormRelay Backend — User Route Handlers
=========================================

What:  Login, own profile, password change, user search and the quota
       readout for the signed-in account.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.database import get_db_session
from formrelay.models.user import User
from formrelay.routes.deps import get_current_user
from formrelay.schemas.common import ErrorResponse, MessageResponse
from formrelay.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    SubmissionCountOut,
    SubmissionCountResponse,
    UpdateProfileRequest,
    UserEnvelope,
    UserOut,
    UserSearchResponse,
    UserSummary,
)
from formrelay.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        403: {"description": "Account deactivated", "model": ErrorResponse},
    },
    summary="Exchange e-mail and password for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    token, user = await user_service.login(db, str(body.email), body.password)
    return LoginResponse(token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserEnvelope, summary="Current user profile")
async def me(user: User = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(message="User fetched successfully", user=UserOut.model_validate(user))


@router.put("/update-profile", response_model=UserEnvelope, summary="Update own profile")
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.update_profile(db, user, body)
    return UserEnvelope(message="Profile updated successfully", user=UserOut.model_validate(user))


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={400: {"description": "Wrong current password", "model": ErrorResponse}},
    summary="Change own password",
)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.change_password(db, user, body)
    return MessageResponse(message="Password changed successfully")


@router.get("/search", response_model=UserSearchResponse, summary="Find users by name or e-mail")
async def search_users(
    query: str = Query(default="", max_length=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserSearchResponse:
    users = await user_service.search(db, user, query)
    return UserSearchResponse(
        count=len(users), users=[UserSummary.model_validate(u) for u in users]
    )


@router.get(
    "/submission-count",
    response_model=SubmissionCountResponse,
    summary="Remaining quota and responses received",
)
async def submission_count(user: User = Depends(get_current_user)) -> SubmissionCountResponse:
    return SubmissionCountResponse(data=SubmissionCountOut.model_validate(user))
