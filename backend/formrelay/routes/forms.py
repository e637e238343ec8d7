"""
FormRelay Backend — Form Route Handlers
=========================================

What:  Forms, response submission (single and bulk), response management,
       assignment and share links under /form.
How:   Thin handlers delegating to the form, submission and assignment
       services.

Route order:
    Fixed paths (/create, /all, /responses, /assign, ...) are declared
    before /{form_id} so they are never captured as a form id.

Submission status codes:
    POST /form/{formId}/submit        201 | 403 quota exhausted | 404
    POST /form/{formId}/submit/bulk   201 (also when partially admitted)
                                      | 400 bad submissions | 403 | 404
                                      | 503 transaction timed out
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.database import get_db_session
from formrelay.models.user import User
from formrelay.routes.deps import get_current_user
from formrelay.schemas.common import ErrorResponse, MessageResponse
from formrelay.schemas.form import (
    AssigneeListResponse,
    AssignmentEnvelope,
    AssignmentOut,
    AssignUserRequest,
    BulkSubmissionRequest,
    BulkSubmissionResponse,
    ChangeFormStatusRequest,
    CreateFormRequest,
    DeleteResponsesRequest,
    DeleteResponsesResult,
    FormEnvelope,
    FormListResponse,
    FormOut,
    FormResponseOut,
    ResponseEnvelope,
    ResponseListResponse,
    ShareLinkData,
    ShareLinkResponse,
    SubmissionPayload,
    SubmissionResponse,
    UpdateFormRequest,
    UpdateResponseRequest,
)
from formrelay.schemas.user import UserSummary
from formrelay.services.assignment_service import assignment_service
from formrelay.services.form_service import form_service
from formrelay.services.submission_service import submission_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/form", tags=["Forms"])


def _form_list(forms) -> FormListResponse:
    return FormListResponse(count=len(forms), forms=[FormOut.model_validate(f) for f in forms])


def _response_list(rows) -> ResponseListResponse:
    return ResponseListResponse(
        count=len(rows), responses=[FormResponseOut.model_validate(r) for r in rows]
    )


# ══════════════════════════════════════════════════════════════════════════
# Fixed Paths
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/create",
    response_model=FormEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a form",
)
async def create_form(
    body: CreateFormRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    form = await form_service.create_form(db, user, body)
    return FormEnvelope(message="Form created successfully", form=FormOut.model_validate(form))


@router.get("/all", response_model=FormListResponse, summary="Published or public forms")
async def list_public_forms(db: AsyncSession = Depends(get_db_session)) -> FormListResponse:
    return _form_list(await form_service.list_public_forms(db))


@router.get("/my-forms", response_model=FormListResponse, summary="Forms created by the caller")
async def list_my_forms(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormListResponse:
    return _form_list(await form_service.list_user_forms(db, user))


@router.get("/favorites", response_model=FormListResponse, summary="Caller's favorite forms")
async def list_favorites(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormListResponse:
    return _form_list(await form_service.list_user_forms(db, user, favorites_only=True))


@router.get(
    "/submissions",
    response_model=ResponseListResponse,
    summary="Responses the caller has submitted",
)
async def list_my_submissions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ResponseListResponse:
    return _response_list(await form_service.list_user_submissions(db, user))


@router.get(
    "/assigned-forms",
    response_model=FormListResponse,
    summary="Forms assigned to the caller",
)
async def list_assigned_forms(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormListResponse:
    return _form_list(await assignment_service.list_assigned_forms(db, user))


@router.post(
    "/assign",
    response_model=AssignmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Form or user not found", "model": ErrorResponse},
        409: {"description": "Already assigned", "model": ErrorResponse},
    },
    summary="Assign a user to a form and notify them",
)
async def assign_user(
    body: AssignUserRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AssignmentEnvelope:
    assignment = await assignment_service.assign(db, user, body.user_id, body.form_id)
    return AssignmentEnvelope(assignment=AssignmentOut.model_validate(assignment))


@router.get("/assign", response_model=AssigneeListResponse, summary="Users assigned to a form")
async def list_assignees(
    form_id: UUID = Query(alias="formId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AssigneeListResponse:
    users = await assignment_service.list_assignees(db, form_id)
    return AssigneeListResponse(
        count=len(users), users=[UserSummary.model_validate(u) for u in users]
    )


@router.get("/share/{form_id}", response_model=ShareLinkResponse, summary="Shareable form link")
async def share_form(
    form_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShareLinkResponse:
    form = await form_service.get_form(db, form_id)
    return ShareLinkResponse(data=ShareLinkData(share_url=form_service.share_link(form)))


# ── Responses ─────────────────────────────────────────────────────────────


@router.delete(
    "/responses",
    response_model=DeleteResponsesResult,
    responses={
        403: {"description": "Caller may not delete one of the responses", "model": ErrorResponse},
        404: {"description": "One of the responses does not exist", "model": ErrorResponse},
    },
    summary="Delete several responses (all or nothing)",
)
async def delete_responses(
    body: DeleteResponsesRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponsesResult:
    await form_service.delete_responses(db, body.response_ids, user)
    deleted = len(set(body.response_ids))
    return DeleteResponsesResult(message=f"{deleted} responses deleted successfully", deleted=deleted)


@router.get("/responses/{response_id}", response_model=ResponseEnvelope, summary="Get a response")
async def get_response(
    response_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ResponseEnvelope:
    response = await form_service.get_response(db, response_id, user)
    return ResponseEnvelope(response=FormResponseOut.model_validate(response))


@router.put("/responses/{response_id}", response_model=ResponseEnvelope, summary="Edit a response")
async def update_response(
    response_id: UUID,
    body: UpdateResponseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ResponseEnvelope:
    response = await form_service.update_response(db, response_id, user, body)
    return ResponseEnvelope(
        message="Response updated successfully",
        response=FormResponseOut.model_validate(response),
    )


@router.delete(
    "/responses/{response_id}",
    response_model=MessageResponse,
    responses={403: {"description": "Neither submitter nor form creator", "model": ErrorResponse}},
    summary="Delete a response",
)
async def delete_response(
    response_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await form_service.delete_response(db, response_id, user)
    return MessageResponse(message="Response deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Per-Form Paths
# ══════════════════════════════════════════════════════════════════════════


@router.get("/{form_id}", response_model=FormEnvelope, summary="Get a form")
async def get_form(
    form_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    form = await form_service.get_form(db, form_id)
    return FormEnvelope(message="Form fetched successfully", form=FormOut.model_validate(form))


@router.put("/{form_id}", response_model=FormEnvelope, summary="Update a form")
async def update_form(
    form_id: UUID,
    body: UpdateFormRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    form = await form_service.update_form(db, form_id, user, body)
    return FormEnvelope(message="Form updated successfully", form=FormOut.model_validate(form))


@router.delete("/{form_id}", response_model=MessageResponse, summary="Delete a form")
async def delete_form(
    form_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await form_service.delete_form(db, form_id, user)
    return MessageResponse(message="Form deleted successfully")


@router.post(
    "/{form_id}/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Creator has no remaining quota", "model": ErrorResponse},
        404: {"description": "Form not found", "model": ErrorResponse},
    },
    summary="Submit one response",
)
async def submit_response(
    form_id: UUID,
    body: SubmissionPayload,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SubmissionResponse:
    response = await submission_service.submit(db, form_id, user.id, body)
    return SubmissionResponse(response=FormResponseOut.model_validate(response))


@router.post(
    "/{form_id}/submit/bulk",
    response_model=BulkSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "submissions missing, empty or not an array", "model": ErrorResponse},
        403: {"description": "Creator has no remaining quota", "model": ErrorResponse},
        404: {"description": "Form not found", "model": ErrorResponse},
        503: {"description": "Transaction timed out and was rolled back", "model": ErrorResponse},
    },
    summary="Submit many responses in one transaction",
    description=(
        "Admits min(len(submissions), creator quota, batch cap) responses in input "
        "order. Partial admission is a success; the message explains which limit applied."
    ),
)
async def submit_bulk(
    form_id: UUID,
    body: BulkSubmissionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BulkSubmissionResponse:
    return await submission_service.submit_bulk(db, form_id, user.id, body.submissions)


@router.get(
    "/{form_id}/responses",
    response_model=ResponseListResponse,
    summary="Responses received by a form (creator only)",
)
async def list_form_responses(
    form_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ResponseListResponse:
    return _response_list(await form_service.list_form_responses(db, form_id, user))


@router.put("/{form_id}/status", response_model=FormEnvelope, summary="Change privacy/publication")
async def change_status(
    form_id: UUID,
    body: ChangeFormStatusRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    form = await form_service.change_status(db, form_id, user, body)
    return FormEnvelope(message="Form status updated successfully", form=FormOut.model_validate(form))


@router.patch("/{form_id}/favorite", response_model=FormEnvelope, summary="Toggle favorite")
async def toggle_favorite(
    form_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FormEnvelope:
    form = await form_service.toggle_favorite(db, form_id, user)
    message = "Form added to favorites" if form.is_favorite else "Form removed from favorites"
    return FormEnvelope(message=message, form=FormOut.model_validate(form))
