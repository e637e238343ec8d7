"""
FormRelay Backend — Form, Submission & Assignment Schemas
===========================================================

What:  API contracts for form CRUD, response submission (single and bulk),
       response management, assignment and share links.

Opaque payloads:
    `blocks` and `responses` are arbitrary JSON. They are serialized to text
    on the way in and decoded on the way out; their contents are never
    validated here.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from formrelay.models.form import FormPrivacy
from formrelay.schemas.common import APIModel, decode_json_text
from formrelay.schemas.user import UserSummary


# ══════════════════════════════════════════════════════════════════════════
# Forms
# ══════════════════════════════════════════════════════════════════════════


class FormOut(APIModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str
    blocks: Any
    privacy: FormPrivacy
    is_published: bool
    is_favorite: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("blocks", mode="before")
    @classmethod
    def decode_blocks(cls, v: Any) -> Any:
        return decode_json_text(v)


class FormEnvelope(APIModel):
    success: bool = True
    message: str
    form: FormOut


class FormListResponse(APIModel):
    success: bool = True
    count: int
    forms: List[FormOut]


class CreateFormRequest(APIModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    blocks: List[Any]
    privacy: FormPrivacy = FormPrivacy.PRIVATE
    is_published: bool = False


class UpdateFormRequest(APIModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    blocks: Optional[List[Any]] = None


class ChangeFormStatusRequest(APIModel):
    privacy: Optional[FormPrivacy] = None
    is_published: Optional[bool] = None


# ══════════════════════════════════════════════════════════════════════════
# Responses & Submission
# ══════════════════════════════════════════════════════════════════════════


class FormResponseOut(APIModel):
    id: uuid.UUID
    form_id: uuid.UUID
    user_id: uuid.UUID
    responses: Any
    response_title: Optional[str] = None
    submitted_at: datetime

    @field_validator("responses", mode="before")
    @classmethod
    def decode_responses(cls, v: Any) -> Any:
        return decode_json_text(v)


class SubmissionPayload(APIModel):
    """One answer set: `{responses, responseTitle?}`."""
    responses: Any
    response_title: Optional[str] = Field(default=None, max_length=255)


class BulkSubmissionRequest(APIModel):
    """
    `submissions` is typed Any so that the service layer can report a
    missing, empty or non-list value with a single 400 message.
    """
    submissions: Any = None


class SubmissionResponse(APIModel):
    success: bool = True
    message: str = "Response submitted successfully"
    response: FormResponseOut


class BulkSubmissionResponse(APIModel):
    """
    Outcome of a bulk submission.

    count and processed are equal; both are kept for client compatibility.
    remaining_quota is the form creator's submission_count after commit.
    """
    success: bool = True
    message: str
    count: int
    processed: int
    requested: int
    unprocessed: int
    remaining_quota: int


class ResponseEnvelope(APIModel):
    success: bool = True
    message: str = "Response fetched successfully"
    response: FormResponseOut


class ResponseListResponse(APIModel):
    success: bool = True
    count: int
    responses: List[FormResponseOut]


class UpdateResponseRequest(APIModel):
    responses: Optional[Any] = None
    response_title: Optional[str] = Field(default=None, max_length=255)


class DeleteResponsesRequest(APIModel):
    response_ids: List[uuid.UUID] = Field(min_length=1)


class DeleteResponsesResult(APIModel):
    success: bool = True
    message: str
    deleted: int


# ══════════════════════════════════════════════════════════════════════════
# Assignment & Sharing
# ══════════════════════════════════════════════════════════════════════════


class AssignUserRequest(APIModel):
    user_id: uuid.UUID
    form_id: uuid.UUID


class AssignmentOut(APIModel):
    id: uuid.UUID
    user_id: uuid.UUID
    form_id: uuid.UUID
    created_at: datetime


class AssignmentEnvelope(APIModel):
    success: bool = True
    message: str = "User assigned successfully"
    assignment: AssignmentOut


class AssigneeListResponse(APIModel):
    success: bool = True
    count: int
    users: List[UserSummary]


class ShareLinkData(APIModel):
    share_url: str


class ShareLinkResponse(APIModel):
    success: bool = True
    data: ShareLinkData
