"""
FormRelay Backend — Template Route Handlers
=============================================

What:  Template catalogue under /templates. Listing and reading are open to
       any signed-in user; edits and deletes are limited to the author
       (someone else's template answers 404).
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.database import get_db_session
from formrelay.models.user import User
from formrelay.routes.deps import get_current_user
from formrelay.schemas.common import MessageResponse
from formrelay.schemas.template import (
    CreateTemplateRequest,
    TemplateEnvelope,
    TemplateListResponse,
    TemplateOut,
    UpdateTemplateRequest,
)
from formrelay.services.template_service import template_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.post(
    "/create",
    response_model=TemplateEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a template",
)
async def create_template(
    body: CreateTemplateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TemplateEnvelope:
    template = await template_service.create(db, user, body)
    return TemplateEnvelope(
        message="Template created successfully",
        template=TemplateOut.model_validate(template),
    )


@router.get("/all", response_model=TemplateListResponse, summary="Every template with its author")
async def list_templates(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TemplateListResponse:
    templates = await template_service.list_all(db)
    return TemplateListResponse(count=len(templates), templates=templates)


@router.get("/my-templates", response_model=TemplateListResponse, summary="Caller's templates")
async def list_my_templates(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TemplateListResponse:
    templates = await template_service.list_for_user(db, user)
    return TemplateListResponse(
        count=len(templates),
        templates=[TemplateOut.model_validate(t) for t in templates],
    )


@router.get("/{template_id}", response_model=TemplateEnvelope, summary="Get a template")
async def get_template(
    template_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TemplateEnvelope:
    template = await template_service.get(db, template_id)
    return TemplateEnvelope(
        message="Template fetched successfully",
        template=TemplateOut.model_validate(template),
    )


@router.put("/{template_id}", response_model=TemplateEnvelope, summary="Update own template")
async def update_template(
    template_id: UUID,
    body: UpdateTemplateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TemplateEnvelope:
    template = await template_service.update(db, template_id, user, body)
    return TemplateEnvelope(
        message="Template updated successfully",
        template=TemplateOut.model_validate(template),
    )


@router.delete("/{template_id}", response_model=MessageResponse, summary="Delete own template")
async def delete_template(
    template_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await template_service.delete(db, template_id, user)
    return MessageResponse(message="Template deleted successfully")
