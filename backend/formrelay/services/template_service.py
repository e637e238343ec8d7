"""
FormRelay Backend — Template Service
======================================

What:  CRUD for reusable block layouts. The catalogue is readable by every
       user; only the author may change or delete a template.
"""

import json
import logging
from typing import List, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.exceptions import NotFoundError, ValidationError
from formrelay.models.template import Template
from formrelay.models.user import User
from formrelay.schemas.template import CreateTemplateRequest, TemplateOut, UpdateTemplateRequest
from formrelay.schemas.user import UserSummary

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "GENERAL"


class TemplateService:

    async def create(self, db: AsyncSession, user: User, data: CreateTemplateRequest) -> Template:
        title = data.title.strip()
        if not title:
            raise ValidationError(message="Title is required", field="title")

        template = Template(
            user_id=user.id,
            title=title,
            description=(data.description or "").strip(),
            category=(data.category or "").strip() or DEFAULT_CATEGORY,
            blocks=json.dumps(data.blocks),
        )
        db.add(template)
        await db.flush()
        logger.info("Template %s created by %s", template.id, user.id)
        return template

    async def get(self, db: AsyncSession, template_id: UUID) -> Template:
        template = await db.get(Template, template_id)
        if template is None:
            raise NotFoundError(resource="template", resource_id=str(template_id))
        return template

    async def _get_owned(self, db: AsyncSession, template_id: UUID, user: User) -> Template:
        # Someone else's template reads as missing, not forbidden
        result = await db.execute(
            select(Template).where(Template.id == template_id, Template.user_id == user.id)
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFoundError(resource="template", resource_id=str(template_id))
        return template

    async def update(
        self, db: AsyncSession, template_id: UUID, user: User, data: UpdateTemplateRequest
    ) -> Template:
        template = await self._get_owned(db, template_id, user)
        if data.title:
            template.title = data.title.strip()
        if data.description:
            template.description = data.description.strip()
        if data.category:
            template.category = data.category.strip()
        if data.blocks is not None:
            template.blocks = json.dumps(data.blocks)
        await db.flush()
        return template

    async def delete(self, db: AsyncSession, template_id: UUID, user: User) -> None:
        template = await self._get_owned(db, template_id, user)
        await db.delete(template)
        await db.flush()

    async def list_all(self, db: AsyncSession) -> List[TemplateOut]:
        """Every template, newest first, with a summary of its author."""
        result = await db.execute(
            select(Template, User)
            .join(User, User.id == Template.user_id)
            .order_by(Template.created_at.desc())
        )
        items = []
        for template, author in result.all():
            item = TemplateOut.model_validate(template)
            item.created_by = UserSummary.model_validate(author)
            items.append(item)
        return items

    async def list_for_user(self, db: AsyncSession, user: User) -> Sequence[Template]:
        result = await db.execute(
            select(Template)
            .where(Template.user_id == user.id)
            .order_by(Template.created_at.desc())
        )
        return result.scalars().all()


# ── Singleton Instance ────────────────────────────────────────────────────
template_service = TemplateService()
