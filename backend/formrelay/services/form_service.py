"""
FormRelay Backend — Form Service
==================================

What:  Form CRUD, favorites, publication status, response management and
       share links.
How:   Plain SQLAlchemy queries. Writes are flushed; the request-scoped
       session (get_db_session) commits.
Who:   Called by the /form route handlers.

Ownership Rules:
    - Only the creator may update, delete, favorite or re-publish a form,
      or list its responses.
    - A response may be read, edited or deleted by its submitter or by the
      creator of the form it belongs to.
    - Deleting responses as the creator, directly or by deleting the form,
      lowers the creator's response_count by the number removed. Deleting
      as a submitter who does not own the form leaves the creator's
      counters alone. Quota is never refunded.
"""

import json
import logging
from typing import Dict, List, Sequence
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from formrelay.config import settings
from formrelay.exceptions import ForbiddenError, NotFoundError, ValidationError
from formrelay.models.form import Form, FormPrivacy, FormResponse
from formrelay.models.user import User
from formrelay.schemas.form import (
    ChangeFormStatusRequest,
    CreateFormRequest,
    UpdateFormRequest,
    UpdateResponseRequest,
)

logger = logging.getLogger(__name__)


class FormService:
    """
    Business logic for forms and their responses.

    Every method receives the acting user so ownership can be checked in
    one place (_get_owned_form / _authorize_response).
    """

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_form(self, db: AsyncSession, form_id: UUID) -> Form:
        form = await db.get(Form, form_id)
        if form is None:
            raise NotFoundError(resource="form", resource_id=str(form_id))
        return form

    async def _get_owned_form(self, db: AsyncSession, form_id: UUID, user: User) -> Form:
        form = await self.get_form(db, form_id)
        if form.user_id != user.id:
            raise ForbiddenError(
                message="Only the form creator can perform this action",
                context={"form_id": str(form_id)},
            )
        return form

    async def _lock_user(self, db: AsyncSession, user_id: UUID) -> User:
        result = await db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ── Form CRUD ────────────────────────────────────────────────────────

    async def create_form(self, db: AsyncSession, user: User, data: CreateFormRequest) -> Form:
        title = data.title.strip()
        if not title:
            raise ValidationError(message="Title is required", field="title")

        form = Form(
            user_id=user.id,
            title=title,
            description=(data.description or "").strip(),
            blocks=json.dumps(data.blocks),
            privacy=data.privacy,
            is_published=data.is_published,
        )
        db.add(form)
        await db.flush()
        logger.info("Form %s created by %s", form.id, user.id)
        return form

    async def update_form(
        self, db: AsyncSession, form_id: UUID, user: User, data: UpdateFormRequest
    ) -> Form:
        form = await self._get_owned_form(db, form_id, user)
        if data.title is not None:
            if not data.title.strip():
                raise ValidationError(message="Title cannot be empty", field="title")
            form.title = data.title.strip()
        if data.description is not None:
            form.description = data.description.strip()
        if data.blocks is not None:
            form.blocks = json.dumps(data.blocks)
        await db.flush()
        return form

    async def delete_form(self, db: AsyncSession, form_id: UUID, user: User) -> None:
        """
        Responses and assignments go with the form (ON DELETE CASCADE).

        The creator's response_count drops by the number of responses the
        form carried. Quota is not refunded.
        """
        form = await self._get_owned_form(db, form_id, user)
        counted = await db.execute(
            select(func.count()).select_from(FormResponse).where(FormResponse.form_id == form.id)
        )
        removed = counted.scalar_one()

        await db.execute(delete(Form).where(Form.id == form.id))
        if removed:
            owner = await self._lock_user(db, user.id)
            owner.response_count = max(owner.response_count - removed, 0)
        await db.flush()
        logger.info("Form %s deleted by %s (%d responses removed)", form_id, user.id, removed)

    async def list_public_forms(self, db: AsyncSession) -> Sequence[Form]:
        result = await db.execute(
            select(Form)
            .where(or_(Form.is_published.is_(True), Form.privacy == FormPrivacy.PUBLIC))
            .order_by(Form.created_at.desc())
        )
        return result.scalars().all()

    async def list_user_forms(
        self, db: AsyncSession, user: User, favorites_only: bool = False
    ) -> Sequence[Form]:
        query = select(Form).where(Form.user_id == user.id)
        if favorites_only:
            query = query.where(Form.is_favorite.is_(True))
        result = await db.execute(query.order_by(Form.created_at.desc()))
        return result.scalars().all()

    async def toggle_favorite(self, db: AsyncSession, form_id: UUID, user: User) -> Form:
        form = await self._get_owned_form(db, form_id, user)
        form.is_favorite = not form.is_favorite
        await db.flush()
        return form

    async def change_status(
        self, db: AsyncSession, form_id: UUID, user: User, data: ChangeFormStatusRequest
    ) -> Form:
        if data.privacy is None and data.is_published is None:
            raise ValidationError(message="Provide privacy and/or isPublished")

        form = await self._get_owned_form(db, form_id, user)
        if data.privacy is not None:
            form.privacy = data.privacy
        if data.is_published is not None:
            form.is_published = data.is_published
        await db.flush()
        logger.info(
            "Form %s status: privacy=%s published=%s",
            form_id, form.privacy.value, form.is_published,
        )
        return form

    def share_link(self, form: Form) -> str:
        return f"{settings.share_base_url.rstrip('/')}/f/{form.id}"

    # ── Responses ─────────────────────────────────────────────────────────

    async def list_form_responses(
        self, db: AsyncSession, form_id: UUID, user: User
    ) -> Sequence[FormResponse]:
        await self._get_owned_form(db, form_id, user)
        result = await db.execute(
            select(FormResponse)
            .where(FormResponse.form_id == form_id)
            .order_by(FormResponse.submitted_at.desc())
        )
        return result.scalars().all()

    async def list_user_submissions(self, db: AsyncSession, user: User) -> Sequence[FormResponse]:
        result = await db.execute(
            select(FormResponse)
            .where(FormResponse.user_id == user.id)
            .order_by(FormResponse.submitted_at.desc())
        )
        return result.scalars().all()

    async def _authorize_response(
        self, db: AsyncSession, response_id: UUID, user: User
    ) -> tuple:
        """Returns (response, caller_owns_form)."""
        response = await db.get(FormResponse, response_id)
        if response is None:
            raise NotFoundError(resource="response", resource_id=str(response_id))

        form = await self.get_form(db, response.form_id)
        is_owner = form.user_id == user.id
        if not is_owner and response.user_id != user.id:
            raise ForbiddenError(
                message="Only the submitter or the form creator can access this response",
                context={"response_id": str(response_id)},
            )
        return response, is_owner

    async def get_response(self, db: AsyncSession, response_id: UUID, user: User) -> FormResponse:
        response, _ = await self._authorize_response(db, response_id, user)
        return response

    async def update_response(
        self, db: AsyncSession, response_id: UUID, user: User, data: UpdateResponseRequest
    ) -> FormResponse:
        response, _ = await self._authorize_response(db, response_id, user)
        if data.responses is not None:
            response.responses = json.dumps(data.responses, default=str)
        if data.response_title is not None:
            response.response_title = data.response_title
        await db.flush()
        return response

    async def delete_response(self, db: AsyncSession, response_id: UUID, user: User) -> int:
        """
        Delete one response.

        Returns:
            How much the caller's response_count went down (0 or 1).
        """
        return await self.delete_responses(db, [response_id], user)

    async def delete_responses(
        self, db: AsyncSession, response_ids: List[UUID], user: User
    ) -> int:
        """
        Delete several responses, all or nothing.

        Every id must exist and be deletable by the caller, otherwise
        nothing is deleted.

        Returns:
            Number of deleted responses that were on the caller's own forms.
        """
        ids = list(dict.fromkeys(response_ids))
        if not ids:
            raise ValidationError(message="No response ids provided", field="responseIds")

        result = await db.execute(
            select(FormResponse, Form.user_id)
            .join(Form, Form.id == FormResponse.form_id)
            .where(FormResponse.id.in_(ids))
        )
        found: Dict[UUID, tuple] = {row[0].id: (row[0], row[1]) for row in result.all()}

        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise NotFoundError(
                resource="response",
                resource_id=missing[0],
                context={"missing_ids": missing},
            )

        owned = 0
        for response, form_owner_id in found.values():
            if form_owner_id == user.id:
                owned += 1
            elif response.user_id != user.id:
                raise ForbiddenError(
                    message="Only the submitter or the form creator can delete this response",
                    context={"response_id": str(response.id)},
                )

        await db.execute(delete(FormResponse).where(FormResponse.id.in_(ids)))

        if owned:
            owner = await self._lock_user(db, user.id)
            owner.response_count = max(owner.response_count - owned, 0)

        await db.flush()
        logger.info(
            "User %s deleted %d responses (%d on own forms)", user.id, len(ids), owned
        )
        return owned


# ── Singleton Instance ────────────────────────────────────────────────────
form_service = FormService()
