"""
FormRelay Backend — User & Template Service Tests
===================================================

What we test:
    ✅ Password changes require the current password and a new value
    ✅ User search is case-insensitive and never returns the caller
    ✅ Bootstrap admin is created once
    ✅ Templates: default category, author summary, owner-only edits
"""

import uuid

import pytest

from conftest import TEST_PASSWORD, count_rows
from formrelay.config import settings
from formrelay.exceptions import NotFoundError, ValidationError
from formrelay.models import Template, User, UserRole
from formrelay.schemas.template import CreateTemplateRequest, UpdateTemplateRequest
from formrelay.schemas.user import ChangePasswordRequest
from formrelay.security import verify_password
from formrelay.services.template_service import TemplateService
from formrelay.services.user_service import UserService


class TestUserService:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_change_password(self, db_session, make_user):
        user = await make_user()

        with pytest.raises(ValidationError):
            await self.service.change_password(
                db_session, user,
                ChangePasswordRequest(old_password="wrong-one", new_password="brand-new"),
            )
        with pytest.raises(ValidationError):
            await self.service.change_password(
                db_session, user,
                ChangePasswordRequest(old_password=TEST_PASSWORD, new_password=TEST_PASSWORD),
            )

        await self.service.change_password(
            db_session, user,
            ChangePasswordRequest(old_password=TEST_PASSWORD, new_password="brand-new"),
        )
        assert verify_password("brand-new", user.password_hash)

    @pytest.mark.asyncio
    async def test_search_excludes_caller(self, db_session, make_user):
        me = await make_user(name="Morgan")
        await make_user(name="Morgana")
        await make_user(name="Riley")

        found = await self.service.search(db_session, me, "MORG")
        assert [u.name for u in found] == ["Morgana"]
        assert await self.service.search(db_session, me, "   ") == []

    @pytest.mark.asyncio
    async def test_bootstrap_admin_created_once(self, db_session, monkeypatch):
        monkeypatch.setattr(settings, "bootstrap_admin_email", "Root@Example.com")
        monkeypatch.setattr(settings, "bootstrap_admin_password", "root-pass")

        await self.service.ensure_bootstrap_admin(db_session)
        await self.service.ensure_bootstrap_admin(db_session)

        admin = await self.service.get_by_email(db_session, "root@example.com")
        assert admin.role == UserRole.ADMIN
        assert await count_rows(db_session, User) == 1


class TestTemplateService:

    def setup_method(self):
        self.service = TemplateService()

    @pytest.mark.asyncio
    async def test_create_and_list_with_author(self, db_session, make_user):
        author = await make_user(name="Author")

        template = await self.service.create(
            db_session, author, CreateTemplateRequest(title=" Intake ", blocks=[{"type": "text"}])
        )
        await db_session.commit()

        assert template.title == "Intake"
        assert template.category == "GENERAL"

        listed = await self.service.list_all(db_session)
        assert len(listed) == 1
        assert listed[0].created_by.name == "Author"
        assert listed[0].blocks == [{"type": "text"}]

    @pytest.mark.asyncio
    async def test_only_author_may_edit_or_delete(self, db_session, make_user):
        author = await make_user()
        other = await make_user()
        template = await self.service.create(
            db_session, author, CreateTemplateRequest(title="Intake", blocks=[])
        )

        with pytest.raises(NotFoundError):
            await self.service.update(
                db_session, template.id, other, UpdateTemplateRequest(title="Mine now")
            )
        with pytest.raises(NotFoundError):
            await self.service.delete(db_session, template.id, other)

        updated = await self.service.update(
            db_session, template.id, author, UpdateTemplateRequest(category="HR")
        )
        assert updated.category == "HR"

        await self.service.delete(db_session, template.id, author)
        assert await count_rows(db_session, Template) == 0

    @pytest.mark.asyncio
    async def test_missing_template(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get(db_session, uuid.uuid4())
