"""
FormRelay Backend — Assignment Service Tests
==============================================

What we test:
    ✅ Assigning creates one Assignment row and one FORM_ASSIGNED notification
    ✅ The assignee's live sessions receive the push after commit
    ✅ A repeat assignment is a Conflict and adds no rows
    ✅ Only the creator or an admin may assign
    ✅ Assignee and assigned-form listings
"""

import uuid

import pytest

from conftest import count_notifications, count_rows
from formrelay.exceptions import ConflictError, ForbiddenError, NotFoundError
from formrelay.models import Assignment, UserRole
from formrelay.services.assignment_service import AssignmentService


class TestAssign:

    def setup_method(self):
        self.service = AssignmentService()

    @pytest.mark.asyncio
    async def test_assign_creates_row_and_notification(
        self, db_session, make_user, make_form, notifier
    ):
        owner = await make_user()
        assignee = await make_user()
        form = await make_form(owner, title="Safety checklist")
        notifier.directory.register(str(assignee.id), "sid-assignee")

        assignment = await self.service.assign(db_session, owner, assignee.id, form.id)

        assert assignment.user_id == assignee.id
        assert await count_rows(db_session, Assignment) == 1
        assert await count_notifications(db_session, assignee.id) == 1
        event, data = notifier.emitter.emit.await_args.args
        assert event == "notification"
        assert data["type"] == "FORM_ASSIGNED"
        assert data["formId"] == str(form.id)
        assert "Safety checklist" in data["message"]

    @pytest.mark.asyncio
    async def test_duplicate_assignment_conflicts(self, db_session, make_user, make_form):
        owner = await make_user()
        assignee = await make_user()
        form = await make_form(owner)
        assignee_id, form_id = assignee.id, form.id
        await self.service.assign(db_session, owner, assignee_id, form_id)

        with pytest.raises(ConflictError):
            await self.service.assign(db_session, owner, assignee_id, form_id)

        assert await count_rows(db_session, Assignment) == 1
        assert await count_notifications(db_session, assignee_id) == 1

    @pytest.mark.asyncio
    async def test_stranger_cannot_assign(self, db_session, make_user, make_form):
        owner = await make_user()
        stranger = await make_user()
        form = await make_form(owner)

        with pytest.raises(ForbiddenError):
            await self.service.assign(db_session, stranger, stranger.id, form.id)

    @pytest.mark.asyncio
    async def test_admin_can_assign_any_form(self, db_session, make_user, make_form):
        owner = await make_user()
        admin = await make_user(role=UserRole.ADMIN)
        assignee = await make_user()
        form = await make_form(owner)

        await self.service.assign(db_session, admin, assignee.id, form.id)
        assert await count_rows(db_session, Assignment) == 1

    @pytest.mark.asyncio
    async def test_unknown_user_or_form(self, db_session, make_user, make_form):
        owner = await make_user()
        form = await make_form(owner)
        owner_id, form_id = owner.id, form.id

        with pytest.raises(NotFoundError):
            await self.service.assign(db_session, owner, uuid.uuid4(), form_id)
        with pytest.raises(NotFoundError):
            await self.service.assign(db_session, owner, owner_id, uuid.uuid4())


class TestListings:

    @pytest.mark.asyncio
    async def test_assignees_and_assigned_forms(self, db_session, make_user, make_form):
        service = AssignmentService()
        owner = await make_user()
        alice = await make_user(name="Alice")
        bob = await make_user(name="Bob")
        form_a = await make_form(owner, title="A")
        form_b = await make_form(owner, title="B")

        await service.assign(db_session, owner, alice.id, form_a.id)
        await service.assign(db_session, owner, bob.id, form_a.id)
        await service.assign(db_session, owner, alice.id, form_b.id)

        assignees = await service.list_assignees(db_session, form_a.id)
        assert {u.name for u in assignees} == {"Alice", "Bob"}

        forms = await service.list_assigned_forms(db_session, alice)
        assert {f.title for f in forms} == {"A", "B"}
