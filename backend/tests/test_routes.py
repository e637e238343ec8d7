"""
FormRelay Backend — HTTP Route Tests
======================================

What:  Status codes, error bodies and camelCase payloads as clients see them.
How:   HTTPX AsyncClient against the FastAPI app with the test database.

What we test:
    ✅ /health reports the database and live connection count
    ✅ Single submit: 201, then 403 once the creator's quota is spent
    ✅ Bulk submit: 201 with a throttle message, 400 for bad input
    ✅ Admin quota top-up: 200, 400 for bad deltas, 403 for non-admins
    ✅ Missing or bad bearer token: 401
    ✅ Login, share links, inbox, response multi-delete
"""

import uuid

import pytest

from conftest import TEST_PASSWORD, auth_headers
from formrelay.config import settings
from formrelay.models import UserRole

API = settings.api_prefix


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert "live_connections" in body


class TestAuth:

    @pytest.mark.asyncio
    async def test_login(self, test_client, make_user):
        user = await make_user(name="Login")

        response = await test_client.post(
            f"{API}/users/login", json={"email": "LOGIN@example.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token"]
        assert body["user"]["id"] == str(user.id)
        assert body["user"]["isActivated"] is True
        assert "submission_count" in body["user"]

    @pytest.mark.asyncio
    async def test_bad_password(self, test_client, make_user):
        await make_user(name="Login")
        response = await test_client.post(
            f"{API}/users/login", json={"email": "login@example.com", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_deactivated_login_forbidden(self, test_client, make_user):
        await make_user(name="Sleeper", is_activated=False)
        response = await test_client.post(
            f"{API}/users/login", json={"email": "sleeper@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_and_bad_tokens(self, test_client):
        response = await test_client.get(f"{API}/users/me")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "unauthorized"

        response = await test_client.get(
            f"{API}/users/me", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401


class TestSubmissionRoutes:

    @pytest.mark.asyncio
    async def test_submit_until_quota_runs_out(self, test_client, make_user, make_form):
        owner = await make_user(submission_count=1)
        submitter = await make_user()
        form = await make_form(owner)

        first = await test_client.post(
            f"{API}/form/{form.id}/submit",
            json={"responses": {"q1": "yes"}, "responseTitle": "Mine"},
            headers=auth_headers(submitter),
        )
        assert first.status_code == 201
        assert first.json()["response"]["responses"] == {"q1": "yes"}
        assert first.json()["response"]["responseTitle"] == "Mine"

        second = await test_client.post(
            f"{API}/form/{form.id}/submit",
            json={"responses": {"q1": "again"}},
            headers=auth_headers(submitter),
        )
        assert second.status_code == 403
        assert second.json()["error"] == "forbidden"

        counts = await test_client.get(f"{API}/users/submission-count", headers=auth_headers(owner))
        assert counts.json()["data"] == {"submission_count": 0, "response_count": 1}

    @pytest.mark.asyncio
    async def test_submit_to_missing_form(self, test_client, make_user):
        user = await make_user()
        response = await test_client.post(
            f"{API}/form/{uuid.uuid4()}/submit", json={"responses": {}}, headers=auth_headers(user)
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bulk_partial_admission(self, test_client, make_user, make_form):
        owner = await make_user(submission_count=2)
        submitter = await make_user()
        form = await make_form(owner)
        submissions = [{"responses": {"n": i}} for i in range(5)]

        response = await test_client.post(
            f"{API}/form/{form.id}/submit/bulk",
            json={"submissions": submissions},
            headers=auth_headers(submitter),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["processed"] == 2
        assert body["requested"] == 5
        assert body["unprocessed"] == 3
        assert body["remainingQuota"] == 0
        assert body["message"].startswith("Processed 2 of 5 submissions.")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"submissions": []}, {"submissions": "nope"}])
    async def test_bulk_bad_input(self, test_client, make_user, make_form, payload):
        owner = await make_user(submission_count=2)
        form = await make_form(owner)

        response = await test_client.post(
            f"{API}/form/{form.id}/submit/bulk", json=payload, headers=auth_headers(owner)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestAdminRoutes:

    @pytest.mark.asyncio
    async def test_quota_top_up(self, test_client, make_user):
        admin = await make_user(role=UserRole.ADMIN)
        user = await make_user(submission_count=1)

        response = await test_client.patch(
            f"{API}/admin/update-submission-count",
            json={"userId": str(user.id), "submission_count": 4},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["user"]["submission_count"] == 5

        inbox = await test_client.get(f"{API}/notification", headers=auth_headers(user))
        notifications = inbox.json()["notifications"]
        assert [n["type"] for n in notifications] == ["COUNT_INCREASED"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("delta", [-1, 2.5, "abc"])
    async def test_quota_top_up_rejects_bad_delta(self, test_client, make_user, delta):
        admin = await make_user(role=UserRole.ADMIN)
        user = await make_user()

        response = await test_client.patch(
            f"{API}/admin/update-submission-count",
            json={"userId": str(user.id), "submission_count": delta},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid submission count value"

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, test_client, make_user):
        user = await make_user(submission_count=1)
        response = await test_client.patch(
            f"{API}/admin/update-submission-count",
            json={"userId": str(user.id), "submission_count": 100},
            headers=auth_headers(user),
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"


class TestFormRoutes:

    @pytest.mark.asyncio
    async def test_create_and_share(self, test_client, make_user):
        owner = await make_user()

        created = await test_client.post(
            f"{API}/form/create",
            json={"title": "Feedback", "blocks": [{"type": "rating"}], "isPublished": True},
            headers=auth_headers(owner),
        )
        assert created.status_code == 201
        form = created.json()["form"]
        assert form["blocks"] == [{"type": "rating"}]

        shared = await test_client.get(
            f"{API}/form/share/{form['id']}", headers=auth_headers(owner)
        )
        assert shared.json()["data"]["shareUrl"] == f"https://forms.example.test/f/{form['id']}"

        public = await test_client.get(f"{API}/form/all")
        assert [f["id"] for f in public.json()["forms"]] == [form["id"]]

    @pytest.mark.asyncio
    async def test_stranger_cannot_edit(self, test_client, make_user, make_form):
        owner = await make_user()
        stranger = await make_user()
        form = await make_form(owner)

        response = await test_client.put(
            f"{API}/form/{form.id}", json={"title": "Hijacked"}, headers=auth_headers(stranger)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_many_responses(self, test_client, make_user, make_form):
        owner = await make_user(submission_count=3)
        form = await make_form(owner)
        ids = []
        for i in range(3):
            created = await test_client.post(
                f"{API}/form/{form.id}/submit",
                json={"responses": {"n": i}},
                headers=auth_headers(owner),
            )
            ids.append(created.json()["response"]["id"])

        response = await test_client.request(
            "DELETE",
            f"{API}/form/responses",
            json={"responseIds": ids[:2]},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["deleted"] == 2
        counts = await test_client.get(f"{API}/users/submission-count", headers=auth_headers(owner))
        assert counts.json()["data"]["response_count"] == 1


class TestNotificationRoutes:

    @pytest.mark.asyncio
    async def test_assign_then_read_inbox(self, test_client, make_user, make_form):
        owner = await make_user()
        assignee = await make_user()
        form = await make_form(owner, title="Audit")

        assigned = await test_client.post(
            f"{API}/form/assign",
            json={"userId": str(assignee.id), "formId": str(form.id)},
            headers=auth_headers(owner),
        )
        assert assigned.status_code == 201

        again = await test_client.post(
            f"{API}/form/assign",
            json={"userId": str(assignee.id), "formId": str(form.id)},
            headers=auth_headers(owner),
        )
        assert again.status_code == 409

        inbox = await test_client.get(f"{API}/notification", headers=auth_headers(assignee))
        body = inbox.json()
        assert body["count"] == 1
        assert body["unread"] == 1
        notification = body["notifications"][0]
        assert notification["formTitle"] == "Audit"

        read = await test_client.patch(
            f"{API}/notification/{notification['id']}/read", headers=auth_headers(assignee)
        )
        assert read.status_code == 200

        missing = await test_client.delete(
            f"{API}/notification/{notification['id']}", headers=auth_headers(owner)
        )
        assert missing.status_code == 404
