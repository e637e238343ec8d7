"""
FormRelay Backend — Notification Directory & Dispatcher Tests
===============================================================

What:  Live-session bookkeeping, persist-then-push dispatch, and the inbox.

What we test:
    ✅ register / unregister / lookup, including moving a session between accounts
    ✅ Dispatch writes exactly one row whether or not anyone is online
    ✅ One failing session does not stop delivery to the others
    ✅ A failed insert is never pushed
    ✅ Socket.IO register/disconnect handlers maintain the directory
    ✅ Registered ids are canonical lower-case UUIDs; anything else is ignored
    ✅ Inbox listing, read flags and deletion are scoped to the owner
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from conftest import count_notifications
from formrelay.exceptions import DatabaseError, NotFoundError
from formrelay.models import NotificationType
from formrelay.schemas.notification import NotificationPayload
from formrelay.services.notification_directory import NotificationDirectory
from formrelay.services.notification_service import NotificationService


class TestNotificationDirectory:

    def setup_method(self):
        self.directory = NotificationDirectory()

    def test_lookup_unknown_account_is_empty(self):
        assert self.directory.lookup("nobody") == []
        assert not self.directory.is_online("nobody")

    def test_register_multiple_sessions(self):
        self.directory.register("acct-1", "sid-b")
        self.directory.register("acct-1", "sid-a")
        self.directory.register("acct-2", "sid-c")

        assert self.directory.lookup("acct-1") == ["sid-a", "sid-b"]
        assert self.directory.lookup("acct-2") == ["sid-c"]
        assert self.directory.connection_count == 3

    def test_register_is_idempotent(self):
        self.directory.register("acct-1", "sid-a")
        self.directory.register("acct-1", "sid-a")
        assert self.directory.lookup("acct-1") == ["sid-a"]
        assert self.directory.connection_count == 1

    def test_unregister_last_session_drops_account(self):
        self.directory.register("acct-1", "sid-a")
        self.directory.register("acct-1", "sid-b")

        assert self.directory.unregister("sid-a") == "acct-1"
        assert self.directory.lookup("acct-1") == ["sid-b"]
        assert self.directory.unregister("sid-b") == "acct-1"
        assert not self.directory.is_online("acct-1")

    def test_unregister_unknown_session(self):
        assert self.directory.unregister("never-registered") is None

    def test_reregister_moves_session(self):
        self.directory.register("acct-1", "sid-a")
        self.directory.register("acct-2", "sid-a")

        assert self.directory.lookup("acct-1") == []
        assert self.directory.lookup("acct-2") == ["sid-a"]

    def test_uuid_and_string_ids_are_the_same_account(self):
        account = uuid.uuid4()
        self.directory.register(account, "sid-a")
        assert self.directory.lookup(str(account)) == ["sid-a"]


class TestDispatch:

    def setup_method(self):
        self.directory = NotificationDirectory()
        self.emitter = AsyncMock()
        self.service = NotificationService(directory=self.directory, emitter=self.emitter)
        self.payload = NotificationPayload(
            title="New form assigned",
            message="You have been assigned the form",
            type=NotificationType.FORM_ASSIGNED,
        )

    @pytest.mark.asyncio
    async def test_offline_recipient_still_gets_a_row(self, db_session, make_user):
        user = await make_user()

        notification = await self.service.dispatch(db_session, user.id, self.payload)

        assert notification.user_id == user.id
        assert notification.is_read is False
        assert await count_notifications(db_session, user.id) == 1
        self.emitter.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pushes_to_every_live_session(self, db_session, make_user):
        user = await make_user()
        self.directory.register(str(user.id), "sid-1")
        self.directory.register(str(user.id), "sid-2")

        await self.service.dispatch(db_session, user.id, self.payload)

        assert await count_notifications(db_session, user.id) == 1
        targets = [c.kwargs["to"] for c in self.emitter.emit.await_args_list]
        assert targets == ["sid-1", "sid-2"]
        event, data = self.emitter.emit.await_args_list[0].args
        assert event == "notification"
        assert data == {
            "title": "New form assigned",
            "message": "You have been assigned the form",
            "type": "FORM_ASSIGNED",
        }

    @pytest.mark.asyncio
    async def test_one_failing_session_does_not_block_others(self):
        self.directory.register("acct", "sid-1")
        self.directory.register("acct", "sid-2")
        self.emitter.emit.side_effect = [ConnectionError("socket closed"), None]

        delivered = await self.service.deliver("acct", self.payload)

        assert delivered == 1
        assert self.emitter.emit.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_insert_is_not_pushed(self, db_session, make_user):
        user = await make_user()
        self.directory.register(str(user.id), "sid-1")

        with patch.object(
            db_session, "commit",
            AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full"))),
        ):
            with pytest.raises(DatabaseError):
                await self.service.dispatch(db_session, user.id, self.payload)

        self.emitter.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_form_id_is_camel_cased_in_event(self):
        form_id = uuid.uuid4()
        payload = NotificationPayload(
            title="t", message="m", type=NotificationType.FORM_SUBMITTED, form_id=form_id
        )
        assert payload.to_event()["formId"] == str(form_id)


class TestSocketHandlers:

    @pytest.mark.asyncio
    async def test_register_and_disconnect(self, monkeypatch):
        from formrelay import realtime

        directory = NotificationDirectory()
        monkeypatch.setattr(realtime, "notification_directory", directory)
        monkeypatch.setattr(realtime.sio, "emit", AsyncMock())
        account = str(uuid.uuid4())

        await realtime.register("sid-9", {"userId": account})
        assert directory.lookup(account) == ["sid-9"]
        realtime.sio.emit.assert_awaited_once_with("registered", {"userId": account}, to="sid-9")

        await realtime.disconnect("sid-9")
        assert directory.lookup(account) == []

    @pytest.mark.asyncio
    async def test_register_accepts_plain_string(self, monkeypatch):
        from formrelay import realtime

        directory = NotificationDirectory()
        monkeypatch.setattr(realtime, "notification_directory", directory)
        monkeypatch.setattr(realtime.sio, "emit", AsyncMock())
        account = str(uuid.uuid4())

        await realtime.register("sid-1", account)
        await realtime.register("sid-2", {})

        assert directory.lookup(account) == ["sid-1"]
        assert directory.connection_count == 1

    @pytest.mark.asyncio
    async def test_upper_case_id_reaches_the_same_account(self, monkeypatch):
        from formrelay import realtime

        directory = NotificationDirectory()
        monkeypatch.setattr(realtime, "notification_directory", directory)
        monkeypatch.setattr(realtime.sio, "emit", AsyncMock())
        account = uuid.uuid4()

        await realtime.register("sid-1", {"userId": f"  {str(account).upper()} "})

        assert directory.lookup(account) == ["sid-1"]
        realtime.sio.emit.assert_awaited_once_with(
            "registered", {"userId": str(account)}, to="sid-1"
        )

    @pytest.mark.asyncio
    async def test_register_ignores_non_uuid_ids(self, monkeypatch):
        from formrelay import realtime

        directory = NotificationDirectory()
        monkeypatch.setattr(realtime, "notification_directory", directory)
        monkeypatch.setattr(realtime.sio, "emit", AsyncMock())

        await realtime.register("sid-1", {"userId": "acct-1"})
        await realtime.register("sid-2", "not-a-uuid")

        assert directory.connection_count == 0
        realtime.sio.emit.assert_not_awaited()


class TestInbox:

    @pytest.mark.asyncio
    async def test_list_mark_and_delete(self, db_session, make_user, make_form, notifier):
        user = await make_user()
        other = await make_user()
        form = await make_form(other, title="Onboarding")

        first = await notifier.dispatch(
            db_session, user.id,
            NotificationPayload(title="a", message="first", form_id=form.id),
        )
        await notifier.dispatch(db_session, user.id, NotificationPayload(title="b", message="second"))
        await notifier.dispatch(db_session, other.id, NotificationPayload(title="c", message="other"))

        items, unread = await notifier.list_for_user(db_session, user.id)
        assert len(items) == 2
        assert unread == 2
        by_message = {item.message: item for item in items}
        assert by_message["first"].form_title == "Onboarding"
        assert by_message["second"].form_title is None

        await notifier.mark_read(db_session, user.id, first.id)
        _, unread = await notifier.list_for_user(db_session, user.id)
        assert unread == 1

        assert await notifier.mark_all_read(db_session, user.id) == 1

        with pytest.raises(NotFoundError):
            await notifier.delete(db_session, other.id, first.id)

        await notifier.delete(db_session, user.id, first.id)
        assert await notifier.delete_all(db_session, user.id) == 1
        assert await count_notifications(db_session, other.id) == 1
