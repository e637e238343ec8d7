"""
FormRelay Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) with
       foreign keys enforced, so ON DELETE CASCADE behaves as in PostgreSQL.
       The Socket.IO emitter is replaced by an AsyncMock for every test.

Fixture Hierarchy (all function-scoped):
    ├── engine: in-memory database with all tables created
    ├── session_factory / db_session: sessions bound to that engine
    ├── notifier: the notification_service singleton with a fresh directory
    │             and a recording emitter (autouse)
    ├── make_user / make_form: row factories
    └── test_client: HTTPX AsyncClient against the FastAPI app, with
                     get_db_session pointed at the test database
"""

import os

# Settings are read at import time; configure them before any formrelay import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SHARE_BASE_URL"] = "https://forms.example.test"

import json
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from formrelay.database import Base, get_db_session
from formrelay.models import Form, FormResponse, Notification, User, UserRole
from formrelay.security import create_access_token, hash_password
from formrelay.services.notification_directory import NotificationDirectory
from formrelay.services.notification_service import notification_service

TEST_PASSWORD = "correct-horse"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Notifications
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def notifier(monkeypatch):
    """
    The shared notification_service with an empty directory and an
    AsyncMock emitter. Register sessions with
    notifier.directory.register(account_id, sid) and inspect
    notifier.emitter.emit.await_args_list.
    """
    monkeypatch.setattr(notification_service, "directory", NotificationDirectory())
    monkeypatch.setattr(notification_service, "emitter", AsyncMock())
    return notification_service


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    async def _make_user(
        name: str = None,
        submission_count: int = 0,
        role: UserRole = UserRole.USER,
        is_activated: bool = True,
        password: str = TEST_PASSWORD,
    ) -> User:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        user = User(
            name=name,
            email=f"{name.lower()}@example.com",
            password_hash=hash_password(password),
            role=role,
            is_activated=is_activated,
            submission_count=submission_count,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_form(db_session):
    async def _make_form(owner: User, title: str = "Customer survey", **fields) -> Form:
        form = Form(
            user_id=owner.id,
            title=title,
            blocks=json.dumps([{"type": "text", "label": "Name"}]),
            **fields,
        )
        db_session.add(form)
        await db_session.commit()
        return form

    return _make_form


async def count_rows(session: AsyncSession, model, *criteria) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


async def count_responses(session: AsyncSession, form_id) -> int:
    return await count_rows(session, FormResponse, FormResponse.form_id == form_id)


async def count_notifications(session: AsyncSession, user_id) -> int:
    return await count_rows(session, Notification, Notification.user_id == user_id)


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient bound to the FastAPI app (not the Socket.IO wrapper).

    Each request gets its own session from the test database, committed on
    success and rolled back on error like get_db_session does.
    """
    from formrelay.main import app

    async def _override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
