"""Shared fixtures for roleguard tests."""

from __future__ import annotations

from types import SimpleNamespace

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from roleguard.core.database.base import Base
from roleguard.core.database.engine import get_db
from roleguard.features.roles.models import Permission, Role
from roleguard.features.users.models import User
from roleguard.main import app, limiter

from tests.helpers import session_override


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh file-backed SQLite database for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'roles.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(db):
    """
    admin (5): manage.users
    moderator (2): edit.articles, delete.articles (both scoped to Article)
    user (1): view.articles, create.articles
    view.audit belongs to no role.
    """
    permissions = {
        slug: Permission(slug=slug, name=slug.replace(".", " ").title(), model=model)
        for slug, model in [
            ("view.articles", None),
            ("create.articles", None),
            ("edit.articles", "Article"),
            ("delete.articles", "Article"),
            ("manage.users", None),
            ("view.audit", None),
        ]
    }
    roles = {
        "admin": Role(slug="admin", name="Admin", level=5, permissions=[permissions["manage.users"]]),
        "moderator": Role(
            slug="moderator",
            name="Moderator",
            level=2,
            permissions=[permissions["edit.articles"], permissions["delete.articles"]],
        ),
        "user": Role(
            slug="user",
            name="User",
            level=1,
            permissions=[permissions["view.articles"], permissions["create.articles"]],
        ),
    }
    db.add_all([*permissions.values(), *roles.values()])
    await db.flush()
    return SimpleNamespace(roles=roles, permissions=permissions)


@pytest_asyncio.fixture
async def make_user(db):
    """Factory creating a persisted user holding the given roles."""
    counter = iter(range(1, 10_000))

    async def _make(*roles: Role) -> User:
        n = next(counter)
        user = User(email=f"user{n}@example.com", name=f"User {n}")
        db.add(user)
        await db.flush()
        for role in roles:
            await user.attach_role(role)
        return user

    return _make


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP test client wired to the per-test database."""

    app.dependency_overrides[get_db] = session_override(session_factory)
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

