"""Tests for the HTTP surface: authentication, guards and assignment routes."""

from __future__ import annotations

import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from roleguard.core.database.engine import get_db
from roleguard.features.roles.dependencies import require_level, require_permission, require_role
from roleguard.features.roles.exceptions import AccessDeniedError
from roleguard.features.users.auth import create_access_token
from roleguard.features.users.models import User
from roleguard.main import access_denied_handler

from tests.helpers import auth_headers, session_override


@pytest_asyncio.fixture
async def people(db, catalog, make_user):
    """An admin, a moderator and a plain user, committed for the app's sessions."""
    admin = await make_user(catalog.roles["admin"])
    moderator = await make_user(catalog.roles["moderator"])
    member = await make_user(catalog.roles["user"])
    await db.commit()
    return {"admin": admin, "moderator": moderator, "user": member}


# Small app exercising the guards directly
guard_app = FastAPI()
guard_app.add_exception_handler(AccessDeniedError, access_denied_handler)


@guard_app.get("/_test/moderators")
async def _moderators_only(user: User = Depends(require_role("moderator|admin"))):
    return {"user_id": user.id}


@guard_app.get("/_test/editors")
async def _editors_only(user: User = Depends(require_permission(["edit.articles", "view.articles"], True))):
    return {"user_id": user.id}


@guard_app.get("/_test/level")
async def _level_two(user: User = Depends(require_level(2))):
    return {"user_id": user.id}


@pytest_asyncio.fixture
async def guard_client(session_factory):
    guard_app.dependency_overrides[get_db] = session_override(session_factory)
    transport = ASGITransport(app=guard_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    guard_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestAuthentication:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    async def test_missing_token(self, client):
        resp = await client.get("/users/me/access")
        assert resp.status_code in (401, 403)

    async def test_invalid_token(self, client):
        resp = await client.get("/users/me/access", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    async def test_unknown_user(self, client, people):
        headers = {"Authorization": f"Bearer {create_access_token(424242)}"}
        resp = await client.get("/users/me/access", headers=headers)
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# /users/me/access
# ---------------------------------------------------------------------------


class TestMyAccess:
    async def test_admin(self, client, people):
        resp = await client.get("/users/me/access", headers=auth_headers(people["admin"]))
        assert resp.status_code == 200
        data = resp.json()
        assert data["level"] == 5
        assert [role["slug"] for role in data["roles"]] == ["admin"]
        assert {p["slug"] for p in data["permissions"]} == {
            "manage.users",
            "edit.articles",
            "delete.articles",
            "view.articles",
            "create.articles",
        }

    async def test_plain_user(self, client, people):
        resp = await client.get("/users/me/access", headers=auth_headers(people["user"]))
        data = resp.json()
        assert data["level"] == 1
        assert {p["slug"] for p in data["permissions"]} == {"view.articles", "create.articles"}


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class TestGuards:
    @pytest.mark.parametrize(
        "who,path,expected",
        [
            ("admin", "/_test/moderators", 200),
            ("moderator", "/_test/moderators", 200),
            ("user", "/_test/moderators", 403),
            ("moderator", "/_test/editors", 200),
            ("user", "/_test/editors", 403),
            ("moderator", "/_test/level", 200),
            ("user", "/_test/level", 403),
        ],
    )
    async def test_guard(self, guard_client, people, who, path, expected):
        resp = await guard_client.get(path, headers=auth_headers(people[who]))
        assert resp.status_code == expected

    async def test_denied_body(self, guard_client, people):
        resp = await guard_client.get("/_test/level", headers=auth_headers(people["user"]))
        assert resp.json()["error"] == "LevelDeniedError"

        resp = await guard_client.get("/_test/editors", headers=auth_headers(people["user"]))
        assert resp.json()["error"] == "PermissionDeniedError"
        assert "edit.articles" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Assignment routes
# ---------------------------------------------------------------------------


class TestRoleAssignment:
    async def test_requires_admin(self, client, catalog, people):
        url = f"/users/{people['user'].id}/roles/{catalog.roles['moderator'].id}"
        resp = await client.put(url, headers=auth_headers(people["moderator"]))
        assert resp.status_code == 403
        assert resp.json()["error"] == "RoleDeniedError"

    async def test_attach_and_detach(self, client, catalog, people):
        member = people["user"]
        url = f"/users/{member.id}/roles/{catalog.roles['moderator'].id}"

        resp = await client.put(url, headers=auth_headers(people["admin"]))
        assert resp.status_code == 200
        assert resp.json() == {"user_id": member.id, "attached": True}

        resp = await client.get("/users/me/access", headers=auth_headers(member))
        assert resp.json()["level"] == 2

        resp = await client.delete(url, headers=auth_headers(people["admin"]))
        assert resp.json() == {"user_id": member.id, "removed": 1}

        resp = await client.delete(url, headers=auth_headers(people["admin"]))
        assert resp.json() == {"user_id": member.id, "removed": 0}

    async def test_detach_all(self, client, people):
        member = people["user"]
        resp = await client.delete(f"/users/{member.id}/roles", headers=auth_headers(people["admin"]))
        assert resp.json() == {"user_id": member.id, "removed": 1}

        resp = await client.get("/users/me/access", headers=auth_headers(member))
        assert resp.json()["roles"] == []

    async def test_unknown_role(self, client, people):
        resp = await client.put(f"/users/{people['user'].id}/roles/9999", headers=auth_headers(people["admin"]))
        assert resp.status_code == 404


class TestPermissionAssignment:
    async def test_attach_and_detach(self, client, catalog, people):
        member = people["user"]
        url = f"/users/{member.id}/permissions/{catalog.permissions['view.audit'].id}"

        resp = await client.put(url, headers=auth_headers(people["admin"]))
        assert resp.json() == {"user_id": member.id, "attached": True}

        resp = await client.get("/users/me/access", headers=auth_headers(member))
        assert "view.audit" in {p["slug"] for p in resp.json()["permissions"]}

        resp = await client.delete(url, headers=auth_headers(people["admin"]))
        assert resp.json() == {"user_id": member.id, "removed": 1}

    async def test_unknown_user(self, client, catalog, people):
        url = f"/users/9999/permissions/{catalog.permissions['view.audit'].id}"
        resp = await client.put(url, headers=auth_headers(people["admin"]))
        assert resp.status_code == 404
