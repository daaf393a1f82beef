"""Entities and helpers shared by the test modules."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from roleguard.features.roles.models import permission_user, role_user
from roleguard.features.users.auth import create_access_token
from roleguard.features.users.models import User


@dataclass
class Article:
    """Plain owned entity used for entity scoped checks."""

    id: int
    user_id: int
    author_id: int | None = None


@dataclass
class Comment:
    id: int
    user_id: int


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


async def count_role_rows(db: AsyncSession, user: User) -> int:
    stmt = select(func.count()).select_from(role_user).where(role_user.c.user_id == user.id)
    return (await db.execute(stmt)).scalar_one()


async def count_permission_rows(db: AsyncSession, user: User) -> int:
    stmt = select(func.count()).select_from(permission_user).where(permission_user.c.user_id == user.id)
    return (await db.execute(stmt)).scalar_one()


def session_override(session_factory):
    """Replacement for ``get_db`` bound to the per-test database."""

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return _get_db
