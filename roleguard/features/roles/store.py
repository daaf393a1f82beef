"""Persistence helpers for user role memberships and permission grants."""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Select, delete, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from roleguard.features.roles.models import permission_role, permission_user, role_user


class RoleStore:
    """Reads and writes the role_user pivot for one role model binding."""

    def __init__(self, session: AsyncSession, role_model: type) -> None:
        self._session = session
        self._role_model = role_model

    async def list_for_user(self, user_id: Any) -> list:
        role_model = self._role_model
        stmt = (
            select(role_model)
            .join(role_user, role_user.c.role_id == role_model.id)
            .where(role_user.c.user_id == user_id)
            .order_by(role_model.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def attach(self, user_id: Any, role_id: Any) -> None:
        now = datetime.now()
        await self._session.execute(
            insert(role_user).values(user_id=user_id, role_id=role_id, created_at=now, updated_at=now)
        )

    async def detach(self, user_id: Any, role_id: Optional[Any] = None) -> int:
        """Remove one membership, or all of them when *role_id* is None."""
        stmt = delete(role_user).where(role_user.c.user_id == user_id)
        if role_id is not None:
            stmt = stmt.where(role_user.c.role_id == role_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0


class PermissionStore:
    """Direct user grants plus the permissions reachable through roles."""

    def __init__(self, session: AsyncSession, permission_model: type, role_model: type) -> None:
        self._session = session
        self._permission_model = permission_model
        self._role_model = role_model

    def role_permissions_query(self, role_ids: list, level: int) -> Select:
        """
        Permissions of the given roles, plus those of every role whose level
        is strictly below *level*. Deduplicated, not yet executed.
        """
        permission_model = self._permission_model
        role_model = self._role_model
        return (
            select(permission_model)
            .join(permission_role, permission_role.c.permission_id == permission_model.id)
            .join(role_model, role_model.id == permission_role.c.role_id)
            .where(or_(role_model.id.in_(role_ids), role_model.level < level))
            .distinct()
            .order_by(permission_model.id)
        )

    async def fetch(self, stmt: Select) -> list:
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(self, user_id: Any) -> list:
        permission_model = self._permission_model
        stmt = (
            select(permission_model)
            .join(permission_user, permission_user.c.permission_id == permission_model.id)
            .where(permission_user.c.user_id == user_id)
            .order_by(permission_model.id)
        )
        return await self.fetch(stmt)

    async def attach(self, user_id: Any, permission_id: Any) -> None:
        now = datetime.now()
        await self._session.execute(
            insert(permission_user).values(
                user_id=user_id, permission_id=permission_id, created_at=now, updated_at=now
            )
        )

    async def detach(self, user_id: Any, permission_id: Optional[Any] = None) -> int:
        """Remove one direct grant, or all of them when *permission_id* is None."""
        stmt = delete(permission_user).where(permission_user.c.user_id == user_id)
        if permission_id is not None:
            stmt = stmt.where(permission_user.c.permission_id == permission_id)
        result = await self._session.execute(stmt)
        return result.rowcount or 0
