"""
Route guards for role, permission and level checks.

Usage:
    @router.delete("/articles/{article_id}")
    async def delete_article(
        article_id: int,
        user: User = Depends(require_permission("delete.articles"))
    ):
        ...

Failed checks raise AccessDeniedError subclasses, which the application
renders as 403 responses.
"""
from typing import Any, List, Union
from fastapi import Depends

from roleguard.features.roles.exceptions import (
    LevelDeniedError,
    PermissionDeniedError,
    RoleDeniedError,
)
from roleguard.features.users.dependencies import get_current_user
from roleguard.features.users.models import User
from roleguard.utils import get_logger


log = get_logger(__name__)


def _describe(references: Union[str, List[Any]]) -> str:
    if isinstance(references, str):
        return references
    return ", ".join(str(reference) for reference in references)


def require_role(roles: Union[str, List[Any]], require_all: bool = False):
    """
    FastAPI dependency requiring one (or every) role of *roles*.

    Raises:
        RoleDeniedError: if the check fails
    """
    async def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if not await current_user.is_role(roles, require_all):
            log.info(f"Role denied: user={current_user.id} roles={_describe(roles)} all={require_all}")
            raise RoleDeniedError(_describe(roles))
        return current_user

    return role_dependency


def require_permission(permissions: Union[str, List[Any]], require_all: bool = False):
    """
    FastAPI dependency requiring one (or every) permission of *permissions*.

    Raises:
        PermissionDeniedError: if the check fails
    """
    async def permission_dependency(current_user: User = Depends(get_current_user)) -> User:
        if not await current_user.can(permissions, require_all):
            log.info(
                f"Permission denied: user={current_user.id} permissions={_describe(permissions)} all={require_all}"
            )
            raise PermissionDeniedError(_describe(permissions))
        return current_user

    return permission_dependency


def require_level(level: int):
    """
    FastAPI dependency requiring the caller's role level to be at least *level*.

    Raises:
        LevelDeniedError: if the check fails
    """
    async def level_dependency(current_user: User = Depends(get_current_user)) -> User:
        if await current_user.level() < level:
            log.info(f"Level denied: user={current_user.id} required={level}")
            raise LevelDeniedError(level)
        return current_user

    return level_dependency
