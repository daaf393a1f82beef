"""
HasRoleAndPermission mixin for SQLAlchemy user models.

Adds role and permission checks to any mapped class exposing an ``id``:

    class User(Base, TimestampMixin, HasRoleAndPermission):
        __tablename__ = "users"
        id: Mapped[int] = mapped_column(primary_key=True)

    await user.attach_role(admin)
    await user.is_role("admin|moderator")
    await user.can("edit.articles", require_all=True)
    await user.allowed("edit.articles", article)
    await user.is_admin()            # sugar for is_role("admin")
    await user.canManageUsers()      # sugar for can("manage.users")

Every method that may hit the database is a coroutine. The session is the
AsyncSession the instance belongs to. Loaded roles and permissions are
cached on the instance until the next attach/detach of the same kind.
"""
import enum
import functools
import importlib
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, Union

from sqlalchemy import Select, inspect
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncSession, async_object_session

from roleguard.core import config
from roleguard.core.config import RolesConfig
from roleguard.features.roles.exceptions import RolesConfigurationError
from roleguard.features.roles.slugs import (
    identifier_of,
    parse_dynamic_call,
    same_identifier,
    slug_matches,
    split_references,
)
from roleguard.features.roles.store import PermissionStore, RoleStore
from roleguard.utils import get_logger


log = get_logger(__name__)


class Identifiable(Protocol):
    """Anything with a primary key: users, roles, permissions, owned entities."""
    id: Any


Reference = Union[int, str, Identifiable, Iterable[Any]]


class CacheState(enum.Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"


class RelationCache:
    """One lazily loaded collection (roles or permissions) of a single user."""

    def __init__(self) -> None:
        self.state = CacheState.NOT_LOADED
        self._items: list = []

    @property
    def loaded(self) -> bool:
        return self.state is CacheState.LOADED

    @property
    def items(self) -> list:
        return list(self._items)

    def fill(self, items: Iterable[Any]) -> list:
        self._items = list(items)
        self.state = CacheState.LOADED
        return self.items

    def invalidate(self) -> None:
        self._items = []
        self.state = CacheState.NOT_LOADED


def resolve_model(path: str, setting: str) -> type:
    """
    Import the class at dotted *path* and make sure it is a mapped model.

    Raises:
        RolesConfigurationError: if it can't be imported or isn't mapped
    """
    module_name, _, attribute = path.rpartition(".")
    try:
        model = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError, ValueError) as e:
        raise RolesConfigurationError(f"[roles.{setting}] cannot import {path!r}: {e}") from e

    if not isinstance(model, type) or inspect(model, raiseerr=False) is None:
        raise RolesConfigurationError(
            f"[roles.{setting}] must be a mapped SQLAlchemy model, got {path!r}"
        )
    return model


def _entity_type_names(entity: Any) -> set[str]:
    entity_type = type(entity)
    return {f"{entity_type.__module__}.{entity_type.__qualname__}", entity_type.__name__}


class HasRoleAndPermission:
    """
    Role and permission behaviour for a user model.

    The host class must be mapped and satisfy ``Identifiable``.
    """

    # ------------------------------------------------------------------
    # Configuration and plumbing
    # ------------------------------------------------------------------

    @property
    def roles_config(self) -> RolesConfig:
        return getattr(self, "_roles_config", None) or config.ROLES

    def use_roles_config(self, roles_config: RolesConfig) -> "HasRoleAndPermission":
        """Give this instance its own settings instead of ``config.ROLES``."""
        self._roles_config = roles_config
        return self

    def _cache(self, name: str) -> RelationCache:
        cache = getattr(self, name, None)
        if cache is None:
            cache = RelationCache()
            setattr(self, name, cache)
        return cache

    async def _session(self) -> AsyncSession:
        session = async_object_session(self)
        if session is None:
            raise InvalidRequestError(f"{self!r} is not attached to an AsyncSession")
        if self.id is None:
            await session.flush()
        return session

    async def _role_store(self) -> RoleStore:
        role_model = resolve_model(self.roles_config.role_model, "role_model")
        return RoleStore(await self._session(), role_model)

    async def _permission_store(self, permission_model: Optional[type] = None) -> PermissionStore:
        if permission_model is None:
            permission_model = resolve_model(self.roles_config.permission_model, "permission_model")
        role_model = resolve_model(self.roles_config.role_model, "role_model")
        return PermissionStore(await self._session(), permission_model, role_model)

    def _matches(self, reference: Any, model: Any) -> bool:
        return same_identifier(reference, model.id) or slug_matches(
            reference, model.slug, self.roles_config.case_sensitive
        )

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def get_roles(self) -> list:
        """All roles of the user, loaded once and cached."""
        cache = self._cache("_roles_cache")
        if not cache.loaded:
            store = await self._role_store()
            cache.fill(await store.list_for_user(self.id))
            log.debug(f"Loaded {len(cache.items)} roles for user {self.id}")
        return cache.items

    async def is_role(self, role: Reference, require_all: bool = False) -> bool:
        """
        Check if the user has a role or roles.

        *role* is an id, a slug pattern, a model, a ``"a,b|c"`` string or a
        list. With ``require_all`` every role must match, otherwise any one.
        """
        if self.roles_config.pretend_enabled:
            return self.roles_config.pretend("is")
        if require_all:
            return await self.is_all(role)
        return await self.is_one(role)

    async def is_one(self, roles: Reference) -> bool:
        for role in split_references(roles):
            if await self.has_role(role):
                return True
        return False

    async def is_all(self, roles: Reference) -> bool:
        for role in split_references(roles):
            if not await self.has_role(role):
                return False
        return True

    async def has_role(self, role: Any) -> bool:
        held = await self.get_roles()
        return any(self._matches(role, model) for model in held)

    async def attach_role(self, role: Union[int, Identifiable]) -> bool:
        """
        Attach a role unless the user already holds it. Always True.

        Raises:
            TypeError: if *role* is a slug rather than an id or a model
        """
        role_id = identifier_of(role)
        held = await self.get_roles()
        if any(same_identifier(role_id, model.id) for model in held):
            return True

        store = await self._role_store()
        await store.attach(self.id, role_id)
        self._cache("_roles_cache").invalidate()
        log.debug(f"Attached role {role_id} to user {self.id}")
        return True

    async def detach_role(self, role: Union[int, Identifiable]) -> int:
        """Detach a role; returns the number of memberships removed."""
        role_id = identifier_of(role)
        self._cache("_roles_cache").invalidate()
        store = await self._role_store()
        removed = await store.detach(self.id, role_id)
        log.debug(f"Detached role {role_id} from user {self.id} ({removed} removed)")
        return removed

    async def detach_all_roles(self) -> int:
        self._cache("_roles_cache").invalidate()
        store = await self._role_store()
        return await store.detach(self.id)

    async def level(self) -> int:
        """Highest level among the user's roles, 0 without roles."""
        return max((role.level for role in await self.get_roles()), default=0)

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    async def role_permissions(self) -> Select:
        """
        Query for permissions granted through roles.

        Covers the roles the user holds and every role with a level strictly
        below the user's level. Returned unexecuted so callers can refine it.
        """
        permission_model = resolve_model(self.roles_config.permission_model, "permission_model")
        role_ids = [role.id for role in await self.get_roles()]
        store = await self._permission_store(permission_model)
        return store.role_permissions_query(role_ids, await self.level())

    async def user_permissions(self) -> list:
        """Permissions attached directly to the user."""
        store = await self._permission_store()
        return await store.list_for_user(self.id)

    async def get_permissions(self) -> list:
        """Role permissions merged with direct ones, loaded once and cached."""
        cache = self._cache("_permissions_cache")
        if not cache.loaded:
            store = await self._permission_store()
            inherited = await store.fetch(await self.role_permissions())
            merged: dict[Any, Any] = {}
            for permission in [*inherited, *await store.list_for_user(self.id)]:
                merged.setdefault(permission.id, permission)
            cache.fill(merged.values())
            log.debug(f"Loaded {len(merged)} permissions for user {self.id}")
        return cache.items

    async def can(self, permission: Reference, require_all: bool = False) -> bool:
        """Check if the user has a permission or permissions; see ``is_role``."""
        if self.roles_config.pretend_enabled:
            return self.roles_config.pretend("can")
        if require_all:
            return await self.can_all(permission)
        return await self.can_one(permission)

    async def can_one(self, permissions: Reference) -> bool:
        for permission in split_references(permissions):
            if await self.has_permission(permission):
                return True
        return False

    async def can_all(self, permissions: Reference) -> bool:
        for permission in split_references(permissions):
            if not await self.has_permission(permission):
                return False
        return True

    async def has_permission(self, permission: Any) -> bool:
        granted = await self.get_permissions()
        return any(self._matches(permission, model) for model in granted)

    async def allowed(
        self,
        permission: Union[int, str],
        entity: Any,
        owner: bool = True,
        owner_column: str = "user_id",
    ) -> bool:
        """
        Check if the user may act on *entity*.

        Owners pass when ``owner`` is set. Otherwise one of the user's
        permissions must be scoped to the entity's class and match
        *permission* by id or exact slug (no wildcards here).
        """
        if self.roles_config.pretend_enabled:
            return self.roles_config.pretend("allowed")

        if owner is True and same_identifier(getattr(entity, owner_column, None), self.id):
            return True

        return await self._is_allowed(permission, entity)

    async def _is_allowed(self, permission: Union[int, str], entity: Any) -> bool:
        names = _entity_type_names(entity)
        for granted in await self.get_permissions():
            if granted.model and granted.model in names and (
                same_identifier(permission, granted.id) or granted.slug == permission
            ):
                return True
        return False

    async def attach_permission(self, permission: Union[int, Identifiable]) -> bool:
        """Grant a permission directly unless it is already effective. Always True."""
        permission_id = identifier_of(permission)
        granted = await self.get_permissions()
        if any(same_identifier(permission_id, model.id) for model in granted):
            return True

        store = await self._permission_store()
        await store.attach(self.id, permission_id)
        self._cache("_permissions_cache").invalidate()
        log.debug(f"Attached permission {permission_id} to user {self.id}")
        return True

    async def detach_permission(self, permission: Union[int, Identifiable]) -> int:
        """Remove a direct grant; returns the number of grants removed."""
        permission_id = identifier_of(permission)
        self._cache("_permissions_cache").invalidate()
        store = await self._permission_store()
        return await store.detach(self.id, permission_id)

    async def detach_all_permissions(self) -> int:
        self._cache("_permissions_cache").invalidate()
        store = await self._permission_store()
        return await store.detach(self.id)

    # ------------------------------------------------------------------
    # Sugar methods: is_editor(), canManageUsers(), allowed_edit_article(entity)
    # ------------------------------------------------------------------

    def resolve_dynamic(self, name: str) -> Optional[Callable[..., Awaitable[bool]]]:
        """
        Map a sugar method name onto is_role / can / allowed.

        Returns None when *name* is not a sugar call.
        """
        parsed = parse_dynamic_call(name, self.roles_config.separator)
        if parsed is None:
            return None

        prefix, slug = parsed
        if prefix == "is":
            return functools.partial(self.is_role, slug)
        if prefix == "can":
            return functools.partial(self.can, slug)
        return functools.partial(self.allowed, slug)

    def __getattr__(self, name: str) -> Any:
        if not name.startswith("_"):
            method = self.resolve_dynamic(name)
            if method is not None:
                return method

        fallback = getattr(super(), "__getattr__", None)
        if fallback is not None:
            return fallback(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
