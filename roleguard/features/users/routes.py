"""
User feature routes: the caller's own access summary and admin endpoints
for assigning roles and direct permissions.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roleguard.core.database.engine import get_db
from roleguard.features.roles.dependencies import require_role
from roleguard.features.roles.models import Permission, Role
from roleguard.features.roles.schemas import PermissionResponse, RoleResponse
from roleguard.features.users.dependencies import get_current_user
from roleguard.features.users.models import User
from roleguard.features.users.schemas import AccessResponse, AttachResponse, DetachResponse
from roleguard.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["users"])

# Role required for managing other users' roles and permissions
ADMIN_ROLE = "admin"


async def _get_or_404(db: AsyncSession, model, object_id: int, label: str):
    result = await db.execute(select(model).where(model.id == object_id))
    instance = result.scalar_one_or_none()
    if instance is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return instance


@router.get("/me/access", response_model=AccessResponse)
async def get_current_user_access(
    user: Annotated[User, Depends(get_current_user)]
):
    """Roles, effective permissions and level of the current user."""
    return AccessResponse(
        user_id=user.id,
        level=await user.level(),
        roles=[RoleResponse.model_validate(role) for role in await user.get_roles()],
        permissions=[PermissionResponse.model_validate(p) for p in await user.get_permissions()],
    )


# ============================================================================
# Role Assignment Routes
# ============================================================================

@router.put("/{user_id}/roles/{role_id}", response_model=AttachResponse)
async def attach_role(
    user_id: int,
    role_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_role(ADMIN_ROLE))]
):
    """Give a user a role (admin only). Attaching a held role is a no-op."""
    user = await _get_or_404(db, User, user_id, "User")
    role = await _get_or_404(db, Role, role_id, "Role")
    attached = await user.attach_role(role)
    log.info(f"User {admin.id} attached role {role.slug} to user {user.id}")
    return AttachResponse(user_id=user.id, attached=attached)


@router.delete("/{user_id}/roles/{role_id}", response_model=DetachResponse)
async def detach_role(
    user_id: int,
    role_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_role(ADMIN_ROLE))]
):
    """Take a role away from a user (admin only)."""
    user = await _get_or_404(db, User, user_id, "User")
    removed = await user.detach_role(role_id)
    log.info(f"User {admin.id} detached role {role_id} from user {user.id}")
    return DetachResponse(user_id=user.id, removed=removed)


@router.delete("/{user_id}/roles", response_model=DetachResponse)
async def detach_all_roles(
    user_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_role(ADMIN_ROLE))]
):
    """Remove every role of a user (admin only)."""
    user = await _get_or_404(db, User, user_id, "User")
    removed = await user.detach_all_roles()
    log.info(f"User {admin.id} detached all roles from user {user.id}")
    return DetachResponse(user_id=user.id, removed=removed)


# ============================================================================
# Direct Permission Routes
# ============================================================================

@router.put("/{user_id}/permissions/{permission_id}", response_model=AttachResponse)
async def attach_permission(
    user_id: int,
    permission_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_role(ADMIN_ROLE))]
):
    """Grant a permission directly to a user (admin only)."""
    user = await _get_or_404(db, User, user_id, "User")
    permission = await _get_or_404(db, Permission, permission_id, "Permission")
    attached = await user.attach_permission(permission)
    log.info(f"User {admin.id} granted permission {permission.slug} to user {user.id}")
    return AttachResponse(user_id=user.id, attached=attached)


@router.delete("/{user_id}/permissions/{permission_id}", response_model=DetachResponse)
async def detach_permission(
    user_id: int,
    permission_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(require_role(ADMIN_ROLE))]
):
    """Revoke a direct permission grant (admin only)."""
    user = await _get_or_404(db, User, user_id, "User")
    removed = await user.detach_permission(permission_id)
    log.info(f"User {admin.id} revoked permission {permission_id} from user {user.id}")
    return DetachResponse(user_id=user.id, removed=removed)
