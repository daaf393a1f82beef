"""
Seed script to populate default roles and permissions.

Run this script after configuring DATABASE_URL to create:
- Default permissions
- Default roles (admin, moderator, user) with their levels
- Role-permission assignments

Lower level roles' permissions cascade up, so each role below only lists
what it adds over the roles beneath it.

Usage:
    python -m scripts.seed_roles
"""
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roleguard.core.database.engine import get_db, init_db
from roleguard.features.roles.models import Permission, Role
from roleguard.utils import get_logger


log = get_logger(__name__)


# (slug, name, model, description)
DEFAULT_PERMISSIONS = [
    ("view.articles", "View articles", None, "Read published articles"),
    ("create.articles", "Create articles", None, "Write new articles"),
    ("edit.articles", "Edit articles", "Article", "Edit any article"),
    ("delete.articles", "Delete articles", "Article", "Delete any article"),
    ("manage.users", "Manage users", None, "Assign roles and permissions"),
    ("view.audit", "View audit trail", None, "Read the audit trail"),
]


DEFAULT_ROLES = {
    "admin": {
        "name": "Admin",
        "description": "Full access",
        "level": 5,
        "permissions": ["manage.users", "view.audit"],
    },
    "moderator": {
        "name": "Moderator",
        "description": "Edits and removes content",
        "level": 2,
        "permissions": ["edit.articles", "delete.articles"],
    },
    "user": {
        "name": "User",
        "description": "Regular member",
        "level": 1,
        "permissions": ["view.articles", "create.articles"],
    },
}


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """
    Create default permissions.

    Returns:
        Dictionary mapping permission slugs to Permission objects
    """
    log.info("Creating default permissions...")
    permissions_map = {}

    for slug, name, model, description in DEFAULT_PERMISSIONS:
        result = await db.execute(select(Permission).where(Permission.slug == slug))
        existing = result.scalars().first()

        if existing:
            log.debug(f"Permission '{slug}' already exists, skipping")
            permissions_map[slug] = existing
            continue

        permission = Permission(slug=slug, name=name, model=model, description=description)
        db.add(permission)
        permissions_map[slug] = permission
        log.info(f"Created permission: {slug}")

    await db.flush()
    log.info(f"Seeded {len(permissions_map)} permissions")
    return permissions_map


async def seed_roles(db: AsyncSession, permissions_map: dict[str, Permission]):
    """
    Create default roles and assign permissions.

    Args:
        db: Database session
        permissions_map: Dictionary of permission slug -> Permission object
    """
    log.info("Creating default roles...")

    for slug, role_config in DEFAULT_ROLES.items():
        result = await db.execute(select(Role).where(Role.slug == slug))
        if result.scalars().first():
            log.debug(f"Role '{slug}' already exists, skipping")
            continue

        role_permissions = []
        for permission_slug in role_config["permissions"]:
            if permission_slug in permissions_map:
                role_permissions.append(permissions_map[permission_slug])
            else:
                log.warning(f"Permission '{permission_slug}' not found for role '{slug}'")

        role = Role(
            slug=slug,
            name=role_config["name"],
            description=role_config["description"],
            level=role_config["level"],
            permissions=role_permissions,
        )
        db.add(role)
        log.info(f"Created role '{slug}' (level {role.level}) with {len(role_permissions)} permissions")

    await db.flush()
    log.info("Default roles created successfully")


async def main():
    """Main function to seed roles and permissions."""
    log.info("Starting role seeding...")
    await init_db()

    async for db in get_db():
        try:
            permissions_map = await seed_permissions(db)
            await seed_roles(db, permissions_map)
            await db.commit()
            log.info("Role seeding completed successfully!")
        except Exception as e:
            log.error(f"Error seeding roles: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
