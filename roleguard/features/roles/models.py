"""
Role and Permission models plus the pivot tables linking them to users.

- roles: named privilege bundles with a numeric level (higher = more privileged)
- permissions: named capabilities, optionally scoped to a model class
- role_user / permission_user / permission_role: timestamped pivots
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, Table, Column, Text, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from roleguard.core import config
from roleguard.core.database.base import Base, TimestampMixin
from roleguard.features.roles.slugs import slugify


# ============================================================================
# Association Tables for Many-to-Many Relationships
# ============================================================================

role_user = Table(
    "role_user",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=datetime.now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=datetime.now, onupdate=datetime.now),
)

# Direct grants, on top of whatever the user's roles provide
permission_user = Table(
    "permission_user",
    Base.metadata,
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=datetime.now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=datetime.now, onupdate=datetime.now),
)

permission_role = Table(
    "permission_role",
    Base.metadata,
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=datetime.now),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=datetime.now, onupdate=datetime.now),
)


# ============================================================================
# Core Models
# ============================================================================

class Role(Base, TimestampMixin):
    """
    Role model for grouping permissions.

    Permissions of a role cascade to every role with a strictly higher level.
    Examples: admin (5), moderator (2), user (1)
    """
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        secondary=permission_role,
        back_populates="roles",
        lazy="selectin"
    )

    @validates("slug")
    def _normalize_slug(self, _key: str, value: str) -> str:
        return slugify(value, config.ROLES.separator)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, slug={self.slug!r}, level={self.level})>"


class Permission(Base, TimestampMixin):
    """
    Permission model.

    ``model`` names the class of entity the permission governs (either its
    dotted path or bare class name). Empty means not entity scoped.
    Examples: edit.articles, delete.users (model="Article")
    """
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary=permission_role,
        back_populates="permissions",
        lazy="selectin"
    )

    @validates("slug")
    def _normalize_slug(self, _key: str, value: str) -> str:
        return slugify(value, config.ROLES.separator)

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, slug={self.slug!r}, model={self.model})>"
