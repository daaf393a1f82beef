"""
User model carrying the role and permission mixin.
"""
from datetime import datetime
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from roleguard.core.database.base import Base, TimestampMixin
from roleguard.features.roles.mixins import HasRoleAndPermission


class User(Base, TimestampMixin, HasRoleAndPermission):
    """
    User model representing authenticated users.

    Roles and permissions live in the role_user / permission_user pivots and
    are reached through the HasRoleAndPermission methods, e.g.
    ``await user.is_role("admin")``.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
