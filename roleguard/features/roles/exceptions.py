"""
Errors raised by the roles feature.
"""


class RolesConfigurationError(TypeError):
    """A configured role or permission model is not a mapped SQLAlchemy class."""


class AccessDeniedError(Exception):
    """Base class for failed guard checks; rendered as HTTP 403."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class RoleDeniedError(AccessDeniedError):
    def __init__(self, role: str):
        super().__init__(f"You don't have a required ['{role}'] role.")
        self.role = role


class PermissionDeniedError(AccessDeniedError):
    def __init__(self, permission: str):
        super().__init__(f"You don't have a required ['{permission}'] permission.")
        self.permission = permission


class LevelDeniedError(AccessDeniedError):
    def __init__(self, level: int):
        super().__init__(f"You don't have a required [{level}] level.")
        self.level = level
