"""
Pydantic schemas for the user access routes.
"""
from typing import List
from pydantic import BaseModel

from roleguard.features.roles.schemas import PermissionResponse, RoleResponse


class AccessResponse(BaseModel):
    """Everything the caller is entitled to."""
    user_id: int
    level: int
    roles: List[RoleResponse]
    permissions: List[PermissionResponse]


class AttachResponse(BaseModel):
    user_id: int
    attached: bool


class DetachResponse(BaseModel):
    user_id: int
    removed: int
