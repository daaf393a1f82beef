"""
Pydantic schemas for roles and permissions.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class RoleResponse(BaseModel):
    """Schema for role response."""
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    level: int = Field(..., description="Higher level roles inherit permissions of lower ones")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PermissionResponse(BaseModel):
    """Schema for permission response."""
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    model: Optional[str] = Field(None, description="Entity class the permission is scoped to")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
