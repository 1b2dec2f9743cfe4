"""
Custom role schemas.

``permissions`` is accepted in either form (module -> list of actions, or
module -> {action: bool}) and stored sanitized in mapping form.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional


class CreateRoleRequest(BaseModel):
    """POST /roles"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    full_access: bool = False
    is_team_manager: bool = False
    permissions: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Role name is required")
        return v


class UpdateRoleRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    full_access: Optional[bool] = None
    is_team_manager: Optional[bool] = None
    permissions: Optional[dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Role name cannot be blank")
        return v
