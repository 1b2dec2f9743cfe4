from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List

from dashboard.rbac.roles import LegacyRole


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: LegacyRole = LegacyRole.EMPLOYEE
    custom_role_id: Optional[str] = None
    manager_ids: List[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UpdateUserRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    role: Optional[LegacyRole] = None
    custom_role_id: Optional[str] = None
    is_active: Optional[bool] = None


class SetManagersRequest(BaseModel):
    """PUT /users/{id}/managers"""
    manager_ids: List[str] = Field(default_factory=list)
