"""
Client schemas: the marketing accounts whose reports the dashboard shows.
"""

from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
from enum import Enum
import re


class ClientTypeEnum(str, Enum):
    MAUTIC = "mautic"
    DROPCOWBOY = "dropcowboy"
    VICIDIAL = "vicidial"
    GENERAL = "general"


def _clean_phone(v):
    if v:
        cleaned = re.sub(r"[\s\-\(\)]", "", v)
        if not cleaned.replace("+", "").isdigit():
            raise ValueError("Invalid phone number")
        return cleaned
    return v


class CreateClientRequest(BaseModel):
    """POST /clients"""
    name: str = Field(..., min_length=2, max_length=255)
    client_type: ClientTypeEnum = ClientTypeEnum.GENERAL
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=1000)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=2000)
    is_active: bool = True

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _clean_phone(v)


class UpdateClientRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    client_type: Optional[ClientTypeEnum] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _clean_phone(v)


class AssignUsersRequest(BaseModel):
    """POST /clients/{id}/assign and /unassign"""
    user_ids: List[str] = Field(..., min_length=1)
