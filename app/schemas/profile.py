from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from uuid import UUID
from datetime import datetime

from app.models.user import UserRole


class ProfileRead(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    is_verified: bool

    bio: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None
    profile_image: Optional[str] = None

    faculty_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    level_id: Optional[UUID] = None
    managed_department_id: Optional[UUID] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    # level_id drives the whole affiliation; department/faculty are derived
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=30)
    gender: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    country: Optional[str] = Field(default=None, max_length=80)
    profile_image: Optional[str] = None
    level_id: Optional[UUID] = None
