from typing import Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, EmailStr
from app.models.user import UserRole


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    name: str
    email: EmailStr


# ---------------------------------------------------------
# READ USER (response)
# ---------------------------------------------------------
class UserRead(UserBase):
    id: UUID
    role: UserRole
    is_verified: bool = False

    faculty_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    level_id: Optional[UUID] = None
    managed_department_id: Optional[UUID] = None

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------
# ADMIN LISTING
# ---------------------------------------------------------
class AdminRead(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: UserRole
    managed_department_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
