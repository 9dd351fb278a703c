from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.models.academic import LEVEL_NUMBERS
from app.models.user import UserRole


# --- FACULTY ---
class FacultyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    code: str = Field(..., min_length=2, max_length=20)
    description: Optional[str] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class FacultyRead(BaseModel):
    id: UUID
    name: str
    code: str
    description: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


# --- LEVEL ---
class LevelRead(BaseModel):
    id: UUID
    department_id: UUID
    level_number: int
    display_name: str
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


# --- DEPARTMENT ---
class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    code: str = Field(..., min_length=2, max_length=20)
    faculty_id: UUID
    description: Optional[str] = None
    levels: Optional[List[int]] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("levels")
    @classmethod
    def known_levels(cls, v):
        if v is None:
            return v
        bad = [n for n in v if n not in LEVEL_NUMBERS]
        if bad:
            raise ValueError(f"levels must be chosen from {list(LEVEL_NUMBERS)}")
        return sorted(set(v))


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=150)
    code: Optional[str] = Field(default=None, min_length=2, max_length=20)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, v):
        return v.strip().upper() if v else v


class DepartmentRead(BaseModel):
    id: UUID
    name: str
    code: str
    description: Optional[str] = None
    faculty_id: UUID
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DepartmentWithLevels(DepartmentRead):
    faculty_name: Optional[str] = None
    levels: List[LevelRead] = []


# --- CONTEXT (current user's affiliation) ---
class AcademicContext(BaseModel):
    faculty: Optional[FacultyRead] = None
    department: Optional[DepartmentRead] = None
    level: Optional[LevelRead] = None
    has_academic_profile: bool = False


# --- DEPARTMENT MEMBERS (admin view) ---
class DepartmentMember(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    level_id: Optional[UUID] = None
    level_number: Optional[int] = None


class DepartmentMembers(BaseModel):
    department: str
    level: Optional[int] = None
    users: List[DepartmentMember] = []
    count: int = 0
