# app/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime, String, Text
from sqlalchemy import Enum as SAEnum
from datetime import datetime
import uuid
from enum import Enum
from typing import Optional

from app.core.timeutils import utcnow


class UserRole(str, Enum):
    User = "user"
    DeptAdmin = "d_admin"      # restricted to one managed department
    Admin = "admin"
    Power = "power"            # top-level administrator

    @classmethod
    def parse(cls, raw) -> Optional["UserRole"]:
        """
        Accepts enum members or raw strings, case-insensitive, including the
        legacy spellings ('d-admin', 'power_admin') still found in old data.
        Returns None for anything unrecognised.
        """
        if isinstance(raw, cls):
            return raw
        if raw is None:
            return None
        key = str(raw).strip().lower().replace("-", "_")
        return _ROLE_ALIASES.get(key)


_ROLE_ALIASES = {
    "user": UserRole.User,
    "d_admin": UserRole.DeptAdmin,
    "dadmin": UserRole.DeptAdmin,
    "admin": UserRole.Admin,
    "power": UserRole.Power,
    "power_admin": UserRole.Power,
}

ADMIN_ROLES = frozenset({UserRole.Admin, UserRole.Power})


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    name: str = Field(nullable=False)
    email: str = Field(nullable=False, index=True, unique=True)
    password_hash: str = Field(nullable=False)

    role: UserRole = Field(
        default=UserRole.User,
        sa_column=Column(
            SAEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
            nullable=False,
        ),
    )
    is_verified: bool = Field(default=False)

    # --- Academic affiliation (kept consistent: level -> department -> faculty) ---
    faculty_id: Optional[uuid.UUID] = Field(default=None, foreign_key="faculties.id")
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id")
    level_id: Optional[uuid.UUID] = Field(default=None, foreign_key="levels.id")

    # only meaningful for d_admin
    managed_department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id")

    # --- Email verification ---
    otp_code: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    otp_expires_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    # --- Forgot password ---
    reset_token: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    reset_expires_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    # --- Profile ---
    bio: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    phone: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None
    profile_image: Optional[str] = None

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
