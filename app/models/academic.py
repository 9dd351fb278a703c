from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, DateTime, Text, UniqueConstraint
from datetime import datetime
from typing import Optional, List
import uuid

from app.core.timeutils import utcnow

# ------------------------------------------------------------
# 1. FACULTY (e.g., Faculty of Science)
# ------------------------------------------------------------
class Faculty(SQLModel, table=True):
    __tablename__ = "faculties"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True)
    code: str = Field(unique=True, index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    is_active: bool = Field(default=True)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    departments: List["Department"] = Relationship(back_populates="faculty")

# ------------------------------------------------------------
# 2. DEPARTMENT (e.g., Computer Science)
# ------------------------------------------------------------
class Department(SQLModel, table=True):
    __tablename__ = "departments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True)
    code: str = Field(unique=True, index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    faculty_id: uuid.UUID = Field(foreign_key="faculties.id", index=True)
    is_active: bool = Field(default=True)
    created_by_id: Optional[uuid.UUID] = None

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    faculty: Optional[Faculty] = Relationship(back_populates="departments")
    levels: List["Level"] = Relationship(back_populates="department")

# ------------------------------------------------------------
# 3. LEVEL (year cohort within a department, e.g., "200 Level")
# ------------------------------------------------------------
LEVEL_NUMBERS = (100, 200, 300, 400, 500)


class Level(SQLModel, table=True):
    __tablename__ = "levels"
    __table_args__ = (UniqueConstraint("department_id", "level_number"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    department_id: uuid.UUID = Field(foreign_key="departments.id", index=True)
    level_number: int
    display_name: str
    is_active: bool = Field(default=True)

    department: Optional[Department] = Relationship(back_populates="levels")
