# app/models/system_audit.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from datetime import datetime

from app.core.timeutils import utcnow

class SystemAuditLog(SQLModel, table=True):
    __tablename__ = "system_audit_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Who did it
    actor_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    actor_role: Optional[str] = None

    # What kind of event (e.g., "ROLE_CHANGED", "DEPARTMENT_CREATED")
    event_type: str = Field(index=True)

    # What resource was affected (e.g., "User", "Department")
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None

    old_values: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    new_values: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    # Outcome (e.g., "SUCCESS", "FAILURE")
    status: str = Field(default="SUCCESS")

    timestamp: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
