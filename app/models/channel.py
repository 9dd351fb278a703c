# app/models/channel.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Text, UniqueConstraint
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from app.core.timeutils import utcnow


class ChannelVisibility(str, Enum):
    Public = "public"
    Private = "private"


class ChannelMemberRole(str, Enum):
    Member = "member"
    Admin = "admin"


class Channel(SQLModel, table=True):
    __tablename__ = "channels"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    visibility: str = Field(default=ChannelVisibility.Public.value)

    # Same scope shape as posts, fixed at creation time.
    faculty_id: Optional[uuid.UUID] = Field(default=None, foreign_key="faculties.id", index=True)
    level_id: Optional[uuid.UUID] = Field(default=None, foreign_key="levels.id", index=True)

    created_by_id: uuid.UUID = Field(foreign_key="users.id")
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class ChannelMember(SQLModel, table=True):
    __tablename__ = "channel_members"
    __table_args__ = (UniqueConstraint("channel_id", "user_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    channel_id: uuid.UUID = Field(foreign_key="channels.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    role: str = Field(default=ChannelMemberRole.Member.value)
    is_active: bool = Field(default=True)

    joined_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class ChannelMessage(SQLModel, table=True):
    __tablename__ = "channel_messages"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    channel_id: uuid.UUID = Field(foreign_key="channels.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")
    content: str = Field(sa_column=Column(Text, nullable=False))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
