# app/models/post.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Text, UniqueConstraint
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from app.core.timeutils import utcnow


class PostPriority(str, Enum):
    Low = "low"
    Normal = "normal"
    High = "high"
    Urgent = "urgent"


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    author_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    title: str
    content: str = Field(sa_column=Column(Text, nullable=False))
    category: str = Field(default="General")
    priority: str = Field(default=PostPriority.Normal.value)
    image_url: Optional[str] = None

    # Scope: both null = global, faculty only = faculty, level set = level.
    # Fixed at creation time.
    faculty_id: Optional[uuid.UUID] = Field(default=None, foreign_key="faculties.id", index=True)
    level_id: Optional[uuid.UUID] = Field(default=None, foreign_key="levels.id", index=True)

    is_pinned: bool = Field(default=False)
    is_published: bool = Field(default=True)
    views_count: int = Field(default=0)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")
    parent_id: Optional[uuid.UUID] = Field(default=None, foreign_key="comments.id")
    content: str = Field(sa_column=Column(Text, nullable=False))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class PostLike(SQLModel, table=True):
    __tablename__ = "post_likes"
    __table_args__ = (UniqueConstraint("post_id", "user_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class PostRepost(SQLModel, table=True):
    __tablename__ = "post_reposts"
    __table_args__ = (UniqueConstraint("post_id", "user_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    post_id: uuid.UUID = Field(foreign_key="posts.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class CommentLike(SQLModel, table=True):
    __tablename__ = "comment_likes"
    __table_args__ = (UniqueConstraint("comment_id", "user_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    comment_id: uuid.UUID = Field(foreign_key="comments.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
