from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.core.authorization import Scope
from app.models.post import PostPriority


# ---------------------------------------------------------
# POSTS
# ---------------------------------------------------------
class PostCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    content: str = Field(..., min_length=10, max_length=10000)
    category: str = Field(default="General", max_length=50)
    priority: PostPriority = PostPriority.Normal
    image_url: Optional[str] = None
    is_pinned: bool = False

    faculty_id: Optional[UUID] = None
    level_id: Optional[UUID] = None


class PostUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    content: Optional[str] = Field(default=None, min_length=10, max_length=10000)
    category: Optional[str] = Field(default=None, max_length=50)
    priority: Optional[PostPriority] = None
    image_url: Optional[str] = None
    is_pinned: Optional[bool] = None


class AuthorSummary(BaseModel):
    id: UUID
    name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class PostRead(BaseModel):
    id: UUID
    title: str
    content: str
    category: str
    priority: str
    image_url: Optional[str] = None
    scope: Scope
    faculty_id: Optional[UUID] = None
    level_id: Optional[UUID] = None
    is_pinned: bool
    views_count: int
    created_at: datetime
    updated_at: datetime

    author: Optional[AuthorSummary] = None
    likes_count: int = 0
    comments_count: int = 0
    reposts_count: int = 0
    is_liked: bool = False
    is_reposted: bool = False


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_posts: int
    has_more: bool


class PostListResponse(BaseModel):
    posts: List[PostRead]
    pagination: Pagination


# ---------------------------------------------------------
# COMMENTS
# ---------------------------------------------------------
class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    parent_id: Optional[UUID] = None


class CommentRead(BaseModel):
    id: UUID
    post_id: UUID
    parent_id: Optional[UUID] = None
    content: str
    created_at: datetime
    author: Optional[AuthorSummary] = None
    likes_count: int = 0
    is_liked: bool = False
    replies: List["CommentRead"] = []


class PostDetail(PostRead):
    comments: List[CommentRead] = []


class LikeToggleResponse(BaseModel):
    is_liked: bool
    likes_count: int


class RepostToggleResponse(BaseModel):
    is_reposted: bool
    reposts_count: int


CommentRead.model_rebuild()
