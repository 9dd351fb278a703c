from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.core.authorization import Scope
from app.models.channel import ChannelVisibility
from app.schemas.post import AuthorSummary


# ---------------------------------------------------------
# CHANNELS
# ---------------------------------------------------------
class ChannelCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(default="", max_length=500)
    visibility: ChannelVisibility = ChannelVisibility.Public

    # Either pass the ids, or just a scope and let the creator's own
    # faculty/level fill them in.
    scope: Optional[Scope] = None
    faculty_id: Optional[UUID] = None
    level_id: Optional[UUID] = None


class ChannelRead(BaseModel):
    id: UUID
    name: str
    description: str
    visibility: str
    scope: Scope
    faculty_id: Optional[UUID] = None
    level_id: Optional[UUID] = None
    created_by: Optional[AuthorSummary] = None
    created_at: datetime

    member_count: int = 0
    message_count: int = 0
    is_member: bool = False
    member_role: Optional[str] = None


class ChannelListResponse(BaseModel):
    channels: List[ChannelRead]
    total: int


class MembershipRead(BaseModel):
    channel_id: UUID
    role: str
    joined_at: datetime


class AutoJoinResponse(BaseModel):
    joined_count: int
    channel_ids: List[UUID] = []


# ---------------------------------------------------------
# MESSAGES
# ---------------------------------------------------------
class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class MessageRead(BaseModel):
    id: UUID
    channel_id: UUID
    content: str
    created_at: datetime
    author: Optional[AuthorSummary] = None


class MessagePagination(BaseModel):
    current_page: int
    total_pages: int
    total_messages: int
    has_more: bool


class MessageListResponse(BaseModel):
    messages: List[MessageRead]
    pagination: MessagePagination
