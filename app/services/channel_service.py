# app/services/channel_service.py

from sqlmodel import select
from sqlalchemy import and_, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger
from typing import Optional
import math
import uuid

from app.core.authorization import AuthorizationEngine, Scope, ScopeRef
from app.core.exceptions import NotFoundError
from app.models.channel import Channel, ChannelMember, ChannelMessage, ChannelMemberRole, ChannelVisibility
from app.models.user import ADMIN_ROLES, User, UserRole
from app.schemas.channel import (
    ChannelCreate,
    ChannelRead,
    MembershipRead,
    AutoJoinResponse,
    MessageCreate,
    MessageRead,
    MessageListResponse,
    MessagePagination,
)
from app.schemas.post import AuthorSummary
from app.services.academic_service import ensure_scope_exists
from app.services.post_service import author_summaries

MAX_MESSAGE_PAGE = 100


def scope_of(channel: Channel) -> ScopeRef:
    return ScopeRef(faculty_id=channel.faculty_id, level_id=channel.level_id)


# ============================================================================
# SERIALIZATION
# ============================================================================
async def build_channel_reads(
    session: AsyncSession,
    channels: list[Channel],
    viewer: Optional[User],
) -> list[ChannelRead]:
    if not channels:
        return []

    ids = [c.id for c in channels]
    authors = await author_summaries(session, [c.created_by_id for c in channels])

    members = dict((await session.execute(
        select(ChannelMember.channel_id, func.count(ChannelMember.id))
        .where(ChannelMember.channel_id.in_(ids), ChannelMember.is_active == True)  # noqa: E712
        .group_by(ChannelMember.channel_id)
    )).all())
    messages = dict((await session.execute(
        select(ChannelMessage.channel_id, func.count(ChannelMessage.id))
        .where(ChannelMessage.channel_id.in_(ids))
        .group_by(ChannelMessage.channel_id)
    )).all())

    mine = {}
    if viewer is not None:
        mine = dict((await session.execute(
            select(ChannelMember.channel_id, ChannelMember.role).where(
                ChannelMember.channel_id.in_(ids),
                ChannelMember.user_id == viewer.id,
                ChannelMember.is_active == True,  # noqa: E712
            )
        )).all())

    return [
        ChannelRead(
            id=c.id,
            name=c.name,
            description=c.description,
            visibility=c.visibility,
            scope=scope_of(c).scope,
            faculty_id=c.faculty_id,
            level_id=c.level_id,
            created_by=authors.get(c.created_by_id),
            created_at=c.created_at,
            member_count=members.get(c.id, 0),
            message_count=messages.get(c.id, 0),
            is_member=c.id in mine,
            member_role=mine.get(c.id),
        )
        for c in channels
    ]


# ============================================================================
# CREATE
# ============================================================================
def resolve_target(creator: User, data: ChannelCreate) -> ScopeRef:
    """
    Explicit ids win. A bare ``scope`` is filled in from the creator's own
    academic profile.
    """
    target = ScopeRef(faculty_id=data.faculty_id, level_id=data.level_id)
    if data.scope is None:
        return target

    if data.faculty_id is None and data.level_id is None:
        if data.scope == Scope.Faculty:
            if creator.faculty_id is None:
                raise ValueError("Your profile has no faculty to attach this channel to")
            target = ScopeRef(faculty_id=creator.faculty_id)
        elif data.scope == Scope.Level:
            if creator.level_id is None:
                raise ValueError("Your profile has no level to attach this channel to")
            target = ScopeRef(level_id=creator.level_id)

    if target.scope != data.scope:
        raise ValueError(f"Scope '{data.scope.value}' does not match the ids given")
    return target


async def create_channel(
    session: AsyncSession,
    creator: User,
    target: ScopeRef,
    data: ChannelCreate,
) -> ChannelRead:
    await ensure_scope_exists(session, target)

    channel = Channel(
        name=data.name.strip(),
        description=data.description.strip(),
        visibility=data.visibility.value,
        faculty_id=target.faculty_id,
        level_id=target.level_id,
        created_by_id=creator.id,
    )
    session.add(channel)
    await session.flush()

    session.add(ChannelMember(
        channel_id=channel.id,
        user_id=creator.id,
        role=ChannelMemberRole.Admin.value,
    ))
    await session.commit()
    await session.refresh(channel)

    logger.info(f"Channel {channel.id} created by {creator.email} | scope={target.scope.value}")
    return (await build_channel_reads(session, [channel], creator))[0]


# ============================================================================
# LOOKUPS & LISTINGS
# ============================================================================
async def get_channel(session: AsyncSession, channel_id: uuid.UUID) -> Channel:
    channel = await session.get(Channel, channel_id)
    if not channel:
        raise NotFoundError("Channel not found")
    return channel


async def get_membership(session: AsyncSession, channel_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ChannelMember]:
    result = await session.execute(
        select(ChannelMember).where(
            ChannelMember.channel_id == channel_id, ChannelMember.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def is_active_member(session: AsyncSession, channel_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    membership = await get_membership(session, channel_id, user_id)
    return membership is not None and membership.is_active


async def list_channels(
    session: AsyncSession,
    viewer: User,
    engine: AuthorizationEngine,
) -> list[ChannelRead]:
    """
    Every channel the viewer's scope allows. Private channels only show up
    for their members and for admins.
    """
    result = await session.execute(select(Channel).order_by(Channel.created_at.desc()))
    channels = result.scalars().all()

    joined = set((await session.execute(
        select(ChannelMember.channel_id).where(
            ChannelMember.user_id == viewer.id, ChannelMember.is_active == True  # noqa: E712
        )
    )).scalars().all())
    is_admin = UserRole.parse(viewer.role) in ADMIN_ROLES

    visible = []
    for channel in channels:
        if channel.visibility == ChannelVisibility.Private.value and not (is_admin or channel.id in joined):
            continue
        if (await engine.can_view(viewer, scope_of(channel))).allowed:
            visible.append(channel)

    return await build_channel_reads(session, visible, viewer)


async def list_my_channels(session: AsyncSession, user: User) -> list[ChannelRead]:
    result = await session.execute(
        select(Channel)
        .join(ChannelMember, ChannelMember.channel_id == Channel.id)
        .where(ChannelMember.user_id == user.id, ChannelMember.is_active == True)  # noqa: E712
        .order_by(ChannelMember.joined_at.desc())
    )
    return await build_channel_reads(session, result.scalars().all(), user)


def _profile_match(user: User, include_global: bool):
    """Public channels whose scope matches the user's own faculty or level."""
    matches = []
    if include_global:
        matches.append(and_(Channel.faculty_id.is_(None), Channel.level_id.is_(None)))
    if user.faculty_id is not None:
        matches.append(and_(Channel.faculty_id == user.faculty_id, Channel.level_id.is_(None)))
    if user.level_id is not None:
        matches.append(Channel.level_id == user.level_id)
    return matches


def _not_joined(user: User):
    return Channel.id.not_in(
        select(ChannelMember.channel_id).where(ChannelMember.user_id == user.id)
    )


async def recommended_channels(session: AsyncSession, user: User) -> list[ChannelRead]:
    matches = _profile_match(user, include_global=False)
    if not matches:
        return []

    result = await session.execute(
        select(Channel)
        .where(Channel.visibility == ChannelVisibility.Public.value, or_(*matches), _not_joined(user))
        .order_by(Channel.created_at.desc())
    )
    return await build_channel_reads(session, result.scalars().all(), user)


# ============================================================================
# MEMBERSHIP
# ============================================================================
async def auto_join(session: AsyncSession, user: User) -> AutoJoinResponse:
    """
    Subscribes the user to every public channel matching their profile:
    global channels, their faculty's channels and their level's channels.
    """
    result = await session.execute(
        select(Channel.id).where(
            Channel.visibility == ChannelVisibility.Public.value,
            or_(*_profile_match(user, include_global=True)),
            _not_joined(user),
        )
    )
    channel_ids = list(result.scalars().all())

    for channel_id in channel_ids:
        session.add(ChannelMember(channel_id=channel_id, user_id=user.id))
    await session.commit()

    logger.info(f"{user.email} auto-joined {len(channel_ids)} channels")
    return AutoJoinResponse(joined_count=len(channel_ids), channel_ids=channel_ids)


async def join_channel(session: AsyncSession, channel: Channel, user: User) -> MembershipRead:
    membership = await get_membership(session, channel.id, user.id)
    if membership is not None and membership.is_active:
        raise ValueError("Already a member of this channel")

    if membership is None:
        membership = ChannelMember(channel_id=channel.id, user_id=user.id)
    else:
        membership.is_active = True

    session.add(membership)
    await session.commit()
    await session.refresh(membership)

    logger.info(f"{user.email} joined channel {channel.id}")
    return MembershipRead(channel_id=membership.channel_id, role=membership.role, joined_at=membership.joined_at)


async def leave_channel(session: AsyncSession, channel: Channel, user: User) -> None:
    membership = await get_membership(session, channel.id, user.id)
    if membership is None:
        raise NotFoundError("Not a member of this channel")

    await session.delete(membership)
    await session.commit()
    logger.info(f"{user.email} left channel {channel.id}")


# ============================================================================
# MESSAGES
# ============================================================================
async def send_message(session: AsyncSession, channel: Channel, user: User, data: MessageCreate) -> MessageRead:
    content = data.content.strip()
    if not content:
        raise ValueError("Message content is required")

    message = ChannelMessage(channel_id=channel.id, user_id=user.id, content=content)
    session.add(message)
    await session.commit()
    await session.refresh(message)

    return MessageRead(
        id=message.id,
        channel_id=message.channel_id,
        content=message.content,
        created_at=message.created_at,
        author=AuthorSummary(id=user.id, name=user.name, role=user.role.value),
    )


async def list_messages(
    session: AsyncSession,
    channel_id: uuid.UUID,
    page: int = 1,
    limit: int = 50,
) -> MessageListResponse:
    """Newest page first; messages inside a page run oldest to newest."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_MESSAGE_PAGE)

    total = (await session.execute(
        select(func.count(ChannelMessage.id)).where(ChannelMessage.channel_id == channel_id)
    )).scalar_one()

    result = await session.execute(
        select(ChannelMessage)
        .where(ChannelMessage.channel_id == channel_id)
        .order_by(ChannelMessage.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    messages = list(reversed(result.scalars().all()))
    authors = await author_summaries(session, [m.user_id for m in messages])

    total_pages = math.ceil(total / limit) if total else 0
    return MessageListResponse(
        messages=[
            MessageRead(
                id=m.id,
                channel_id=m.channel_id,
                content=m.content,
                created_at=m.created_at,
                author=authors.get(m.user_id),
            )
            for m in messages
        ],
        pagination=MessagePagination(
            current_page=page,
            total_pages=total_pages,
            total_messages=total,
            has_more=page < total_pages,
        ),
    )
