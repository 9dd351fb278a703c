# app/api/endpoints/channels.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api.deps import get_db_session, get_current_user, get_authorization_engine
from app.core.authorization import AuthorizationEngine, validate_scope
from app.core.exceptions import NotFoundError
from app.core.rbac import ensure_allowed
from app.models.channel import Channel, ChannelVisibility
from app.models.user import ADMIN_ROLES, User, UserRole
from app.schemas.channel import (
    ChannelCreate,
    ChannelRead,
    ChannelListResponse,
    MembershipRead,
    AutoJoinResponse,
    MessageCreate,
    MessageRead,
    MessageListResponse,
)
from app.services import channel_service

router = APIRouter(prefix="/api/channels", tags=["Channels"])


def _is_admin(user: User) -> bool:
    return UserRole.parse(user.role) in ADMIN_ROLES


async def _load_channel(session: AsyncSession, channel_id: UUID) -> Channel:
    try:
        return await channel_service.get_channel(session, channel_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# -------------------------------------------------------------------
# CREATE & LIST
# -------------------------------------------------------------------
@router.post("", response_model=ChannelRead, status_code=status.HTTP_201_CREATED)
async def create_channel(
    data: ChannelCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    ensure_allowed(validate_scope(data.faculty_id, data.level_id))

    try:
        target = channel_service.resolve_target(current_user, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    ensure_allowed(await engine.can_create(current_user, target))

    try:
        return await channel_service.create_channel(session, current_user, target, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("", response_model=ChannelListResponse)
async def list_channels(
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    channels = await channel_service.list_channels(session, current_user, engine)
    return ChannelListResponse(channels=channels, total=len(channels))


@router.get("/my-channels", response_model=ChannelListResponse)
async def my_channels(
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    channels = await channel_service.list_my_channels(session, current_user)
    return ChannelListResponse(channels=channels, total=len(channels))


@router.get("/recommended", response_model=ChannelListResponse)
async def recommended_channels(
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    channels = await channel_service.recommended_channels(session, current_user)
    return ChannelListResponse(channels=channels, total=len(channels))


@router.post("/auto-join", response_model=AutoJoinResponse)
async def auto_join(
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    return await channel_service.auto_join(session, current_user)


# -------------------------------------------------------------------
# MEMBERSHIP
# -------------------------------------------------------------------
@router.post("/{channel_id}/join", response_model=MembershipRead)
async def join_channel(
    channel_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    channel = await _load_channel(session, channel_id)
    ensure_allowed(await engine.can_view(current_user, channel_service.scope_of(channel)))

    if channel.visibility == ChannelVisibility.Private.value and not _is_admin(current_user):
        raise HTTPException(status_code=403, detail="This channel is private")

    try:
        return await channel_service.join_channel(session, channel, current_user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{channel_id}/leave")
async def leave_channel(
    channel_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    channel = await _load_channel(session, channel_id)
    try:
        await channel_service.leave_channel(session, channel, current_user)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Left channel"}


# -------------------------------------------------------------------
# MESSAGES
# -------------------------------------------------------------------
@router.post("/{channel_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    channel_id: UUID,
    data: MessageCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    channel = await _load_channel(session, channel_id)
    if not await channel_service.is_active_member(session, channel.id, current_user.id):
        raise HTTPException(status_code=403, detail="Join the channel to post messages")

    try:
        return await channel_service.send_message(session, channel, current_user, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{channel_id}/messages", response_model=MessageListResponse)
async def list_messages(
    channel_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=channel_service.MAX_MESSAGE_PAGE),
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    channel = await _load_channel(session, channel_id)
    if not _is_admin(current_user) and not await channel_service.is_active_member(
        session, channel.id, current_user.id
    ):
        raise HTTPException(status_code=403, detail="Not a member of this channel")

    return await channel_service.list_messages(session, channel.id, page=page, limit=limit)
