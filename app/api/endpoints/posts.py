# app/api/endpoints/posts.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from app.api.deps import get_db_session, get_current_user, get_cache, get_authorization_engine
from app.core.authorization import AuthorizationEngine, Scope, ScopeRef, validate_scope
from app.core.cache import TTLCache
from app.core.constants import EVENT_POST_DELETED
from app.core.exceptions import NotFoundError
from app.core.rbac import ensure_allowed
from app.models.post import PostPriority
from app.models.user import User
from app.schemas.post import (
    PostCreate,
    PostUpdate,
    PostRead,
    PostDetail,
    PostListResponse,
    CommentCreate,
    CommentRead,
    LikeToggleResponse,
    RepostToggleResponse,
)
from app.services import academic_service, post_service
from app.services.audit_service import record_event

router = APIRouter(prefix="/api/academic/posts", tags=["Posts"])


async def _load_post(session: AsyncSession, post_id: UUID):
    try:
        return await post_service.get_post(session, post_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# -------------------------------------------------------------------
# CREATE
# -------------------------------------------------------------------
@router.post("", response_model=PostRead, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    ensure_allowed(validate_scope(data.faculty_id, data.level_id))

    target = ScopeRef(faculty_id=data.faculty_id, level_id=data.level_id)
    ensure_allowed(await engine.can_create(current_user, target))

    try:
        return await post_service.create_post(session, current_user, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# -------------------------------------------------------------------
# FEEDS (one per scope)
# -------------------------------------------------------------------
@router.get("/global", response_model=PostListResponse)
async def global_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=post_service.MAX_PAGE_SIZE),
    category: Optional[str] = Query(None, description="'All' disables the filter"),
    priority: Optional[PostPriority] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    ensure_allowed(await engine.can_view(current_user, ScopeRef(), Scope.Global))

    return await post_service.list_posts(
        session, current_user, Scope.Global,
        page=page, limit=limit, category=category,
        priority=priority.value if priority else None,
    )


@router.get("/faculty/{faculty_id}", response_model=PostListResponse)
async def faculty_posts(
    faculty_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=post_service.MAX_PAGE_SIZE),
    category: Optional[str] = Query(None),
    priority: Optional[PostPriority] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    try:
        await academic_service.get_faculty(session, cache, faculty_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    ensure_allowed(await engine.can_view(current_user, ScopeRef(faculty_id=faculty_id), Scope.Faculty))

    return await post_service.list_posts(
        session, current_user, Scope.Faculty, faculty_id,
        page=page, limit=limit, category=category,
        priority=priority.value if priority else None,
    )


@router.get("/level/{level_id}", response_model=PostListResponse)
async def level_posts(
    level_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=post_service.MAX_PAGE_SIZE),
    category: Optional[str] = Query(None),
    priority: Optional[PostPriority] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    try:
        await academic_service.get_level(session, cache, level_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    ensure_allowed(await engine.can_view(current_user, ScopeRef(level_id=level_id), Scope.Level))

    return await post_service.list_posts(
        session, current_user, Scope.Level, level_id,
        page=page, limit=limit, category=category,
        priority=priority.value if priority else None,
    )


# -------------------------------------------------------------------
# SINGLE POST
# -------------------------------------------------------------------
@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(await engine.can_view(current_user, post_service.scope_of(post)))
    return await post_service.get_post_detail(session, post, current_user)


@router.put("/{post_id}", response_model=PostRead)
async def update_post(
    post_id: UUID,
    data: PostUpdate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(engine.can_modify(current_user, post.author_id))
    return await post_service.update_post(session, post, data, current_user)


@router.delete("/{post_id}")
async def delete_post(
    post_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(engine.can_modify(current_user, post.author_id))

    author_id, title = post.author_id, post.title
    await post_service.delete_post(session, post)

    if author_id != current_user.id:
        await record_event(
            session, EVENT_POST_DELETED, actor=current_user,
            resource_type="Post", resource_id=post_id,
            old_values={"title": title, "author_id": str(author_id)},
        )
    return {"detail": "Post deleted"}


# -------------------------------------------------------------------
# LIKES, REPOSTS & COMMENTS
# -------------------------------------------------------------------
@router.post("/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(await engine.can_view(current_user, post_service.scope_of(post)))
    return await post_service.toggle_like(session, post, current_user)


@router.post("/{post_id}/repost", response_model=RepostToggleResponse)
async def toggle_repost(
    post_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(await engine.can_view(current_user, post_service.scope_of(post)))
    return await post_service.toggle_repost(session, post, current_user)


@router.get("/{post_id}/comments", response_model=List[CommentRead])
async def list_comments(
    post_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(await engine.can_view(current_user, post_service.scope_of(post)))
    return await post_service.list_comments(session, post.id, current_user)


@router.post("/{post_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: UUID,
    data: CommentCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(await engine.can_view(current_user, post_service.scope_of(post)))

    try:
        return await post_service.add_comment(session, post, current_user, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{post_id}/comments/{comment_id}/like", response_model=LikeToggleResponse)
async def toggle_comment_like(
    post_id: UUID,
    comment_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    post = await _load_post(session, post_id)
    ensure_allowed(await engine.can_view(current_user, post_service.scope_of(post)))

    try:
        return await post_service.toggle_comment_like(session, post, comment_id, current_user)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
