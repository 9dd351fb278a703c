# app/services/post_service.py

from sqlmodel import select
from sqlalchemy import func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from loguru import logger
from typing import Optional
import math
import uuid

from app.core.authorization import Scope, ScopeRef
from app.core.exceptions import NotFoundError
from app.core.timeutils import utcnow
from app.models.post import Post, Comment, PostLike, PostRepost, CommentLike
from app.models.user import User
from app.schemas.post import (
    PostCreate,
    PostUpdate,
    PostRead,
    PostDetail,
    PostListResponse,
    Pagination,
    AuthorSummary,
    CommentCreate,
    CommentRead,
    LikeToggleResponse,
    RepostToggleResponse,
)
from app.services.academic_service import ensure_scope_exists

MAX_PAGE_SIZE = 100


def scope_of(post: Post) -> ScopeRef:
    return ScopeRef(faculty_id=post.faculty_id, level_id=post.level_id)


# ============================================================================
# SERIALIZATION HELPERS
# ============================================================================
async def author_summaries(session: AsyncSession, user_ids) -> dict:
    ids = {i for i in user_ids if i is not None}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {
        u.id: AuthorSummary(id=u.id, name=u.name, role=u.role.value)
        for u in result.scalars().all()
    }


async def _counts(session: AsyncSession, model, owner_column, owner_ids: list) -> dict:
    result = await session.execute(
        select(owner_column, func.count(model.id))
        .where(owner_column.in_(owner_ids))
        .group_by(owner_column)
    )
    return dict(result.all())


async def _mine(session: AsyncSession, model, owner_column, owner_ids: list, viewer: Optional[User]) -> set:
    if viewer is None:
        return set()
    result = await session.execute(
        select(owner_column).where(owner_column.in_(owner_ids), model.user_id == viewer.id)
    )
    return set(result.scalars().all())


def _to_read(post: Post, author, engagement: dict) -> dict:
    return dict(
        id=post.id,
        title=post.title,
        content=post.content,
        category=post.category,
        priority=post.priority,
        image_url=post.image_url,
        scope=scope_of(post).scope,
        faculty_id=post.faculty_id,
        level_id=post.level_id,
        is_pinned=post.is_pinned,
        views_count=post.views_count,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author=author,
        **engagement,
    )


async def build_post_reads(session: AsyncSession, posts: list[Post], viewer: Optional[User]) -> list[PostRead]:
    """Like/comment/repost counts plus the viewer's own likes and reposts for a page of posts."""
    if not posts:
        return []

    ids = [p.id for p in posts]
    authors = await author_summaries(session, [p.author_id for p in posts])
    likes = await _counts(session, PostLike, PostLike.post_id, ids)
    comments = await _counts(session, Comment, Comment.post_id, ids)
    reposts = await _counts(session, PostRepost, PostRepost.post_id, ids)
    liked = await _mine(session, PostLike, PostLike.post_id, ids, viewer)
    reposted = await _mine(session, PostRepost, PostRepost.post_id, ids, viewer)

    return [
        PostRead(**_to_read(p, authors.get(p.author_id), {
            "likes_count": likes.get(p.id, 0),
            "comments_count": comments.get(p.id, 0),
            "reposts_count": reposts.get(p.id, 0),
            "is_liked": p.id in liked,
            "is_reposted": p.id in reposted,
        }))
        for p in posts
    ]


# ============================================================================
# CREATE
# ============================================================================
async def create_post(session: AsyncSession, author: User, data: PostCreate) -> PostRead:
    target = ScopeRef(faculty_id=data.faculty_id, level_id=data.level_id)
    await ensure_scope_exists(session, target)

    post = Post(
        author_id=author.id,
        title=data.title.strip(),
        content=data.content,
        category=data.category.strip() or "General",
        priority=data.priority.value,
        image_url=data.image_url,
        is_pinned=data.is_pinned,
        faculty_id=data.faculty_id,
        level_id=data.level_id,
    )
    session.add(post)
    await session.commit()
    await session.refresh(post)

    logger.info(f"Post {post.id} created by {author.email} | scope={target.scope.value}")
    return (await build_post_reads(session, [post], author))[0]


# ============================================================================
# LIST (paginated, one scope at a time)
# ============================================================================
async def list_posts(
    session: AsyncSession,
    viewer: User,
    scope: Scope,
    scope_id: Optional[uuid.UUID] = None,
    page: int = 1,
    limit: int = 20,
    category: Optional[str] = None,
    priority: Optional[str] = None,
) -> PostListResponse:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    query = select(Post).where(Post.is_published == True)  # noqa: E712

    if scope == Scope.Global:
        query = query.where(Post.faculty_id.is_(None), Post.level_id.is_(None))
    elif scope == Scope.Faculty:
        query = query.where(Post.faculty_id == scope_id, Post.level_id.is_(None))
    else:
        query = query.where(Post.level_id == scope_id)

    if category and category != "All":
        query = query.where(Post.category == category)
    if priority:
        query = query.where(Post.priority == priority)

    total = (await session.execute(
        select(func.count()).select_from(query.subquery())
    )).scalar_one()

    result = await session.execute(
        query.order_by(Post.is_pinned.desc(), Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = result.scalars().all()

    total_pages = math.ceil(total / limit) if total else 0
    return PostListResponse(
        posts=await build_post_reads(session, posts, viewer),
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_posts=total,
            has_more=page < total_pages,
        ),
    )


# ============================================================================
# SINGLE POST
# ============================================================================
async def get_post(session: AsyncSession, post_id: uuid.UUID) -> Post:
    post = await session.get(Post, post_id)
    if not post or not post.is_published:
        raise NotFoundError("Post not found")
    return post


async def list_comments(session: AsyncSession, post_id: uuid.UUID, viewer: Optional[User]) -> list[CommentRead]:
    """Top-level comments in posting order, each carrying its replies."""
    result = await session.execute(
        select(Comment).where(Comment.post_id == post_id).order_by(Comment.created_at)
    )
    comments = result.scalars().all()
    if not comments:
        return []

    ids = [c.id for c in comments]
    authors = await author_summaries(session, [c.user_id for c in comments])
    likes = await _counts(session, CommentLike, CommentLike.comment_id, ids)
    liked = await _mine(session, CommentLike, CommentLike.comment_id, ids, viewer)

    nodes = {
        c.id: CommentRead(
            id=c.id,
            post_id=c.post_id,
            parent_id=c.parent_id,
            content=c.content,
            created_at=c.created_at,
            author=authors.get(c.user_id),
            likes_count=likes.get(c.id, 0),
            is_liked=c.id in liked,
        )
        for c in comments
    }

    roots = []
    for c in comments:
        node = nodes[c.id]
        parent = nodes.get(c.parent_id) if c.parent_id else None
        if parent is not None:
            parent.replies.append(node)
        else:
            roots.append(node)
    return roots


async def get_post_detail(session: AsyncSession, post: Post, viewer: User) -> PostDetail:
    post.views_count = (post.views_count or 0) + 1
    session.add(post)
    await session.commit()
    await session.refresh(post)

    read = (await build_post_reads(session, [post], viewer))[0]
    return PostDetail(**read.model_dump(), comments=await list_comments(session, post.id, viewer))


# ============================================================================
# UPDATE / DELETE
# ============================================================================
async def update_post(session: AsyncSession, post: Post, data: PostUpdate, editor: User) -> PostRead:
    updates = data.model_dump(exclude_unset=True)
    if updates.get("priority") is not None:
        updates["priority"] = data.priority.value

    for key, value in updates.items():
        if value is None and key in ("title", "content", "category", "priority", "is_pinned"):
            continue
        setattr(post, key, value)
    post.updated_at = utcnow()

    session.add(post)
    await session.commit()
    await session.refresh(post)
    return (await build_post_reads(session, [post], editor))[0]


async def delete_post(session: AsyncSession, post: Post) -> None:
    post_id = post.id
    comment_ids = select(Comment.id).where(Comment.post_id == post_id)

    await session.execute(delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
    await session.execute(delete(PostLike).where(PostLike.post_id == post_id))
    await session.execute(delete(PostRepost).where(PostRepost.post_id == post_id))
    # replies before their parents
    await session.execute(
        delete(Comment).where(Comment.post_id == post_id, Comment.parent_id.is_not(None))
    )
    await session.execute(delete(Comment).where(Comment.post_id == post_id))
    await session.delete(post)
    await session.commit()
    logger.info(f"Post {post_id} deleted")


# ============================================================================
# LIKES & REPOSTS
# ============================================================================
async def _toggle(session: AsyncSession, model, owner_column, owner_id, user_id) -> tuple[bool, int]:
    """
    Adds or removes ``user_id``'s row for ``owner_id`` and returns
    ``(active, count)``. Only the ids passed in are read after the commit,
    since a rollback expires every instance in the session.
    """
    result = await session.execute(
        select(model).where(owner_column == owner_id, model.user_id == user_id)
    )
    existing = result.scalar_one_or_none()

    if existing:
        await session.delete(existing)
        active = False
    else:
        session.add(model(**{owner_column.key: owner_id, "user_id": user_id}))
        active = True

    try:
        await session.commit()
    except IntegrityError:
        # a concurrent request already added it
        await session.rollback()
        active = True

    count = (await session.execute(
        select(func.count(model.id)).where(owner_column == owner_id)
    )).scalar_one()
    return active, count


async def toggle_like(session: AsyncSession, post: Post, user: User) -> LikeToggleResponse:
    is_liked, count = await _toggle(session, PostLike, PostLike.post_id, post.id, user.id)
    return LikeToggleResponse(is_liked=is_liked, likes_count=count)


async def toggle_repost(session: AsyncSession, post: Post, user: User) -> RepostToggleResponse:
    post_id, email = post.id, user.email
    is_reposted, count = await _toggle(session, PostRepost, PostRepost.post_id, post_id, user.id)
    logger.info(f"{email} {'reposted' if is_reposted else 'removed repost of'} post {post_id}")
    return RepostToggleResponse(is_reposted=is_reposted, reposts_count=count)


# ============================================================================
# COMMENTS
# ============================================================================
async def add_comment(session: AsyncSession, post: Post, user: User, data: CommentCreate) -> CommentRead:
    if data.parent_id is not None:
        parent = await session.get(Comment, data.parent_id)
        if not parent:
            raise NotFoundError("Parent comment not found")
        if parent.post_id != post.id:
            raise ValueError("Parent comment belongs to a different post")

    content = data.content.strip()
    if not content:
        raise ValueError("Comment cannot be empty")

    comment = Comment(post_id=post.id, user_id=user.id, parent_id=data.parent_id, content=content)
    session.add(comment)
    await session.commit()
    await session.refresh(comment)

    return CommentRead(
        id=comment.id,
        post_id=comment.post_id,
        parent_id=comment.parent_id,
        content=comment.content,
        created_at=comment.created_at,
        author=AuthorSummary(id=user.id, name=user.name, role=user.role.value),
    )


async def toggle_comment_like(
    session: AsyncSession,
    post: Post,
    comment_id: uuid.UUID,
    user: User,
) -> LikeToggleResponse:
    comment = await session.get(Comment, comment_id)
    if not comment or comment.post_id != post.id:
        raise NotFoundError("Comment not found")

    is_liked, count = await _toggle(session, CommentLike, CommentLike.comment_id, comment_id, user.id)
    return LikeToggleResponse(is_liked=is_liked, likes_count=count)
