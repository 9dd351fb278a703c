# app/services/authz_store.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import TTLCache, CacheKeys
from app.models.academic import Department, Level
from app.models.user import User
from app.schemas.academic import LevelRead


async def load_level(session: AsyncSession, level_id, cache: TTLCache | None = None) -> LevelRead | None:
    """
    Levels are cached as detached snapshots (``LevelRead``), never as ORM
    instances, so a cached entry outlives the session that loaded it.
    """
    if level_id is None:
        return None

    async def fetch():
        level = await session.get(Level, level_id)
        return LevelRead.model_validate(level) if level else None

    if cache is None:
        return await fetch()
    return await cache.get_or_set(CacheKeys.level(level_id), fetch)


class SQLAuthorizationStore:
    """
    Database-backed store for the authorization engine, bound to one request's
    session. Level lookups go through the shared TTL cache when one is given.
    """

    def __init__(self, session: AsyncSession, cache: TTLCache | None = None):
        self.session = session
        self.cache = cache

    async def get_level(self, level_id) -> LevelRead | None:
        return await load_level(self.session, level_id, self.cache)

    async def get_department(self, department_id) -> Department | None:
        if department_id is None:
            return None
        return await self.session.get(Department, department_id)

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def save_user(self, user: User) -> User:
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user
