# app/core/database.py

import ssl
from typing import AsyncGenerator

from loguru import logger
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy import text

from app.core.config import settings

# Register every table on SQLModel.metadata before create_all runs
from app.models import academic, channel, post, schedule, system_audit, user  # noqa: F401


# ----------------------------------------------------
# SSL for hosted PostgreSQL poolers
# ----------------------------------------------------
def make_ssl():
    ctx = ssl.create_default_context()
    if not settings.DB_SSL_VERIFY:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


# ----------------------------------------------------
# Engine factory
# ----------------------------------------------------
def build_engine(url: str) -> AsyncEngine:
    """
    SQLite (local dev / tests) shares a single connection so an in-memory
    database survives across sessions. PostgreSQL goes through asyncpg with
    prepared statements disabled, since the pooler in front of it does its
    own pooling.
    """
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    connect_args = {
        "ssl": make_ssl(),
        "statement_cache_size": 0,
        "prepared_statement_name_func": None,
    }
    logger.info("Configuring database (pooler mode)")
    return create_async_engine(
        url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


engine = build_engine(settings.DATABASE_URL)


# ----------------------------------------------------
# Sessions
# ----------------------------------------------------
def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


AsyncSessionLocal = make_sessionmaker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# ----------------------------------------------------
# Create tables
# ----------------------------------------------------
async def init_db(bind: AsyncEngine = engine):
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


# ----------------------------------------------------
# Test Connection
# ----------------------------------------------------
async def test_connection():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        logger.debug("DB connection OK")
