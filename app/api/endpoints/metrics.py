# app/api/endpoints/metrics.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, text
from sqlmodel import select
import time
import psutil
from loguru import logger

from app.api.deps import get_db_session, get_cache
from app.core.cache import TTLCache
from app.core.config import settings
from app.core.rbac import AllowRoles
from app.models.academic import Faculty, Department
from app.models.post import Post
from app.models.user import User, UserRole

router = APIRouter(prefix="/api/metrics", tags=["System & Metrics"])

# Track when the module is loaded for uptime calculation
START_TIME = time.time()


# ===================================================================
# 1. SYSTEM HEALTH
# ===================================================================
@router.get("")
async def system_metrics(
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
):
    try:
        disk_usage = psutil.disk_usage("/").percent
    except OSError:
        disk_usage = 0

    db_start = time.time()
    try:
        await session.execute(text("SELECT 1"))
        db_status = "Connected"
        db_latency = round((time.time() - db_start) * 1000, 2)
    except Exception as e:
        logger.error(f"Metrics DB ping failed: {e}")
        db_status = "Error"
        db_latency = 0

    return {
        "status": "Online",
        "environment": settings.ENV,
        "cpu": psutil.cpu_percent(interval=None),
        "ram": psutil.virtual_memory().percent,
        "disk": disk_usage,
        "uptime": int(time.time() - START_TIME),
        "database": db_status,
        "db_latency": db_latency,
        "cache_entries": len(cache),
    }


# ===================================================================
# 2. ADMIN DASHBOARD STATS
# ===================================================================
@router.get("/dashboard-stats")
async def dashboard_stats(
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(AllowRoles(UserRole.Admin)),
):
    role_res = await session.execute(select(User.role, func.count(User.id)).group_by(User.role))
    users_by_role = {UserRole.parse(role).value: count for role, count in role_res.all()}

    posts_total = (await session.execute(select(func.count(Post.id)))).scalar_one()
    global_posts = (await session.execute(
        select(func.count(Post.id)).where(Post.faculty_id.is_(None), Post.level_id.is_(None))
    )).scalar_one()
    level_posts = (await session.execute(
        select(func.count(Post.id)).where(Post.level_id.is_not(None))
    )).scalar_one()

    return {
        "users": {
            "total": sum(users_by_role.values()),
            "by_role": users_by_role,
        },
        "posts": {
            "total": posts_total,
            "global": global_posts,
            "faculty": posts_total - global_posts - level_posts,
            "level": level_posts,
        },
        "faculties": (await session.execute(select(func.count(Faculty.id)))).scalar_one(),
        "departments": (await session.execute(
            select(func.count(Department.id)).where(Department.is_active == True)  # noqa: E712
        )).scalar_one(),
    }
