# app/services/academic_service.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from loguru import logger
from typing import Optional
import uuid

from app.core.authorization import ScopeRef
from app.core.cache import TTLCache, CacheKeys
from app.core.exceptions import NotFoundError
from app.models.academic import Faculty, Department, Level, LEVEL_NUMBERS
from app.models.user import User
from app.schemas.academic import (
    FacultyCreate,
    FacultyRead,
    DepartmentCreate,
    DepartmentUpdate,
    DepartmentRead,
    DepartmentWithLevels,
    DepartmentMember,
    DepartmentMembers,
    LevelRead,
    AcademicContext,
)
from app.services.authz_store import load_level


# ============================================================================
# FACULTIES
# ============================================================================
async def list_faculties(session: AsyncSession, cache: TTLCache) -> list[FacultyRead]:
    async def fetch():
        result = await session.execute(
            select(Faculty).where(Faculty.is_active == True).order_by(Faculty.name)  # noqa: E712
        )
        return [FacultyRead.model_validate(f) for f in result.scalars().all()]

    return await cache.get_or_set(CacheKeys.FACULTIES, fetch)


async def get_faculty(session: AsyncSession, cache: TTLCache, faculty_id: uuid.UUID) -> FacultyRead:
    async def fetch():
        faculty = await session.get(Faculty, faculty_id)
        return FacultyRead.model_validate(faculty) if faculty else None

    faculty = await cache.get_or_set(CacheKeys.faculty(faculty_id), fetch)
    if faculty is None:
        raise NotFoundError("Faculty not found")
    return faculty


async def create_faculty(session: AsyncSession, cache: TTLCache, data: FacultyCreate) -> Faculty:
    existing = await session.execute(
        select(Faculty).where((Faculty.name == data.name.strip()) | (Faculty.code == data.code))
    )
    if existing.scalars().first():
        raise ValueError("Faculty with this name or code already exists")

    faculty = Faculty(name=data.name.strip(), code=data.code, description=data.description)
    session.add(faculty)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValueError("Faculty with this name or code already exists")
    await session.refresh(faculty)

    cache.delete(CacheKeys.FACULTIES)
    logger.info(f"Faculty created: {faculty.code}")
    return faculty


async def list_departments(session: AsyncSession, cache: TTLCache, faculty_id: uuid.UUID) -> list[DepartmentRead]:
    await get_faculty(session, cache, faculty_id)

    async def fetch():
        result = await session.execute(
            select(Department)
            .where(Department.faculty_id == faculty_id, Department.is_active == True)  # noqa: E712
            .order_by(Department.name)
        )
        return [DepartmentRead.model_validate(d) for d in result.scalars().all()]

    return await cache.get_or_set(CacheKeys.departments(faculty_id), fetch)


# ============================================================================
# DEPARTMENTS
# ============================================================================
async def create_department(
    session: AsyncSession,
    cache: TTLCache,
    data: DepartmentCreate,
    created_by: Optional[User] = None,
) -> DepartmentWithLevels:
    faculty = await session.get(Faculty, data.faculty_id)
    if not faculty:
        raise NotFoundError("Faculty not found")

    existing = await session.execute(
        select(Department).where((Department.name == data.name.strip()) | (Department.code == data.code))
    )
    if existing.scalars().first():
        raise ValueError("Department with this name or code already exists")

    department = Department(
        name=data.name.strip(),
        code=data.code,
        description=data.description,
        faculty_id=faculty.id,
        created_by_id=created_by.id if created_by else None,
    )
    session.add(department)
    await session.flush()

    for number in data.levels or LEVEL_NUMBERS:
        session.add(Level(
            department_id=department.id,
            level_number=number,
            display_name=f"{number} Level",
        ))

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValueError("Department with this name or code already exists")

    cache.delete(CacheKeys.departments(faculty.id))
    logger.info(f"Department created: {department.code} under {faculty.code}")
    return await get_department(session, department.id)


async def list_all_departments(session: AsyncSession, is_active: Optional[bool] = None) -> list[DepartmentRead]:
    query = select(Department).order_by(Department.name)
    if is_active is not None:
        query = query.where(Department.is_active == is_active)
    result = await session.execute(query)
    return [DepartmentRead.model_validate(d) for d in result.scalars().all()]


async def list_department_users(
    session: AsyncSession,
    department_id: uuid.UUID,
    level_number: Optional[int] = None,
) -> DepartmentMembers:
    department = await session.get(Department, department_id)
    if not department:
        raise NotFoundError("Department not found")

    query = (
        select(User, Level.level_number)
        .join(Level, Level.id == User.level_id, isouter=True)
        .where(User.department_id == department_id)
        .order_by(Level.level_number, User.name)
    )
    if level_number is not None:
        query = query.where(Level.level_number == level_number)

    rows = (await session.execute(query)).all()
    users = [
        DepartmentMember(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            level_id=user.level_id,
            level_number=number,
        )
        for user, number in rows
    ]
    return DepartmentMembers(
        department=department.name,
        level=level_number,
        users=users,
        count=len(users),
    )


async def get_department(session: AsyncSession, department_id: uuid.UUID) -> DepartmentWithLevels:
    department = await session.get(Department, department_id)
    if not department:
        raise NotFoundError("Department not found")

    faculty = await session.get(Faculty, department.faculty_id)
    levels = await list_levels(session, department_id)

    return DepartmentWithLevels(
        **DepartmentRead.model_validate(department).model_dump(),
        faculty_name=faculty.name if faculty else None,
        levels=levels,
    )


async def update_department(
    session: AsyncSession,
    cache: TTLCache,
    department_id: uuid.UUID,
    data: DepartmentUpdate,
) -> DepartmentWithLevels:
    department = await session.get(Department, department_id)
    if not department:
        raise NotFoundError("Department not found")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("name"):
        updates["name"] = updates["name"].strip()

    for key, value in updates.items():
        # null means "leave as is" for the NOT NULL columns
        if value is None and key in ("name", "code", "is_active"):
            continue
        setattr(department, key, value)

    session.add(department)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValueError("Department with this name or code already exists")

    cache.delete(CacheKeys.departments(department.faculty_id))
    return await get_department(session, department_id)


async def deactivate_department(session: AsyncSession, cache: TTLCache, department_id: uuid.UUID) -> None:
    """Soft delete: posts and users keep pointing at the department's levels."""
    department = await session.get(Department, department_id)
    if not department:
        raise NotFoundError("Department not found")

    department.is_active = False
    session.add(department)
    await session.commit()

    cache.delete(CacheKeys.departments(department.faculty_id))
    for level in await list_levels(session, department_id):
        cache.delete(CacheKeys.level(level.id))
    logger.info(f"Department deactivated: {department.code}")


# ============================================================================
# LEVELS
# ============================================================================
async def list_levels(session: AsyncSession, department_id: uuid.UUID) -> list[LevelRead]:
    result = await session.execute(
        select(Level).where(Level.department_id == department_id).order_by(Level.level_number)
    )
    return [LevelRead.model_validate(lv) for lv in result.scalars().all()]


async def get_level(session: AsyncSession, cache: TTLCache, level_id: uuid.UUID) -> LevelRead:
    level = await load_level(session, level_id, cache)
    if level is None:
        raise NotFoundError("Level not found")
    return level


# ============================================================================
# SCOPE TARGETS (posts and channels)
# ============================================================================
async def ensure_scope_exists(session: AsyncSession, target: ScopeRef) -> None:
    if target.level_id is not None and not await session.get(Level, target.level_id):
        raise NotFoundError("Level not found")
    if target.faculty_id is not None and not await session.get(Faculty, target.faculty_id):
        raise NotFoundError("Faculty not found")


# ============================================================================
# CURRENT USER CONTEXT
# ============================================================================
async def get_academic_context(session: AsyncSession, cache: TTLCache, user: User) -> AcademicContext:
    context = AcademicContext()

    if user.faculty_id:
        faculty = await session.get(Faculty, user.faculty_id)
        context.faculty = FacultyRead.model_validate(faculty) if faculty else None
    if user.department_id:
        department = await session.get(Department, user.department_id)
        context.department = DepartmentRead.model_validate(department) if department else None
    if user.level_id:
        context.level = await load_level(session, user.level_id, cache)

    context.has_academic_profile = context.level is not None
    return context
