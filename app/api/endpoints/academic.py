# app/api/endpoints/academic.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from app.api.deps import get_db_session, get_current_user, get_cache
from app.core.cache import TTLCache
from app.core.constants import (
    EVENT_FACULTY_CREATED,
    EVENT_DEPARTMENT_CREATED,
    EVENT_DEPARTMENT_UPDATED,
    EVENT_DEPARTMENT_DEACTIVATED,
)
from app.core.exceptions import NotFoundError
from app.core.rbac import AllowRoles, require_power
from app.models.user import User, UserRole
from app.schemas.academic import (
    FacultyCreate,
    FacultyRead,
    DepartmentCreate,
    DepartmentUpdate,
    DepartmentRead,
    DepartmentWithLevels,
    DepartmentMembers,
    LevelRead,
    AcademicContext,
)
from app.services import academic_service
from app.services.audit_service import record_event

router = APIRouter(prefix="/api/academic", tags=["Academic Structure"])


# ----------------------------------------------------------
# 1. FACULTIES
# ----------------------------------------------------------
@router.get("/faculties", response_model=List[FacultyRead])
async def list_faculties(
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
):
    return await academic_service.list_faculties(session, cache)


@router.post("/faculties", response_model=FacultyRead, status_code=status.HTTP_201_CREATED)
async def create_faculty(
    data: FacultyCreate,
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(require_power),
):
    try:
        faculty = await academic_service.create_faculty(session, cache, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await record_event(
        session, EVENT_FACULTY_CREATED, actor=current_user,
        resource_type="Faculty", resource_id=faculty.id,
        new_values={"name": faculty.name, "code": faculty.code},
    )
    return faculty


@router.get("/faculties/{faculty_id}", response_model=FacultyRead)
async def get_faculty(
    faculty_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
):
    try:
        return await academic_service.get_faculty(session, cache, faculty_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/faculties/{faculty_id}/departments", response_model=List[DepartmentRead])
async def list_faculty_departments(
    faculty_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
):
    try:
        return await academic_service.list_departments(session, cache, faculty_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ----------------------------------------------------------
# 2. DEPARTMENTS
# ----------------------------------------------------------
@router.get("/departments", response_model=List[DepartmentRead])
async def list_departments(
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_db_session),
):
    return await academic_service.list_all_departments(session, is_active)


@router.post("/departments", response_model=DepartmentWithLevels, status_code=status.HTTP_201_CREATED)
async def create_department(
    data: DepartmentCreate,
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(require_power),
):
    try:
        department = await academic_service.create_department(session, cache, data, created_by=current_user)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await record_event(
        session, EVENT_DEPARTMENT_CREATED, actor=current_user,
        resource_type="Department", resource_id=department.id,
        new_values={
            "name": department.name,
            "code": department.code,
            "levels": [lv.level_number for lv in department.levels],
        },
    )
    return department


@router.get("/departments/{department_id}", response_model=DepartmentWithLevels)
async def get_department(
    department_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await academic_service.get_department(session, department_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/departments/{department_id}", response_model=DepartmentWithLevels)
async def update_department(
    department_id: UUID,
    data: DepartmentUpdate,
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(require_power),
):
    try:
        department = await academic_service.update_department(session, cache, department_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await record_event(
        session, EVENT_DEPARTMENT_UPDATED, actor=current_user,
        resource_type="Department", resource_id=department_id,
        new_values=data.model_dump(exclude_unset=True),
    )
    return department


@router.delete("/departments/{department_id}")
async def delete_department(
    department_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(require_power),
):
    try:
        await academic_service.deactivate_department(session, cache, department_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    await record_event(
        session, EVENT_DEPARTMENT_DEACTIVATED, actor=current_user,
        resource_type="Department", resource_id=department_id,
        old_values={"is_active": True}, new_values={"is_active": False},
    )
    return {"detail": "Department deactivated"}


@router.get("/departments/{department_id}/levels", response_model=List[LevelRead])
async def list_department_levels(
    department_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await academic_service.get_department(session, department_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await academic_service.list_levels(session, department_id)


@router.get("/departments/{department_id}/users", response_model=DepartmentMembers)
async def list_department_users(
    department_id: UUID,
    level: Optional[int] = Query(None, description="Level number, e.g. 200"),
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(AllowRoles(UserRole.DeptAdmin)),
):
    if (
        UserRole.parse(current_user.role) == UserRole.DeptAdmin
        and current_user.managed_department_id != department_id
    ):
        raise HTTPException(status_code=403, detail="Department admins can only list their own department")

    try:
        return await academic_service.list_department_users(session, department_id, level)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ----------------------------------------------------------
# 3. LEVELS
# ----------------------------------------------------------
@router.get("/levels/{level_id}", response_model=LevelRead)
async def get_level(
    level_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
):
    try:
        return await academic_service.get_level(session, cache, level_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ----------------------------------------------------------
# 4. CURRENT USER'S ACADEMIC CONTEXT
# ----------------------------------------------------------
@router.get("/context", response_model=AcademicContext)
async def get_context(
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
    current_user: User = Depends(get_current_user),
):
    return await academic_service.get_academic_context(session, cache, current_user)
