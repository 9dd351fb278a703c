# app/api/endpoints/timetables.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api.deps import get_db_session
from app.core.exceptions import NotFoundError
from app.core.rbac import AllowRoles
from app.models.user import User, UserRole
from app.schemas.schedule import TimetableCreate, TimetableRead, TimetableListResponse
from app.services import schedule_service

router = APIRouter(prefix="/api/timetables", tags=["Timetables"])


@router.get("", response_model=TimetableListResponse)
async def list_timetables(session: AsyncSession = Depends(get_db_session)):
    return TimetableListResponse(timetables=await schedule_service.list_timetables(session))


@router.post("", response_model=TimetableRead, status_code=status.HTTP_201_CREATED)
async def create_timetable(
    data: TimetableCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(AllowRoles(UserRole.DeptAdmin)),
):
    return await schedule_service.create_timetable(session, current_user, data)


@router.get("/{timetable_id}", response_model=TimetableRead)
async def get_timetable(timetable_id: UUID, session: AsyncSession = Depends(get_db_session)):
    try:
        return await schedule_service.get_timetable(session, timetable_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
