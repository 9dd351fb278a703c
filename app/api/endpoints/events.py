# app/api/endpoints/events.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.api.deps import get_db_session
from app.core.exceptions import NotFoundError
from app.core.rbac import AllowRoles
from app.models.user import User, UserRole
from app.schemas.schedule import EventCreate, EventRead, EventListResponse
from app.services import schedule_service

router = APIRouter(prefix="/api/events", tags=["Events"])


@router.get("", response_model=EventListResponse)
async def list_events(session: AsyncSession = Depends(get_db_session)):
    return EventListResponse(events=await schedule_service.list_events(session))


@router.post("", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(AllowRoles(UserRole.DeptAdmin)),
):
    return await schedule_service.create_event(session, current_user, data)


@router.get("/{event_id}", response_model=EventRead)
async def get_event(event_id: UUID, session: AsyncSession = Depends(get_db_session)):
    try:
        return await schedule_service.get_event(session, event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
