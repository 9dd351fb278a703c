# app/api/endpoints/profile.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.models.user import User
from app.schemas.profile import ProfileRead, ProfileUpdate
from app.services.profile_service import update_profile

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("", response_model=ProfileRead)
async def get_my_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("", response_model=ProfileRead)
async def update_my_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await update_profile(session, current_user, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
