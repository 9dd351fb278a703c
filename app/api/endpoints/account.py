# app/api/endpoints/account.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest, MessageResponse
from app.services.auth_service import change_password as change_user_password
from app.services.email_service import send_password_changed_email

router = APIRouter(prefix="/api/account", tags=["Account"])


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        user = await change_user_password(
            session, current_user, payload.current_password, payload.new_password
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(send_password_changed_email, user.email, user.name)
    return MessageResponse(message="Password changed successfully")
