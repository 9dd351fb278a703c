# app/api/endpoints/jobs.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.api.deps import get_db_session
from app.core.config import settings
from app.schemas.schedule import CleanupResult
from app.services import schedule_service

router = APIRouter(prefix="/api/jobs", tags=["Background Jobs"])


@router.post("/cleanup-expired", response_model=CleanupResult)
async def cleanup_expired(
    secret_key: str,
    session: AsyncSession = Depends(get_db_session),
):
    """
    CRON JOB ENDPOINT.
    Removes events and timetables whose display window has passed.
    """
    if not settings.JOB_SECRET or secret_key != settings.JOB_SECRET:
        logger.warning("Unauthorized access attempt to background job.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing Job Secret Key."
        )

    events, timetables = await schedule_service.cleanup_expired(session)
    return CleanupResult(events_removed=events, timetables_removed=timetables)
