# app/services/profile_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.timeutils import utcnow
from app.models.academic import Department, Level
from app.models.user import User
from app.schemas.profile import ProfileUpdate


async def update_profile(session: AsyncSession, user: User, data: ProfileUpdate) -> User:
    """
    Applies the fields that were actually sent. Academic affiliation is set
    through ``level_id`` alone: department and faculty follow from the level,
    and an explicit null clears all three.
    """
    updates = data.model_dump(exclude_unset=True)

    if "level_id" in updates:
        level_id = updates.pop("level_id")
        if level_id is None:
            user.level_id = None
            user.department_id = None
            user.faculty_id = None
        else:
            level = await session.get(Level, level_id)
            if not level or not level.is_active:
                raise ValueError("Invalid level")
            department = await session.get(Department, level.department_id)
            if not department or not department.is_active:
                raise ValueError("Invalid level")

            user.level_id = level.id
            user.department_id = department.id
            user.faculty_id = department.faculty_id

    for key, value in updates.items():
        if key == "name" and not value:
            continue
        setattr(user, key, value.strip() if isinstance(value, str) else value)

    user.updated_at = utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)

    logger.info(f"Profile updated: {user.email}")
    return user
