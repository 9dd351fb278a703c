# app/core/seeding_logic.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from loguru import logger

from app.models.academic import Faculty, Department, Level, LEVEL_NUMBERS
from app.models.user import UserRole
from app.services.auth_service import get_user_by_email, create_user
from app.core.constants import FACULTIES_DATA, DEPARTMENTS_DATA
from app.core.database import AsyncSessionLocal
from app.core.config import settings


# ----------------------------------------------------------------
# SEEDING FUNCTIONS
# ----------------------------------------------------------------

async def seed_all(session_factory: async_sessionmaker = AsyncSessionLocal):
    """Master function to run all seeding logic."""
    async with session_factory() as session:
        try:
            if settings.SEED_ACADEMIC_STRUCTURE:
                await seed_academic_structure(session)
            await seed_power_admin(session)
            await session.commit()
            logger.success("Seeding complete.")
        except Exception as e:
            logger.error(f"Seeding failed: {e}")
            await session.rollback()


async def seed_academic_structure(session: AsyncSession):
    """Faculties -> departments -> levels 100..500. Safe to re-run."""
    faculties = {}
    for f in FACULTIES_DATA:
        faculty = (await session.execute(
            select(Faculty).where(Faculty.code == f["code"])
        )).scalar_one_or_none()
        if not faculty:
            logger.info(f"Creating faculty: {f['name']}")
            faculty = Faculty(**f)
            session.add(faculty)
            await session.flush()
        faculties[f["code"]] = faculty

    for faculty_code, departments in DEPARTMENTS_DATA.items():
        faculty = faculties[faculty_code]
        for d in departments:
            department = (await session.execute(
                select(Department).where(Department.code == d["code"])
            )).scalar_one_or_none()
            if not department:
                logger.info(f"Creating department: {d['name']} ({faculty_code})")
                department = Department(faculty_id=faculty.id, **d)
                session.add(department)
                await session.flush()

            existing = set((await session.execute(
                select(Level.level_number).where(Level.department_id == department.id)
            )).scalars().all())
            for number in LEVEL_NUMBERS:
                if number not in existing:
                    session.add(Level(
                        department_id=department.id,
                        level_number=number,
                        display_name=f"{number} Level",
                    ))
    await session.flush()


async def seed_power_admin(session: AsyncSession):
    if not (settings.POWER_ADMIN_EMAIL and settings.POWER_ADMIN_PASSWORD):
        logger.warning("POWER_ADMIN_EMAIL/POWER_ADMIN_PASSWORD not set. Skipping power admin seed.")
        return

    existing = await get_user_by_email(session, settings.POWER_ADMIN_EMAIL)
    if existing:
        if existing.role != UserRole.Power or not existing.is_verified:
            existing.role = UserRole.Power
            existing.is_verified = True
            session.add(existing)
            logger.info(f"Restored power admin: {existing.email}")
        return

    await create_user(
        session=session,
        name=settings.POWER_ADMIN_NAME or "Power Admin",
        email=settings.POWER_ADMIN_EMAIL,
        password=settings.POWER_ADMIN_PASSWORD,
        role=UserRole.Power,
    )
    logger.success("Power admin created.")
