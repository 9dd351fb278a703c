# app/services/auth_service.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from loguru import logger
import uuid
from datetime import timedelta

from app.models.user import User, UserRole
from app.core.config import settings
from app.core.timeutils import as_utc, utcnow
from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    generate_otp,
)
from app.schemas.auth import TokenWithUser
from app.schemas.user import UserRead


def _is_power_email(email: str) -> bool:
    return bool(settings.POWER_ADMIN_EMAIL) and email.lower() == settings.POWER_ADMIN_EMAIL.lower()


# ============================================================================
# FETCH USER BY EMAIL
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


# ============================================================================
# FETCH USER BY ID
# ============================================================================
async def get_user_by_id(session: AsyncSession, user_id) -> User | None:
    try:
        key = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
    except ValueError:
        return None
    return await session.get(User, key)


# ============================================================================
# CREATE USER (seeding / admin tooling)
# ============================================================================
async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.User,
    is_verified: bool = True,
    managed_department_id: uuid.UUID | None = None,
) -> User:

    if role == UserRole.DeptAdmin and managed_department_id is None:
        raise ValueError("Department admins must be assigned to a department")

    user = User(
        name=name.strip(),
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role,
        is_verified=is_verified,
        managed_department_id=managed_department_id,
    )
    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
        return user
    except IntegrityError:
        await session.rollback()
        raise ValueError("User with this email already exists")


# ============================================================================
# REGISTER (self-service, needs OTP verification)
# ============================================================================
async def register_user(session: AsyncSession, name: str, email: str, password: str) -> tuple[User, str]:
    email = email.strip().lower()

    if await get_user_by_email(session, email):
        raise ValueError("User already exists")

    otp = generate_otp()
    role = UserRole.Power if _is_power_email(email) else UserRole.User

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        otp_code=otp,
        otp_expires_at=utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
    )
    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise ValueError("User already exists")

    logger.info(f"User registered: {email} | role={role.value}")
    return user, otp


async def verify_otp(session: AsyncSession, email: str, otp: str) -> User:
    user = await get_user_by_email(session, email)
    if not user:
        raise ValueError("User not found")
    if user.is_verified:
        raise ValueError("User already verified")

    expires_at = as_utc(user.otp_expires_at)
    if not user.otp_code or user.otp_code != otp or not expires_at or expires_at < utcnow():
        raise ValueError("Invalid or expired OTP")

    user.is_verified = True
    user.otp_code = None
    user.otp_expires_at = None
    user.updated_at = utcnow()

    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"User verified: {user.email}")
    return user


async def resend_otp(session: AsyncSession, email: str) -> tuple[User, str]:
    user = await get_user_by_email(session, email)
    if not user:
        raise ValueError("User not found")
    if user.is_verified:
        raise ValueError("User already verified")

    otp = generate_otp()
    user.otp_code = otp
    user.otp_expires_at = utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

    session.add(user)
    await session.commit()
    return user, otp


# ============================================================================
# LOGIN
# ============================================================================
async def authenticate_user(session: AsyncSession, email: str, password: str) -> User:
    """
    Raises ValueError with a user-facing message on failure. The configured
    power admin email is re-asserted to the 'power' role on every login.
    """
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Login failed for {email}")
        raise ValueError("Invalid email or password")

    if not user.is_verified:
        raise ValueError("Email not verified. Please verify OTP.")

    if _is_power_email(user.email) and user.role != UserRole.Power:
        logger.info(f"Restoring power admin role for {user.email}")
        user.role = UserRole.Power
        session.add(user)
        await session.commit()
        await session.refresh(user)

    return user


def create_login_response(user: User) -> TokenWithUser:
    token = create_access_token(
        subject=str(user.id),
        data={"role": user.role.value},
    )
    return TokenWithUser(
        access_token=token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserRead.model_validate(user),
    )


# ============================================================================
# FORGOT / RESET PASSWORD
# ============================================================================
async def request_password_reset(session: AsyncSession, email: str) -> tuple[User, str] | None:
    """Returns None for unknown emails so the caller can answer uniformly."""
    user = await get_user_by_email(session, email)
    if not user:
        return None

    token = generate_otp()
    user.reset_token = token
    user.reset_expires_at = utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)

    session.add(user)
    await session.commit()
    return user, token


async def finalize_password_reset(session: AsyncSession, email: str, token: str, new_password: str) -> User:
    user = await get_user_by_email(session, email)
    if not user:
        raise ValueError("Invalid reset request")

    expires_at = as_utc(user.reset_expires_at)
    if not user.reset_token or user.reset_token != token or not expires_at or expires_at < utcnow():
        raise ValueError("Invalid or expired reset code")

    user.password_hash = hash_password(new_password)
    user.reset_token = None
    user.reset_expires_at = None
    user.updated_at = utcnow()

    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def change_password(session: AsyncSession, user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password, user.password_hash):
        raise ValueError("Current password is incorrect")
    if current_password == new_password:
        raise ValueError("New password must be different")

    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


# ============================================================================
# LIST ADMINS
# ============================================================================
async def list_admins(session: AsyncSession) -> list[User]:
    result = await session.execute(
        select(User).where(User.role != UserRole.User).order_by(User.created_at)
    )
    return result.scalars().all()
