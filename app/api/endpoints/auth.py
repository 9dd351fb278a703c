# app/api/endpoints/auth.py

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

# Schemas
from app.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    VerifyOTPRequest,
    ResendOTPRequest,
    LoginRequest,
    TokenWithUser,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    MessageResponse,
)
from app.schemas.user import UserRead

# Models
from app.models.user import User

# Services
from app.services.auth_service import (
    register_user,
    verify_otp,
    resend_otp,
    authenticate_user,
    create_login_response,
    request_password_reset,
    finalize_password_reset,
)
from app.services.email_service import (
    send_otp_email,
    send_welcome_email,
    send_password_reset_email,
    send_password_changed_email,
)

# Deps
from app.api.deps import get_db_session, get_current_user
from app.core.rate_limiter import limiter, REGISTER_LIMIT, LOGIN_LIMIT, FORGOT_PASSWORD_LIMIT

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# -------------------------------------------------------------------
# REGISTER (self-service, role 'user' unless it is the power admin email)
# -------------------------------------------------------------------
@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    payload: RegisterRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        user, otp = await register_user(session, payload.name, payload.email, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(send_otp_email, user.email, user.name, otp)

    return RegisterResponse(
        message="Registration successful. Check your email for the verification code.",
        email=user.email,
    )


# -------------------------------------------------------------------
# VERIFY / RESEND OTP
# -------------------------------------------------------------------
@router.post("/verify-otp", response_model=TokenWithUser)
async def verify_email(
    payload: VerifyOTPRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        user = await verify_otp(session, payload.email, payload.otp)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(send_welcome_email, user.email, user.name)
    return create_login_response(user)


@router.post("/resend-otp", response_model=MessageResponse)
@limiter.limit(FORGOT_PASSWORD_LIMIT)
async def resend_verification(
    request: Request,
    payload: ResendOTPRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        user, otp = await resend_otp(session, payload.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(send_otp_email, user.email, user.name, otp, True)
    return MessageResponse(message="A new verification code has been sent.")


# -------------------------------------------------------------------
# LOGIN
# -------------------------------------------------------------------
@router.post("/login", response_model=TokenWithUser)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        user = await authenticate_user(session, payload.email, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return create_login_response(user)


# -------------------------------------------------------------------
# CURRENT USER
# -------------------------------------------------------------------
@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


# -------------------------------------------------------------------
# PUBLIC FORGOT PASSWORD ENDPOINTS
# -------------------------------------------------------------------
@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(FORGOT_PASSWORD_LIMIT)
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Same answer whether or not the account exists.
    """
    issued = await request_password_reset(session, payload.email)
    if issued:
        user, token = issued
        background_tasks.add_task(send_password_reset_email, user.email, user.name, token)

    return MessageResponse(message="If an account exists for this email, a reset code has been sent.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
):
    try:
        user = await finalize_password_reset(session, payload.email, payload.token, payload.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(send_password_changed_email, user.email, user.name)
    return MessageResponse(message="Password reset successfully. You can now log in.")
