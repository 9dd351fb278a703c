# app/api/deps.py

from typing import AsyncGenerator
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import AuthorizationEngine
from app.core.cache import TTLCache
from app.core.config import settings
from app.core.security import decode_token
from app.core.database import get_session
from app.services.auth_service import get_user_by_id
from app.services.authz_store import SQLAuthorizationStore
from app.models.user import User


# ------------------------------------------------------------
# HTTP Bearer Authentication
# ------------------------------------------------------------
bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


# ------------------------------------------------------------
# Shared cache (created by the app factory)
# ------------------------------------------------------------
def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


# ------------------------------------------------------------
# Get current logged-in user from JWT
# ------------------------------------------------------------
async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> User:

    if credentials is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Authentication required. Please log in.")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Could not validate credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token payload")

    user = await get_user_by_id(session, user_id)
    if not user:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User not found")

    return user


# ------------------------------------------------------------
# Authorization engine, bound to this request's session
# ------------------------------------------------------------
def get_authorization_engine(
    session: AsyncSession = Depends(get_db_session),
    cache: TTLCache = Depends(get_cache),
) -> AuthorizationEngine:
    return AuthorizationEngine(
        SQLAuthorizationStore(session, cache),
        primary_power_email=settings.POWER_ADMIN_EMAIL,
    )
