# app/api/endpoints/admins.py

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.api.deps import get_db_session, get_authorization_engine
from app.core.authorization import AuthorizationEngine, RoleChange
from app.core.constants import EVENT_ROLE_CHANGED
from app.core.rbac import AllowRoles, ensure_allowed, require_power
from app.models.user import User, UserRole
from app.schemas.auth import PromoteRequest, DemoteRequest, RoleChangeResponse
from app.schemas.audit import SystemAuditLogRead
from app.schemas.user import AdminRead, UserRead
from app.services.audit_service import record_event, list_events
from app.services.auth_service import list_admins
from app.services.email_service import send_role_change_email

router = APIRouter(prefix="/api/admin", tags=["Administration"])


def _email_notifier(background_tasks: BackgroundTasks):
    def notify(user: User, previous: UserRole, new: UserRole):
        background_tasks.add_task(
            send_role_change_email, user.email, user.name, previous.value, new.value
        )
    return notify


async def _audit_role_change(session: AsyncSession, actor: User, change: RoleChange):
    await record_event(
        session,
        EVENT_ROLE_CHANGED,
        actor=actor,
        resource_type="User",
        resource_id=change.user.id,
        old_values={"role": change.previous_role.value},
        new_values={
            "role": change.user.role.value,
            "managed_department_id": str(change.user.managed_department_id)
            if change.user.managed_department_id else None,
        },
    )


# -------------------------------------------------------------------
# PROMOTE (power admin only)
# -------------------------------------------------------------------
@router.post("/promote", response_model=RoleChangeResponse)
async def promote_user(
    payload: PromoteRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_power),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
    session: AsyncSession = Depends(get_db_session),
):
    change = await engine.promote(
        current_user,
        payload.email,
        payload.role,
        managed_department_id=payload.managed_department_id,
        notify=_email_notifier(background_tasks),
    )
    ensure_allowed(change.decision)

    await _audit_role_change(session, current_user, change)
    return RoleChangeResponse(
        message=f"{change.user.email} is now {change.user.role.value}",
        user=UserRead.model_validate(change.user),
        previous_role=change.previous_role,
    )


# -------------------------------------------------------------------
# DEMOTE (power admin only)
# -------------------------------------------------------------------
@router.post("/demote", response_model=RoleChangeResponse)
async def demote_user(
    payload: DemoteRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_power),
    engine: AuthorizationEngine = Depends(get_authorization_engine),
    session: AsyncSession = Depends(get_db_session),
):
    change = await engine.demote(
        current_user,
        payload.email,
        notify=_email_notifier(background_tasks),
    )
    ensure_allowed(change.decision)

    await _audit_role_change(session, current_user, change)
    return RoleChangeResponse(
        message=f"{change.user.email} is now a regular user",
        user=UserRead.model_validate(change.user),
        previous_role=change.previous_role,
    )


# -------------------------------------------------------------------
# LIST ADMINISTRATIVE ACCOUNTS
# -------------------------------------------------------------------
@router.get("/admins", response_model=List[AdminRead])
async def get_admins(
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(require_power),
):
    return await list_admins(session)


# -------------------------------------------------------------------
# VIEW SYSTEM LOGS (role changes, academic structure changes)
# -------------------------------------------------------------------
@router.get("/system-logs", response_model=List[SystemAuditLogRead])
async def get_system_logs(
    event_type: Optional[str] = Query(None, description="Filter by event type"),
    status: Optional[str] = Query(None, description="Filter by status"),
    limit: int = Query(100, ge=1, le=500),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(AllowRoles(UserRole.Admin)),
):
    return await list_events(session, event_type=event_type, status=status, limit=limit)
