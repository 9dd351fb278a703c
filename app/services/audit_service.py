# app/services/audit_service.py

from typing import Optional, Dict, Any
from loguru import logger
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.system_audit import SystemAuditLog
from app.models.user import User


async def record_event(
    session: AsyncSession,
    event_type: str,
    actor: Optional[User] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    status: str = "SUCCESS",
) -> Optional[SystemAuditLog]:
    """
    Writes a system audit entry in a separate session on the caller's
    engine, so a failed write never rolls back or expires anything the
    caller still holds. The audited action is already committed, so a
    failure here is logged rather than raised.
    """
    entry = SystemAuditLog(
        actor_id=actor.id if actor else None,
        actor_role=actor.role.value if actor else None,
        event_type=event_type,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        old_values=old_values or {},
        new_values=new_values or {},
        status=status,
    )

    async with AsyncSession(bind=session.bind, expire_on_commit=False) as audit_session:
        try:
            audit_session.add(entry)
            await audit_session.commit()
            return entry
        except Exception as e:
            logger.error(f"Audit log write failed for {event_type}: {e}")
            await audit_session.rollback()
            return None


async def list_events(
    session: AsyncSession,
    event_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
) -> list[dict]:
    query = (
        select(SystemAuditLog, User.name)
        .join(User, User.id == SystemAuditLog.actor_id, isouter=True)
        .order_by(SystemAuditLog.timestamp.desc())
        .limit(limit)
    )

    if event_type:
        query = query.where(SystemAuditLog.event_type == event_type)
    if status:
        query = query.where(SystemAuditLog.status == status)

    result = await session.execute(query)
    return [
        {**log.model_dump(), "actor_name": actor_name}
        for log, actor_name in result.all()
    ]
