from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.models.audit_log import AuditLog

async def audit(
    db: AsyncSession,
    *,
    actor_id: str | None,
    action: str,
    target_type: str | None = None,
    target_id: str | None = None,
    detail: dict | None = None,
) -> None:
    db.add(AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        detail=detail or {},
    ))
